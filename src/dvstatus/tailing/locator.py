"""Resolve which dated log file is current for each watched role.

Gateways name their logs ``<Prefix>-YYYY-MM-DD.log`` and start a new file
at midnight (UTC) or on restart. For each role the file named with today's
UTC date is preferred, then the local-date name; if neither exists yet the
UTC name is returned as a placeholder so the file is picked up as soon as
it appears.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from ..config import LOG_ROLES, LOG_SUFFIX
from ..logging_config import get_logger
from ..models import WatchedFile

logger = get_logger(__name__, namespace='locator')


@dataclass(frozen=True)
class LogSource:
    """A resolved file for one logical role.

    key identifies the cursor record: ``<role>@<directory>`` for files found
    through a directory, or the absolute path for explicit files.
    """
    key: str
    role: str
    path: Path


def stat_file(path: Path) -> Optional[WatchedFile]:
    """Stat a file, returning None if it does not exist or is inaccessible."""
    try:
        st = os.stat(path)
    except OSError:
        return None
    return WatchedFile(
        path=str(path),
        identity=f"{st.st_dev}:{st.st_ino}",
        size=st.st_size,
    )


def dated_log_name(prefix: str, day: str) -> str:
    return f"{prefix}-{day}{LOG_SUFFIX}"


def resolve_directory(directory: Path, now: Optional[datetime] = None) -> list[LogSource]:
    """Resolve the current file of every role inside directory.

    Args:
        directory: Log directory of the gateways
        now: Aware "current time" (default: now); used for both the UTC and
             the local date

    Returns:
        One LogSource per role, in LOG_ROLES order
    """
    now = now or datetime.now(timezone.utc)
    utc_day = now.astimezone(timezone.utc).strftime('%Y-%m-%d')
    local_day = now.astimezone().strftime('%Y-%m-%d')

    sources = []
    for role, prefix in LOG_ROLES.items():
        utc_path = directory / dated_log_name(prefix, utc_day)
        local_path = directory / dated_log_name(prefix, local_day)
        if utc_path.exists():
            path = utc_path
        elif local_path.exists():
            path = local_path
        else:
            path = utc_path
        sources.append(LogSource(key=f"{role}@{directory}", role=role, path=path))
    return sources


class SourceLocator:
    """Expand the configured inputs into concrete files, every cycle."""

    def __init__(self, inputs: Iterable[Path | str]):
        self.inputs = [Path(p) for p in inputs]
        self._current: dict[str, Path] = {}

    def resolve(self, now: Optional[datetime] = None) -> list[LogSource]:
        """Resolve all inputs.

        Directories expand to the three role files; anything else is taken
        as an explicit file path. Path changes for a key are logged as
        rotations.
        """
        sources: list[LogSource] = []
        for item in self.inputs:
            if item.is_dir():
                sources.extend(resolve_directory(item, now))
            else:
                path = item.absolute()
                sources.append(LogSource(key=str(path), role=path.name, path=path))

        for source in sources:
            previous = self._current.get(source.key)
            if previous is not None and previous != source.path:
                logger.info("Rotation for %s: %s -> %s", source.key, previous.name, source.path.name)
            self._current[source.key] = source.path
        return sources
