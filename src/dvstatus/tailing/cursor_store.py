"""Persisted read positions for the watched log files.

The store is a flat text file with one tab-separated record per watched
file::

    <key>\t<identity>\t<offset>

where key is a role key or an absolute path. It is read once at startup and
rewritten wholesale after each cycle that consumed lines.
"""

import os
import tempfile
from pathlib import Path

from ..logging_config import get_logger
from ..models import Cursor

logger = get_logger(__name__, namespace='cursor')


class CursorStore:
    """Load and atomically save {key: Cursor} mappings."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> dict[str, Cursor]:
        """Read all cursors.

        Never raises: a missing or unreadable store yields an empty mapping
        and malformed records are skipped.
        """
        cursors: dict[str, Cursor] = {}
        try:
            text = self.path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return cursors
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cursor store %s unreadable (%s), starting fresh", self.path, e)
            return cursors

        for line in text.splitlines():
            if not line.strip() or line.startswith('#'):
                continue
            parts = line.split('\t')
            if len(parts) != 3:
                logger.debug("Skipping malformed cursor record: %r", line)
                continue
            key, identity, offset_str = parts
            try:
                offset = int(offset_str)
            except ValueError:
                logger.debug("Skipping cursor record with bad offset: %r", line)
                continue
            if offset < 0 or not key:
                continue
            cursors[key] = Cursor(identity=identity, offset=offset)

        logger.debug("Loaded %d cursors from %s", len(cursors), self.path)
        return cursors

    def save(self, cursors: dict[str, Cursor]) -> bool:
        """Persist cursors via write-temp-then-rename.

        Returns:
            True if the store was replaced, False if writing failed (the
            previous store is left intact)
        """
        lines = [
            f"{key}\t{cursor.identity}\t{cursor.offset}\n"
            for key, cursor in sorted(cursors.items())
        ]
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                'w',
                encoding='utf-8',
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix='.tmp',
                delete=False,
            ) as f:
                tmp_name = f.name
                f.writelines(lines)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            return True
        except OSError as e:
            logger.error("Failed to save cursor store %s: %s", self.path, e)
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)
            return False
