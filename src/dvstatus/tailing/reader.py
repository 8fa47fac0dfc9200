"""Incremental, line-safe reading of append-only log files.

Only lines terminated by a line break are consumed. A trailing fragment
without a terminator is left in the file for the next poll, because the
writer may still be in the middle of it. Each call reads a bounded
chunk, and the file is opened and closed on every call so that rotation
and deletion are always observed.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional

from ..config import READ_CHUNK_BYTES
from ..logging_config import get_logger
from ..models import LogLine, WatchedFile
from ..utils import parse_log_timestamp

logger = get_logger(__name__, namespace='reader')


@dataclass
class ReadResult:
    """Lines read in one call and the offset to resume from."""
    lines: list[LogLine] = field(default_factory=list)
    offset: int = 0
    file: Optional[WatchedFile] = None  # None when the file could not be opened
    truncated: bool = False
    more: bool = False  # complete data remains before the end of the range


def split_complete_lines(data: bytes) -> tuple[list[LogLine], int]:
    """Split raw bytes into complete lines.

    Returns:
        (lines, consumed) where consumed is the number of bytes up to and
        including the last line break
    """
    consumed = data.rfind(b'\n') + 1
    if consumed == 0:
        return [], 0

    lines = []
    for raw in data[:consumed].split(b'\n')[:-1]:
        text = raw.decode('utf-8', errors='replace')
        if text.endswith('\r'):
            text = text[:-1]
        lines.append(LogLine(text=text, timestamp=parse_log_timestamp(text)))
    return lines, consumed


class IncrementalReader:
    """Reads new complete lines from a file starting at a byte offset.

    At most max_bytes are read per call; ReadResult.more tells the caller
    that complete data remains before the end. Open failures are reported
    once per distinct (path, error) and then stay quiet until the file
    becomes readable again.
    """

    def __init__(self, max_bytes: int = READ_CHUNK_BYTES):
        self.max_bytes = max(1, max_bytes)
        self._warned: set[tuple[str, str]] = set()

    def _warn_once(self, path: Path, error: OSError) -> None:
        key = (str(path), f"{type(error).__name__}:{error.errno}")
        if key in self._warned:
            return
        self._warned.add(key)
        logger.warning("Cannot open %s: %s", path, error.strerror or error)

    def _clear_warnings(self, path: Path) -> None:
        path_str = str(path)
        self._warned = {key for key in self._warned if key[0] != path_str}

    def _skip_line(self, f: BinaryIO, pos: int, end: int) -> Optional[int]:
        """Offset just past the next line break at or after pos, or None."""
        f.seek(pos)
        while pos < end:
            chunk = f.read(min(self.max_bytes, end - pos))
            if not chunk:
                break
            index = chunk.find(b'\n')
            if index >= 0:
                return pos + index + 1
            pos += len(chunk)
        return None

    def read_from(self, path: Path, offset: int, stop: Optional[int] = None) -> ReadResult:
        """Read complete lines from offset.

        Args:
            path: Log file
            offset: Byte offset of the first unread line; an offset beyond
                    the current size means the file was truncated and reading
                    restarts at 0
            stop: Optional byte position not to read past

        Returns:
            ReadResult with the parsed lines and the new safe offset. If the
            file cannot be opened the offset is returned unchanged.
        """
        path = Path(path)
        skipped_to = None
        try:
            with open(path, 'rb') as f:
                st = os.fstat(f.fileno())
                size = st.st_size
                truncated = offset > size
                start = 0 if truncated else offset
                end = size if stop is None else min(size, max(stop, start))
                limit = min(end, start + self.max_bytes)
                f.seek(start)
                data = f.read(limit - start)
                if limit < end and b'\n' not in data:
                    skipped_to = self._skip_line(f, limit, end)
        except OSError as e:
            self._warn_once(path, e)
            return ReadResult(lines=[], offset=offset, file=None)

        self._clear_warnings(path)
        if truncated:
            logger.info("%s shrank below offset %d (size %d), re-reading from start",
                        path.name, offset, size)

        watched = WatchedFile(path=str(path), identity=f"{st.st_dev}:{st.st_ino}", size=size)
        if skipped_to is not None:
            logger.warning("%s: skipping %d byte line at offset %d (longer than %d bytes)",
                           path.name, skipped_to - start, start, self.max_bytes)
            return ReadResult(lines=[], offset=skipped_to, file=watched,
                              truncated=truncated, more=skipped_to < end)

        lines, consumed = split_complete_lines(data)
        # An unterminated line longer than a chunk waits here for its line break
        more = limit < end and consumed > 0
        return ReadResult(lines=lines, offset=start + consumed, file=watched,
                          truncated=truncated, more=more)
