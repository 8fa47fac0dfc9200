"""Tailing of the gateway log files.

This package contains modules for:
- Persisting read positions across restarts (cursor_store.py)
- Resolving the current dated file per role (locator.py)
- Reading complete lines from an offset (reader.py)

Import from here for a clean API:
    from src.dvstatus.tailing import CursorStore, SourceLocator, IncrementalReader
"""

from .cursor_store import CursorStore

from .locator import (
    LogSource,
    SourceLocator,
    resolve_directory,
    stat_file,
)

from .reader import (
    IncrementalReader,
    ReadResult,
    split_complete_lines,
)

__all__ = [
    'CursorStore',
    'LogSource',
    'SourceLocator',
    'resolve_directory',
    'stat_file',
    'IncrementalReader',
    'ReadResult',
    'split_complete_lines',
]
