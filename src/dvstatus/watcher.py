"""Polling loop tying the tailing and detection layers to a sink.

Single threaded: every cycle resolves the current file of each role, reads
the complete lines appended since the last cycle, runs them through one
shared LogParser in file order and hands the resulting events to the sink.
Cursors are saved after each cycle that moved. On shutdown an open
transmission is closed with wall-clock duration so none is left dangling.

Usage:
    dvstatus-watch                          # settings from DVSTATUS_* env vars
    python3 -m src.dvstatus.watcher
"""

import signal
import threading
from pathlib import Path
from typing import Iterable, Optional

from .config import CURSOR_FILE, LOG_INPUTS, POLL_INTERVAL_SECONDS, STATION_INI
from .detection import LogParser, info_events
from .logging_config import get_logger, setup_logging
from .models import Cursor, ParsedEvent
from .sink import CompositeSink, EventSink, LoggingSink
from .station import LocalStationConfig, read_local_config
from .status_store import StatusStoreSink, init_database
from .tailing import CursorStore, IncrementalReader, LogSource, SourceLocator, stat_file

logger = get_logger(__name__, namespace='watcher')


def _emit(sink: EventSink, event: ParsedEvent) -> bool:
    try:
        sink.on_event(event)
        return True
    except Exception:
        logger.exception("Sink failed on %s event", event.kind)
        return False


def backfill_reflectors(
    path: Path,
    sink: EventSink,
    stop: Optional[int] = None,
    reader: Optional[IncrementalReader] = None,
) -> int:
    """Forward the Info events found in a file to sink.

    Transmissions in the scanned range are not replayed; only link state
    is recovered. The file is read chunk by chunk.

    Args:
        path: Log file to scan from its beginning
        sink: Receiver of the Info events
        stop: Byte position not to scan past (default: whole file)
        reader: Reader to use (default: a new one)

    Returns:
        Number of Info events forwarded
    """
    reader = reader or IncrementalReader()
    offset = 0
    count = 0
    while True:
        result = reader.read_from(path, offset, stop=stop)
        for event in info_events(result.lines):
            _emit(sink, event)
            count += 1
        if result.file is None or not result.more:
            return count
        offset = result.offset


class LogWatcher:
    """Tails the gateway logs and emits normalized events."""

    def __init__(
        self,
        inputs: Iterable[Path | str],
        sink: EventSink,
        cursor_store: CursorStore,
        station: Optional[LocalStationConfig] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        locator: Optional[SourceLocator] = None,
        reader: Optional[IncrementalReader] = None,
    ):
        self.sink = sink
        self.cursor_store = cursor_store
        self.poll_interval = poll_interval
        self.locator = locator or SourceLocator(inputs)
        self.reader = reader or IncrementalReader()
        self.parser = LogParser(station)
        self.cursors: dict[str, Cursor] = cursor_store.load()
        self._stop = threading.Event()

    # ------------------------------------------------------------------
    # lifecycle

    def backfill(self) -> int:
        """Recover link state from the existing files and position cursors.

        Every file that already exists is scanned for Info events up to its
        cursor (so a restart resumes right after what was already processed)
        or, without a cursor for the same file, up to its end, where the
        cursor is then placed.

        Returns:
            Number of Info events forwarded
        """
        count = 0
        for source in self.locator.resolve():
            info = stat_file(source.path)
            if info is None:
                continue
            cursor = self.cursors.get(source.key)
            known = cursor is not None and cursor.identity == info.identity
            # A cursor past the end (truncated file) is kept; the first
            # cycle then re-reads the file from the start.
            stop = min(cursor.offset, info.size) if known else info.size
            found = backfill_reflectors(source.path, self.sink, stop=stop, reader=self.reader)
            if found:
                logger.debug("Backfilled %d link events from %s", found, source.path.name)
            count += found
            if not known:
                self.cursors[source.key] = Cursor(identity=info.identity, offset=info.size)
        self._save()
        return count

    def poll_once(self) -> int:
        """Run one read cycle over all resolved files.

        Returns:
            Number of events emitted
        """
        sources = self.locator.resolve()
        changed = self._forget_unresolved(sources)
        emitted = 0
        for source in sources:
            moved, count = self._poll_source(source)
            changed = changed or moved
            emitted += count
        if changed:
            self._save()
        return emitted

    def run(self) -> None:
        """Backfill, then poll until stop() is called."""
        logger.info("Watching %s", ', '.join(str(p) for p in self.locator.inputs))
        self.backfill()
        try:
            while not self._stop.is_set():
                self.poll_once()
                self._stop.wait(self.poll_interval)
        finally:
            self.shutdown()

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def install_signal_handlers(self) -> None:
        def handle(signum, frame):
            logger.info("Received %s, stopping", signal.Signals(signum).name)
            self.stop()

        signal.signal(signal.SIGINT, handle)
        signal.signal(signal.SIGTERM, handle)

    def shutdown(self) -> Optional[ParsedEvent]:
        """Close an open transmission and persist cursors.

        Returns:
            The forced End event, if a transmission was open
        """
        event = self.parser.close_open('shutdown')
        if event is not None:
            _emit(self.sink, event)
        self._save()
        return event

    # ------------------------------------------------------------------
    # internals

    def _save(self) -> None:
        self.cursor_store.save(self.cursors)

    def _forget_unresolved(self, sources: list[LogSource]) -> bool:
        keys = {source.key for source in sources}
        stale = [key for key in self.cursors if key not in keys]
        for key in stale:
            logger.debug("Dropping cursor for %s", key)
            del self.cursors[key]
        return bool(stale)

    def _poll_source(self, source: LogSource) -> tuple[bool, int]:
        """Read and dispatch new lines of one file.

        Returns:
            (cursor changed, events emitted)
        """
        info = stat_file(source.path)
        if info is None:
            # Reports the failure once; nothing to read
            self.reader.read_from(source.path, 0, stop=0)
            return False, 0

        cursor = self.cursors.get(source.key)
        if cursor is None or cursor.identity != info.identity:
            if cursor is not None:
                logger.info("%s replaced (%s), following from end", source.key, source.path.name)
            self.cursors[source.key] = Cursor(identity=info.identity, offset=info.size)
            return True, 0

        emitted = 0
        offset = cursor.offset
        while True:
            result = self.reader.read_from(source.path, offset)
            if result.file is None:
                break
            if result.file.identity != cursor.identity:
                # Swapped between stat and open
                self.cursors[source.key] = Cursor(identity=result.file.identity,
                                                  offset=result.file.size)
                return True, emitted

            for line in result.lines:
                for event in self.parser.process_line(line):
                    if _emit(self.sink, event):
                        emitted += 1
            offset = result.offset
            if not result.more:
                break

        if offset == cursor.offset:
            return False, emitted
        self.cursors[source.key] = Cursor(identity=cursor.identity, offset=offset)
        return True, emitted


def main():
    """Run the watcher with settings from the environment."""
    setup_logging()
    station = read_local_config(STATION_INI)
    init_database()
    sink = CompositeSink([LoggingSink(), StatusStoreSink()])
    watcher = LogWatcher(LOG_INPUTS, sink, CursorStore(CURSOR_FILE), station=station)
    watcher.install_signal_handlers()
    watcher.run()


if __name__ == "__main__":
    main()
