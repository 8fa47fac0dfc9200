"""Line-to-event pipeline: dispatcher followed by the state machine."""

from datetime import datetime
from typing import Callable, Iterable, Optional

from ..models import EndEvent, InfoEvent, LogLine, ParsedEvent, TransmissionSession
from ..station import LocalStationConfig
from ..utils import parse_log_timestamp, utc_now
from .patterns import PatternDispatcher
from .session import SessionStateMachine


class LogParser:
    """Turns raw log lines into normalized events.

    One instance per radio path: the watcher feeds every role file through
    the same parser. Instances share nothing.
    """

    def __init__(
        self,
        station: Optional[LocalStationConfig] = None,
        dispatcher: Optional[PatternDispatcher] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.dispatcher = dispatcher or PatternDispatcher()
        self.machine = SessionStateMachine(station, clock=clock)

    @property
    def open_session(self) -> Optional[TransmissionSession]:
        return self.machine.open_session

    def process_line(self, line: LogLine | str) -> list[ParsedEvent]:
        """Classify one line and apply it.

        Returns:
            Events in emission order (a forced End precedes the Start or
            ModeChange that caused it); empty for irrelevant lines
        """
        if isinstance(line, str):
            text = line.rstrip('\r\n')
            line = LogLine(text=text, timestamp=parse_log_timestamp(text))
        candidate = self.dispatcher.classify(line.text)
        if candidate is None:
            return []
        return self.machine.feed(candidate, line)

    def process_lines(self, lines: Iterable[LogLine | str]) -> list[ParsedEvent]:
        events: list[ParsedEvent] = []
        for line in lines:
            events.extend(self.process_line(line))
        return events

    def close_open(self, reason='shutdown', now: Optional[datetime] = None) -> Optional[EndEvent]:
        return self.machine.close_open(reason, now)


def info_events(lines: Iterable[LogLine | str]) -> list[InfoEvent]:
    """Extract only the Info events from lines, with a throw-away parser.

    Used to seed link targets from history without replaying transmissions.
    """
    parser = LogParser()
    return [
        event for event in parser.process_lines(lines)
        if isinstance(event, InfoEvent)
    ]
