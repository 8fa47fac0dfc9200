"""Data model shared by the tailing and detection layers.

Events handed to sinks are a tagged union: every variant carries a
``kind`` literal so consumers can dispatch exhaustively instead of
guessing which optional fields are meaningful.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional, Union

Family = Literal['D-Star', 'YSF', 'DMR']
CloseReason = Literal['new_start', 'idle', 'shutdown']

FAMILIES: tuple[str, ...] = ('D-Star', 'YSF', 'DMR')

# Mode name that forces an open transmission to close
IDLE_MODE = 'Idle'

# Info payload meaning "not linked to anything"
NO_LINK = ''


@dataclass(frozen=True)
class WatchedFile:
    """A log file as seen by stat(): identity changes mean a new file."""
    path: str
    identity: str
    size: int


@dataclass(frozen=True)
class Cursor:
    """Byte offset of the last fully consumed line of one file."""
    identity: str
    offset: int


@dataclass(frozen=True)
class LogLine:
    """One complete log line, CR stripped."""
    text: str
    timestamp: Optional[datetime] = None


@dataclass
class TransmissionSession:
    """The currently open transmission."""
    mode: str
    source: str
    callsign: str
    dg_id: Optional[int]
    slot: Optional[int]
    started_at: Optional[datetime]  # log timestamp of the opening line
    opened_at: datetime             # wall clock (UTC, naive) when opened
    opened_line: str


@dataclass(frozen=True)
class LineCandidate:
    """What a dispatcher rule extracted from a single line."""
    kind: Literal['start', 'end', 'mode', 'info']
    mode: str
    source: str = '-'
    callsign: str = ''
    dg_id: Optional[int] = None
    slot: Optional[int] = None
    duration: Optional[float] = None
    ber: Optional[float] = None
    info: Optional[str] = None
    rule: str = ''


@dataclass(frozen=True)
class StartEvent:
    mode: str
    source: str
    callsign: str
    dg_id: Optional[int] = None
    slot: Optional[int] = None
    line: str = ''
    kind: Literal['start'] = field(default='start', init=False)


@dataclass(frozen=True)
class EndEvent:
    mode: str
    source: str
    callsign: str
    dg_id: Optional[int] = None
    slot: Optional[int] = None
    duration: Optional[float] = None
    ber: Optional[float] = None
    forced: bool = False
    reason: Optional[CloseReason] = None
    line: str = ''
    kind: Literal['end'] = field(default='end', init=False)


@dataclass(frozen=True)
class ModeChangeEvent:
    mode: str
    line: str = ''
    kind: Literal['mode'] = field(default='mode', init=False)

    @property
    def is_idle(self) -> bool:
        return self.mode == IDLE_MODE


@dataclass(frozen=True)
class InfoEvent:
    mode: Family
    info: str
    source: str = '-'
    line: str = ''
    kind: Literal['info'] = field(default='info', init=False)

    @property
    def is_unlinked(self) -> bool:
        return self.info == NO_LINK


ParsedEvent = Union[StartEvent, EndEvent, ModeChangeEvent, InfoEvent]
