"""Type definitions for the gateway log monitor.

This module provides TypedDict definitions for the rows the status store
hands to the dashboard API.
"""

from typing import TypedDict
from typing_extensions import NotRequired


class StatusRow(TypedDict):
    """The single live status row."""
    mode: str
    callsign: str
    dgid: int | None
    slot: int | None
    source: str | None
    active: bool
    ber: float | None
    duration: float | None
    updated_at: str


class LastHeardRow(TypedDict):
    """One finished transmission."""
    callsign: str
    mode: str
    dgid: int | None
    slot: int | None
    source: str | None
    duration: float | None
    ber: float | None
    ts: str


class ReflectorRow(TypedDict):
    """Current link target per protocol family ('' = not linked)."""
    dstar: str | None
    fusion: str | None
    dmr: str | None
    updated_at: NotRequired[str | None]


class ActivityBucket(TypedDict):
    """Finished transmissions in one hour, split by direction."""
    hour: str
    rf: int
    net: int


class CallsignCount(TypedDict):
    """Transmission count and airtime of one callsign."""
    callsign: str
    count: int
    seconds: float


class ModeActivity(TypedDict):
    """Finished transmissions of one protocol family, split by direction."""
    rf: int
    net: int
    total: int


class ModeDuration(TypedDict):
    """Average transmission length of one mode."""
    mode: str
    avg: float


class CallsignDuration(TypedDict):
    """Total airtime of one callsign."""
    callsign: str
    seconds: float


class HeatmapCell(TypedDict):
    """Transmissions in one weekday/hour slot (weekday 0 = Sunday)."""
    weekday: int
    hour: int
    count: int


class HallOfFameEntry(TypedDict):
    """Ranking row weighting transmission count (60%) and airtime (40%)."""
    callsign: str
    qso_count: int
    total_sec: float
    avg_sec: float
    score: float
