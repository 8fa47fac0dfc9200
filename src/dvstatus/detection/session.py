"""Session state machine: at most one open transmission at a time.

States are Idle (no open session) and Open. Transitions:

- Start while Idle opens a session. Start while Open first force-closes the
  open session (an End is emitted before the new Start).
- End closes the open session whether or not its fields match. Missing
  callsign / group / slot (watchdog ends) are filled from the open session.
- "Mode set to Idle" force-closes an open session, then reports the mode
  change. Any other mode change is only reported.
- Info lines never touch the session.

Callsigns must have two letters and a digit after the "/suffix" is cut.
With duplex operation, network-originated lines carrying our own callsign
are dropped (the gateway echoes our transmissions back to us).

An End reports the seconds value printed in its line. Only when the line
carries none is the delta between the closing and opening timestamps used;
otherwise the duration is None. Forced closes have no printed value and
always use the timestamp delta. Forced closes never carry an error rate.
"""

from datetime import datetime
from typing import Callable, Literal, Optional

from ..logging_config import get_logger
from ..models import (
    IDLE_MODE,
    NO_LINK,
    CloseReason,
    EndEvent,
    InfoEvent,
    LineCandidate,
    LogLine,
    ModeChangeEvent,
    ParsedEvent,
    StartEvent,
    TransmissionSession,
)
from ..station import LocalStationConfig
from ..utils import is_own_callsign, is_valid_callsign, sanitize_callsign, utc_now

logger = get_logger(__name__, namespace='session')


def elapsed_seconds(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Non-negative seconds between two timestamps, or None if either is missing."""
    if start is None or end is None:
        return None
    return max(0.0, (end - start).total_seconds())


class SessionStateMachine:
    """Owns the single open TransmissionSession of one monitored stream."""

    def __init__(
        self,
        station: Optional[LocalStationConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.station = station or LocalStationConfig()
        self.open_session: Optional[TransmissionSession] = None
        self._clock = clock

    @property
    def state(self) -> Literal['Idle', 'Open']:
        return 'Open' if self.open_session is not None else 'Idle'

    def feed(self, candidate: LineCandidate, line: LogLine) -> list[ParsedEvent]:
        """Apply one classified line and return the events it produces, in order."""
        if candidate.kind == 'start':
            return self._on_start(candidate, line)
        if candidate.kind == 'end':
            return self._on_end(candidate, line)
        if candidate.kind == 'mode':
            return self._on_mode(candidate, line)
        if candidate.kind == 'info':
            info = candidate.info if candidate.info is not None else NO_LINK
            return [InfoEvent(mode=candidate.mode, info=info,
                              source=candidate.source, line=line.text)]
        raise ValueError(f"unknown candidate kind: {candidate.kind!r}")

    def close_open(self, reason: CloseReason = 'shutdown',
                   now: Optional[datetime] = None) -> Optional[EndEvent]:
        """Force-close the open session using the wall clock.

        Used at shutdown so no transmission is left open in the sink.
        """
        session = self.open_session
        if session is None:
            return None
        now = now or self._clock()
        self.open_session = None
        duration = elapsed_seconds(session.started_at or session.opened_at, now)
        logger.info("Closing open %s session of %s (%s)", session.mode, session.callsign, reason)
        return EndEvent(
            mode=session.mode,
            source=session.source,
            callsign=session.callsign,
            dg_id=session.dg_id,
            slot=session.slot,
            duration=duration,
            ber=None,
            forced=True,
            reason=reason,
            line=session.opened_line,
        )

    # ------------------------------------------------------------------
    # transitions

    def _accepts(self, callsign: str, source: str) -> bool:
        if callsign and not is_valid_callsign(callsign):
            logger.debug("Dropping line with invalid callsign %r", callsign)
            return False
        if (source == 'NET'
                and self.station.suppress_own_network_echo
                and is_own_callsign(callsign, self.station.callsign)):
            logger.debug("Suppressing network echo of own callsign %s", callsign)
            return False
        return True

    def _force_close(self, reason: CloseReason, line: LogLine) -> Optional[EndEvent]:
        session = self.open_session
        if session is None:
            return None
        self.open_session = None
        return EndEvent(
            mode=session.mode,
            source=session.source,
            callsign=session.callsign,
            dg_id=session.dg_id,
            slot=session.slot,
            duration=elapsed_seconds(session.started_at, line.timestamp),
            ber=None,
            forced=True,
            reason=reason,
            line=line.text,
        )

    def _on_start(self, candidate: LineCandidate, line: LogLine) -> list[ParsedEvent]:
        callsign = sanitize_callsign(candidate.callsign)
        if not callsign or not self._accepts(callsign, candidate.source):
            return []

        events: list[ParsedEvent] = []
        forced = self._force_close('new_start', line)
        if forced is not None:
            logger.debug("New start from %s while %s was open", callsign, forced.callsign)
            events.append(forced)

        self.open_session = TransmissionSession(
            mode=candidate.mode,
            source=candidate.source,
            callsign=callsign,
            dg_id=candidate.dg_id,
            slot=candidate.slot,
            started_at=line.timestamp,
            opened_at=self._clock(),
            opened_line=line.text,
        )
        events.append(StartEvent(
            mode=candidate.mode,
            source=candidate.source,
            callsign=callsign,
            dg_id=candidate.dg_id,
            slot=candidate.slot,
            line=line.text,
        ))
        return events

    def _on_end(self, candidate: LineCandidate, line: LogLine) -> list[ParsedEvent]:
        callsign = sanitize_callsign(candidate.callsign)
        if not self._accepts(callsign, candidate.source):
            return []

        session = self.open_session
        dg_id = candidate.dg_id
        slot = candidate.slot
        duration = candidate.duration
        if session is not None:
            callsign = callsign or session.callsign
            if dg_id is None:
                dg_id = session.dg_id
            if slot is None:
                slot = session.slot
            if duration is None:
                duration = elapsed_seconds(session.started_at, line.timestamp)
            if (session.mode, session.source) != (candidate.mode, candidate.source):
                logger.debug("End for %s/%s closes open %s/%s session",
                             candidate.mode, candidate.source, session.mode, session.source)
            self.open_session = None

        return [EndEvent(
            mode=candidate.mode,
            source=candidate.source,
            callsign=callsign,
            dg_id=dg_id,
            slot=slot,
            duration=duration,
            ber=candidate.ber,
            line=line.text,
        )]

    def _on_mode(self, candidate: LineCandidate, line: LogLine) -> list[ParsedEvent]:
        events: list[ParsedEvent] = []
        if candidate.mode == IDLE_MODE:
            forced = self._force_close('idle', line)
            if forced is not None:
                events.append(forced)
        events.append(ModeChangeEvent(mode=candidate.mode, line=line.text))
        return events
