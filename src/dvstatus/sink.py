"""Event sinks: where normalized events go after the state machine.

Sinks are fire-and-forget per event. The watcher never waits for a sink
to succeed and a failing sink must not disturb session tracking.
"""

import logging
from typing import Iterable, Optional

from .logging_config import get_logger
from .models import (
    FAMILIES,
    EndEvent,
    InfoEvent,
    ModeChangeEvent,
    ParsedEvent,
    StartEvent,
)
from .utils import format_number

logger = get_logger(__name__, namespace='sink')


class EventSink:
    """Base class dispatching on_event() to one handler per event kind."""

    def on_event(self, event: ParsedEvent) -> None:
        if isinstance(event, StartEvent):
            self.on_start(event)
        elif isinstance(event, EndEvent):
            self.on_end(event)
        elif isinstance(event, ModeChangeEvent):
            self.on_mode_change(event)
        elif isinstance(event, InfoEvent):
            self.on_info(event)
        else:
            raise TypeError(f"unsupported event type: {type(event).__name__}")

    def on_start(self, event: StartEvent) -> None:
        pass

    def on_end(self, event: EndEvent) -> None:
        pass

    def on_mode_change(self, event: ModeChangeEvent) -> None:
        pass

    def on_info(self, event: InfoEvent) -> None:
        pass


class CompositeSink(EventSink):
    """Fan each event out to several sinks, in order.

    A sink that raises is logged and skipped; the others still receive the
    event.
    """

    def __init__(self, sinks: Iterable[EventSink]):
        self.sinks = list(sinks)

    def on_event(self, event: ParsedEvent) -> None:
        for sink in self.sinks:
            try:
                sink.on_event(event)
            except Exception:
                logger.exception("Sink %s failed on %s event", type(sink).__name__, event.kind)


def describe_event(event: ParsedEvent) -> str:
    """One-line human readable summary of an event."""
    if isinstance(event, ModeChangeEvent):
        return f"Mode, {event.mode}"
    if isinstance(event, InfoEvent):
        target = '(unlinked)' if event.is_unlinked else event.info
        return f'Info, {event.mode}, Info="{target}"'

    parts = ['Start' if isinstance(event, StartEvent) else 'End']
    if event.source and event.source != '-':
        parts.append(event.source)
    parts.append(event.mode)
    if event.callsign:
        parts.append(f"Callsign={event.callsign}")
    if event.dg_id is not None:
        parts.append(f"DG-ID={event.dg_id}")
    if event.slot is not None:
        parts.append(f"Slot={event.slot}")
    if isinstance(event, EndEvent):
        if event.duration is not None:
            parts.append(f"Duration[s]={format_number(event.duration)}")
        if event.ber is not None:
            parts.append(f"BER[%]={format_number(event.ber)}")
        if event.forced:
            parts.append(f"forced={event.reason}")
    return ', '.join(parts)


class LoggingSink(EventSink):
    """Write every event as a log line (the console view of the stream)."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.log = log or logging.getLogger('dvs.sink')
        self.level = level

    def on_event(self, event: ParsedEvent) -> None:
        self.log.log(self.level, "%s", describe_event(event))
        self.log.debug("  line: %s", event.line)


class ReflectorTracker:
    """Current link target per protocol family, derived from Info events.

    A link announcement overwrites the target; a disconnect clears it to ''.
    Writers that persist the target check changed() first and commit()
    only once the write went through, so a failed write is retried on the
    next identical announcement.
    """

    def __init__(self):
        self.targets: dict[str, Optional[str]] = {family: None for family in FAMILIES}

    def changed(self, event: InfoEvent) -> bool:
        return self.targets.get(event.mode) != event.info

    def commit(self, event: InfoEvent) -> None:
        self.targets[event.mode] = event.info

    def apply(self, event: InfoEvent) -> bool:
        """Record the event's target.

        Returns:
            True if the family's target changed
        """
        changed = self.changed(event)
        self.commit(event)
        return changed

    def get(self, family: str) -> Optional[str]:
        return self.targets.get(family)

    def snapshot(self) -> dict[str, Optional[str]]:
        return dict(self.targets)
