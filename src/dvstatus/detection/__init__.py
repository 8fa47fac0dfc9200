"""Detection of transmissions in gateway log lines.

This package contains modules for:
- Line classification rules (patterns.py)
- The open-session state machine (session.py)
- The combined line-to-event pipeline (parser.py)

Import functions from here for a clean API:
    from src.dvstatus.detection import LogParser, PatternDispatcher
"""

# Line classification
from .patterns import (
    RULES,
    PatternDispatcher,
    Rule,
)

# Session tracking
from .session import (
    SessionStateMachine,
    elapsed_seconds,
)

# Pipeline
from .parser import (
    LogParser,
    info_events,
)

__all__ = [
    # Line classification
    'RULES',
    'PatternDispatcher',
    'Rule',
    # Session tracking
    'SessionStateMachine',
    'elapsed_seconds',
    # Pipeline
    'LogParser',
    'info_events',
]
