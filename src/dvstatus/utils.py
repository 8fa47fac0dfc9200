"""Shared utilities for the gateway log monitor.

Small, stateless helpers used by the dispatcher, the state machine and
the sinks: timestamp extraction, callsign handling and number
formatting.
"""

import re
from datetime import datetime, timezone
from typing import Optional

# "M: 2025-10-27 16:32:58.925 ..." - level letter, colon, millisecond timestamp
TIMESTAMP_PATTERN = re.compile(
    r'^\s*[A-Z]:\s+(\d{4}-\d{2}-\d{2})\s+(\d{2}:\d{2}:\d{2})\.(\d{3})'
)


def parse_log_timestamp(line: str) -> Optional[datetime]:
    """Extract the timestamp prefix of a gateway log line.

    Args:
        line: A raw log line

    Returns:
        Naive datetime with millisecond precision, or None if the line has
        no prefix or the prefix is not a valid date
    """
    match = TIMESTAMP_PATTERN.match(line)
    if not match:
        return None
    date_part, time_part, millis = match.groups()
    try:
        stamp = datetime.strptime(f"{date_part} {time_part}", "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None
    return stamp.replace(microsecond=int(millis) * 1000)


def utc_now() -> datetime:
    """Current UTC wall clock as a naive datetime, comparable to log timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def sanitize_callsign(raw: str) -> str:
    """Trim a callsign and cut it at the first '/' or space.

    Example:
        sanitize_callsign('DL1ABC/P') -> 'DL1ABC'
    """
    text = raw.strip()
    for index, char in enumerate(text):
        if char in '/ ':
            return text[:index]
    return text


def is_valid_callsign(callsign: str) -> bool:
    """A usable callsign has at least two letters and at least one digit."""
    if len(callsign) < 3:
        return False
    letters = sum(1 for c in callsign if c.isalpha())
    digits = sum(1 for c in callsign if c.isdigit())
    return letters >= 2 and digits >= 1


def is_own_callsign(callsign: str, local_callsign: str) -> bool:
    """Check whether callsign belongs to the local station (suffixes included)."""
    if not callsign or not local_callsign:
        return False
    return callsign.upper().startswith(local_callsign.upper())


def strip_prefix(text: str, prefix: str) -> str:
    """Remove prefix from text if present."""
    if text.startswith(prefix):
        return text[len(prefix):]
    return text


def format_number(value: float) -> str:
    """Format a float with up to three decimals and no trailing zeros."""
    text = f"{value:.3f}".rstrip('0').rstrip('.')
    return text or '0'
