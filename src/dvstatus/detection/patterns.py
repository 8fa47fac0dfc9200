"""Line classification rules for the gateway logs.

Each rule is (name, pattern, builder). Rules are tried top to bottom and
the first one whose pattern matches and whose builder accepts the match
wins. Mode-change and link/info rules come first because their text can
overlap with the transmission rules.

A builder returns None to decline a match (e.g. slow-data text that is not
a link status) and raises ValueError on malformed numeric fields; in both
cases the rule counts as non-matching and evaluation continues.
"""

import re
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from ..logging_config import get_logger
from ..models import NO_LINK, LineCandidate
from ..utils import strip_prefix

logger = get_logger(__name__, namespace='parser')

DSTAR_LINK_PREFIX = 'Verlinkt zu '

Builder = Callable[[re.Match], Optional[LineCandidate]]


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: re.Pattern
    build: Builder


def _int(match: re.Match, group: Optional[int]) -> Optional[int]:
    if group is None:
        return None
    text = match.group(group)
    if text is None:
        return None
    value = int(text)
    if value < 0:
        raise ValueError(f"negative identifier {value}")
    return value


def _float(match: re.Match, group: Optional[int]) -> Optional[float]:
    if group is None:
        return None
    text = match.group(group)
    if text is None:
        return None
    return float(text)


def _start(mode: str, source: str, call: int,
           group: Optional[int] = None, slot: Optional[int] = None) -> Builder:
    def build(m: re.Match) -> LineCandidate:
        return LineCandidate(
            kind='start',
            mode=mode,
            source=source,
            callsign=m.group(call),
            dg_id=_int(m, group),
            slot=_int(m, slot),
        )
    return build


def _end(mode: str, source: str, call: Optional[int] = None,
         group: Optional[int] = None, slot: Optional[int] = None,
         seconds: Optional[int] = None, ber: Optional[int] = None) -> Builder:
    def build(m: re.Match) -> LineCandidate:
        return LineCandidate(
            kind='end',
            mode=mode,
            source=source,
            callsign=m.group(call) if call is not None else '',
            dg_id=_int(m, group),
            slot=_int(m, slot),
            duration=_float(m, seconds),
            ber=_float(m, ber),
        )
    return build


def _mode_set(m: re.Match) -> LineCandidate:
    return LineCandidate(kind='mode', mode=m.group(1))


def _dstar_link(m: re.Match) -> Optional[LineCandidate]:
    text = m.group(1).strip()
    if not text.startswith(DSTAR_LINK_PREFIX):
        return None
    return LineCandidate(kind='info', mode='D-Star', source='NET',
                         info=strip_prefix(text, DSTAR_LINK_PREFIX).strip())


def _ysf_linked(m: re.Match) -> LineCandidate:
    return LineCandidate(kind='info', mode='YSF', info=m.group(1).strip())


def _ysf_disconnect(m: re.Match) -> LineCandidate:
    return LineCandidate(kind='info', mode='YSF', info=NO_LINK)


def _dmr_master(m: re.Match) -> LineCandidate:
    return LineCandidate(kind='info', mode='DMR', info=m.group(1))


_NUM = r'([\d.]+)'

RULES: tuple[Rule, ...] = (
    # --- Mode and link status ---
    Rule('mode_set',
         re.compile(r'Mode\s+set\s+to\s+([A-Za-z0-9\-]+)'),
         _mode_set),
    Rule('dstar_slow_data_link',
         re.compile(r'D-Star,\s+network\s+slow\s+data\s+text\s*=\s*"([^"]+)"'),
         _dstar_link),
    Rule('dstar_link_status',
         re.compile(r'D-Star\s+link\s+status\s+set\s+to\s*"([^"]+)"'),
         _dstar_link),
    Rule('ysf_linked',
         re.compile(r'Linked\s+to\s+([^\r\n]+)'),
         _ysf_linked),
    Rule('ysf_disconnect',
         re.compile(r'Disconnect\s+by\s+remote\s+command|Closing\s+YSF\s+network\s+connection'),
         _ysf_disconnect),
    Rule('dmr_master_login',
         re.compile(r'(\S+),\s+Logged\s+into\s+the\s+master\s+successfully'),
         _dmr_master),

    # --- D-Star ---
    Rule('dstar_net_start',
         re.compile(r'D-Star,\s+received\s+network\s+header\s+from\s+(\S+)'),
         _start('D-Star', 'NET', call=1)),
    Rule('dstar_net_end',
         re.compile(r'D-Star,\s+received\s+network\s+end\s+of\s+transmission\s+from\s+(\S+)'
                    r'.*?,\s*' + _NUM + r'\s+seconds,.*?BER:\s*' + _NUM + '%'),
         _end('D-Star', 'NET', call=1, seconds=2, ber=3)),
    Rule('dstar_rf_start',
         re.compile(r'D-Star,\s+received\s+RF\s+(?:header|late\s+entry)\s+from\s+(\S+)'),
         _start('D-Star', 'RF', call=1)),
    Rule('dstar_rf_end',
         re.compile(r'D-Star,\s+received\s+RF\s+end\s+of\s+transmission\s+from\s+(\S+)'
                    r'.*?,\s*' + _NUM + r'\s+seconds,\s*BER:\s*' + _NUM + '%'),
         _end('D-Star', 'RF', call=1, seconds=2, ber=3)),

    # --- YSF ---
    Rule('ysf_net_start',
         re.compile(r'YSF,\s+received\s+network\s+data\s+from\s+(\S+)\s+to\s+DG-ID\s+(\d+)'),
         _start('YSF', 'NET', call=1, group=2)),
    Rule('ysf_net_end',
         re.compile(r'YSF,\s+received\s+network\s+end\s+of\s+transmission\s+from\s+(\S+)'
                    r'\s+to\s+DG-ID\s+(\d+),\s*' + _NUM + r'\s+seconds'
                    r'(?:,.*?BER:\s*' + _NUM + '%)?'),
         _end('YSF', 'NET', call=1, group=2, seconds=3, ber=4)),
    Rule('ysf_net_watchdog',
         re.compile(r'YSF,\s+network\s+watchdog\s+has\s+expired,\s*' + _NUM + r'\s+seconds'
                    r'(?:,[^,]*)?,\s*BER:\s*' + _NUM + '%'),
         _end('YSF', 'NET', seconds=1, ber=2)),
    Rule('ysf_rf_start',
         re.compile(r'YSF,\s+received\s+RF\s+header\s+from\s+(\S+)\s+to\s+DG-ID\s+(\d+)'),
         _start('YSF', 'RF', call=1, group=2)),
    Rule('ysf_rf_end',
         re.compile(r'YSF,\s+received\s+RF\s+end\s+of\s+transmission\s+from\s+(\S+)'
                    r'\s+to\s+DG-ID\s+(\d+),\s*' + _NUM + r'\s+seconds'
                    r'(?:,.*?BER:\s*' + _NUM + '%)?'),
         _end('YSF', 'RF', call=1, group=2, seconds=3, ber=4)),

    # --- DMR ---
    Rule('dmr_net_start',
         re.compile(r'DMR\s+Slot\s+(\d+),\s+received\s+network\s+voice\s+header\s+from\s+(\S+)'
                    r'\s+to\s+TG\s+(\d+)'),
         _start('DMR', 'NET', call=2, group=3, slot=1)),
    Rule('dmr_net_end',
         re.compile(r'DMR\s+Slot\s+(\d+),\s+received\s+network\s+end\s+of\s+voice\s+transmission'
                    r'\s+from\s+(\S+)\s+to\s+TG\s+(\d+),\s*' + _NUM + r'\s+seconds,'
                    r'.*?BER:\s*' + _NUM + '%'),
         _end('DMR', 'NET', call=2, group=3, slot=1, seconds=4, ber=5)),
    Rule('dmr_rf_start',
         re.compile(r'DMR\s+Slot\s+(\d+),\s+received\s+RF\s+voice\s+header\s+from\s+(\S+)'
                    r'\s+to\s+TG\s+(\d+)'),
         _start('DMR', 'RF', call=2, group=3, slot=1)),
    Rule('dmr_rf_end',
         re.compile(r'DMR\s+Slot\s+(\d+),\s+received\s+RF\s+end\s+of\s+voice\s+transmission'
                    r'\s+from\s+(\S+)\s+to\s+TG\s+(\d+),\s*' + _NUM + r'\s+seconds,'
                    r'\s*BER:\s*' + _NUM + '%'),
         _end('DMR', 'RF', call=2, group=3, slot=1, seconds=4, ber=5)),
)


class PatternDispatcher:
    """Classify log lines with an ordered rule table."""

    def __init__(self, rules: Sequence[Rule] = RULES):
        self.rules = tuple(rules)

    def classify(self, text: str) -> Optional[LineCandidate]:
        """Return the candidate of the first accepting rule, or None."""
        for rule in self.rules:
            match = rule.pattern.search(text)
            if not match:
                continue
            try:
                candidate = rule.build(match)
            except ValueError as e:
                logger.debug("Rule %s rejected malformed line (%s): %s", rule.name, e, text)
                continue
            if candidate is None:
                continue
            return replace(candidate, rule=rule.name)
        return None
