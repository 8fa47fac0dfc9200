"""Tests for the line classification rule table."""

import re

import pytest

from src.dvstatus.detection import RULES, PatternDispatcher, Rule
from src.dvstatus.models import NO_LINK, LineCandidate


@pytest.fixture
def dispatcher():
    return PatternDispatcher()


def classify(dispatcher, text):
    return dispatcher.classify(f"M: 2025-10-27 16:32:58.925 {text}")


class TestModeAndInfoRules:
    """Tests for mode change and link status lines."""

    def test_mode_set(self, dispatcher):
        """Test 'Mode set to' yields a mode candidate."""
        candidate = classify(dispatcher, 'Mode set to Idle')

        assert candidate.kind == 'mode'
        assert candidate.mode == 'Idle'
        assert candidate.rule == 'mode_set'

    def test_mode_set_with_dash(self, dispatcher):
        """Test mode names may contain dashes."""
        assert classify(dispatcher, 'Mode set to D-Star').mode == 'D-Star'

    def test_dstar_slow_data_link(self, dispatcher):
        """Test a 'Verlinkt zu' slow data text is a D-Star link."""
        candidate = classify(dispatcher, 'D-Star, network slow data text = "Verlinkt zu DCS001 C"')

        assert candidate.kind == 'info'
        assert candidate.mode == 'D-Star'
        assert candidate.source == 'NET'
        assert candidate.info == 'DCS001 C'

    def test_dstar_other_slow_data_ignored(self, dispatcher):
        """Test other slow data text does not match."""
        assert classify(dispatcher, 'D-Star, network slow data text = "Hello from Munich"') is None

    def test_dstar_link_status(self, dispatcher):
        """Test the link status line yields the target."""
        candidate = classify(dispatcher, 'D-Star link status set to "Verlinkt zu REF001 A"')

        assert candidate.info == 'REF001 A'
        assert candidate.rule == 'dstar_link_status'

    def test_ysf_linked(self, dispatcher):
        """Test 'Linked to' sets the YSF target."""
        candidate = classify(dispatcher, 'Linked to DE-Germany')

        assert candidate.kind == 'info'
        assert candidate.mode == 'YSF'
        assert candidate.info == 'DE-Germany'

    @pytest.mark.parametrize('text', [
        'Disconnect by remote command',
        'Closing YSF network connection',
    ])
    def test_ysf_disconnect(self, dispatcher, text):
        """Test both disconnect phrases clear the YSF link."""
        candidate = classify(dispatcher, text)

        assert candidate.mode == 'YSF'
        assert candidate.info == NO_LINK

    def test_dmr_master_login(self, dispatcher):
        """Test the master login names the DMR server."""
        candidate = classify(dispatcher, 'BM_2621_Germany, Logged into the master successfully')

        assert candidate.kind == 'info'
        assert candidate.mode == 'DMR'
        assert candidate.info == 'BM_2621_Germany'


class TestDStarRules:
    """Tests for D-Star transmission lines."""

    def test_net_start(self, dispatcher):
        candidate = classify(dispatcher, 'D-Star, received network header from DL1ABC  /ID51 to CQCQCQ   via DCS001 C')

        assert candidate.kind == 'start'
        assert (candidate.mode, candidate.source, candidate.callsign) == ('D-Star', 'NET', 'DL1ABC')

    def test_net_end(self, dispatcher):
        candidate = classify(
            dispatcher,
            'D-Star, received network end of transmission from DL1ABC  /ID51 to CQCQCQ  , '
            '2.3 seconds, 0% packet loss, BER: 0.1%',
        )

        assert candidate.kind == 'end'
        assert candidate.duration == 2.3
        assert candidate.ber == 0.1

    def test_rf_header_start(self, dispatcher):
        candidate = classify(dispatcher, 'D-Star, received RF header from DJ0ABR  /INFO to CQCQCQ  ')

        assert candidate.kind == 'start'
        assert candidate.source == 'RF'

    def test_rf_late_entry_start(self, dispatcher):
        """Test a late entry counts as a start."""
        candidate = classify(dispatcher, 'D-Star, received RF late entry from DJ0ABR  /INFO to CQCQCQ  ')

        assert candidate.kind == 'start'
        assert candidate.rule == 'dstar_rf_start'

    def test_rf_end(self, dispatcher):
        candidate = classify(
            dispatcher,
            'D-Star, received RF end of transmission from DJ0ABR  /INFO to CQCQCQ  , 1.5 seconds, BER: 0.2%',
        )

        assert (candidate.kind, candidate.source) == ('end', 'RF')
        assert candidate.duration == 1.5
        assert candidate.ber == 0.2


class TestYsfRules:
    """Tests for YSF transmission lines."""

    def test_net_start(self, dispatcher):
        candidate = classify(dispatcher, 'YSF, received network data from DG1ABC     to DG-ID 0 at DG1ABC')

        assert candidate.kind == 'start'
        assert candidate.callsign == 'DG1ABC'
        assert candidate.dg_id == 0

    def test_net_start_without_at(self, dispatcher):
        candidate = classify(dispatcher, 'YSF, received network data from DG1ABC     to DG-ID 25')
        assert candidate.dg_id == 25

    def test_net_end_with_ber(self, dispatcher):
        candidate = classify(
            dispatcher,
            'YSF, received network end of transmission from DG1ABC     to DG-ID 0, 4.5 seconds, 0% packet loss, BER: 0.0%',
        )

        assert candidate.kind == 'end'
        assert candidate.duration == 4.5
        assert candidate.ber == 0.0

    def test_net_end_without_ber(self, dispatcher):
        candidate = classify(
            dispatcher,
            'YSF, received network end of transmission from DG1ABC     to DG-ID 0, 4.5 seconds',
        )

        assert candidate.duration == 4.5
        assert candidate.ber is None

    def test_net_watchdog(self, dispatcher):
        """Test the watchdog end carries no callsign."""
        candidate = classify(
            dispatcher,
            'YSF, network watchdog has expired, 5.2 seconds, 0% packet loss, BER: 0.3%',
        )

        assert candidate.kind == 'end'
        assert candidate.callsign == ''
        assert candidate.dg_id is None
        assert candidate.duration == 5.2
        assert candidate.ber == 0.3

    def test_rf_start(self, dispatcher):
        candidate = classify(dispatcher, 'YSF, received RF header from DJ0ABR     to DG-ID 0')

        assert (candidate.kind, candidate.source, candidate.dg_id) == ('start', 'RF', 0)

    def test_rf_end(self, dispatcher):
        candidate = classify(
            dispatcher,
            'YSF, received RF end of transmission from DJ0ABR     to DG-ID 0, 3.2 seconds, BER: 1.2%',
        )

        assert candidate.kind == 'end'
        assert candidate.ber == 1.2


class TestDmrRules:
    """Tests for DMR transmission lines."""

    def test_net_start(self, dispatcher):
        candidate = classify(dispatcher, 'DMR Slot 2, received network voice header from DL1ABC to TG 262')

        assert candidate.kind == 'start'
        assert (candidate.slot, candidate.dg_id, candidate.callsign) == (2, 262, 'DL1ABC')

    def test_net_end(self, dispatcher):
        candidate = classify(
            dispatcher,
            'DMR Slot 2, received network end of voice transmission from DL1ABC to TG 262, '
            '3.1 seconds, 0% packet loss, BER: 0.0%',
        )

        assert candidate.kind == 'end'
        assert candidate.duration == 3.1

    def test_rf_start(self, dispatcher):
        candidate = classify(dispatcher, 'DMR Slot 1, received RF voice header from DJ0ABR to TG 9')

        assert (candidate.source, candidate.slot, candidate.dg_id) == ('RF', 1, 9)

    def test_rf_end(self, dispatcher):
        candidate = classify(
            dispatcher,
            'DMR Slot 1, received RF end of voice transmission from DJ0ABR to TG 9, 2.5 seconds, BER: 0.3%',
        )

        assert candidate.kind == 'end'
        assert (candidate.duration, candidate.ber) == (2.5, 0.3)


class TestDispatcher:
    """Tests for PatternDispatcher behavior."""

    def test_unmatched_line(self, dispatcher):
        """Test unrelated lines yield None."""
        assert classify(dispatcher, 'Opening the MMDVM') is None
        assert dispatcher.classify('') is None

    def test_malformed_number_is_non_matching(self, dispatcher):
        """Test a bad numeric field makes the rule not match instead of raising."""
        text = 'DMR Slot 1, received RF end of voice transmission from DJ0ABR to TG 9, 2.5.1 seconds, BER: 0.3%'
        assert classify(dispatcher, text) is None

    def test_mode_rules_come_first(self):
        """Test mode and info rules precede transmission rules."""
        names = [rule.name for rule in RULES]
        assert names.index('mode_set') < names.index('dstar_net_start')
        assert names.index('dmr_master_login') < names.index('dstar_net_start')

    def test_first_match_wins(self):
        """Test the earliest accepting rule is used."""
        rules = [
            Rule('first', re.compile('hello'), lambda m: LineCandidate(kind='mode', mode='A')),
            Rule('second', re.compile('hello'), lambda m: LineCandidate(kind='mode', mode='B')),
        ]

        candidate = PatternDispatcher(rules).classify('hello')

        assert candidate.mode == 'A'
        assert candidate.rule == 'first'

    def test_declining_rule_falls_through(self):
        """Test a builder returning None lets later rules try."""
        rules = [
            Rule('declines', re.compile('hello'), lambda m: None),
            Rule('accepts', re.compile('hello'), lambda m: LineCandidate(kind='mode', mode='B')),
        ]

        assert PatternDispatcher(rules).classify('hello').rule == 'accepts'
