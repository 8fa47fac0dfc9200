"""Tests for the line-to-event pipeline."""

from datetime import datetime

import pytest

from src.dvstatus.detection import LogParser, info_events
from src.dvstatus.models import InfoEvent, LogLine
from src.dvstatus.station import LocalStationConfig

YSF_SESSION = [
    "M: 2025-10-27 16:32:50.000 Mode set to YSF",
    "M: 2025-10-27 16:32:50.100 YSF, received network data from DG1ABC     to DG-ID 0 at DG1ABC",
    "M: 2025-10-27 16:32:54.600 YSF, received network end of transmission from DG1ABC     to DG-ID 0, 4.5 seconds, 0% packet loss, BER: 0.0%",
    "M: 2025-10-27 16:33:05.000 Mode set to Idle",
]


@pytest.fixture
def parser():
    return LogParser(clock=lambda: datetime(2025, 10, 27, 16, 40, 0))


class TestProcessLine:
    """Tests for LogParser.process_line."""

    def test_irrelevant_line(self, parser):
        """Test unmatched lines yield no events."""
        assert parser.process_line("M: 2025-10-27 16:32:50.000 MMDVMHost-20250101 is running") == []

    def test_accepts_raw_string(self, parser):
        """Test raw text gets its timestamp parsed."""
        parser.process_line(YSF_SESSION[1])
        assert parser.open_session.started_at == datetime(2025, 10, 27, 16, 32, 50, 100000)

    def test_accepts_log_line(self, parser):
        """Test LogLine input is used as-is."""
        events = parser.process_line(LogLine(text="Mode set to Idle"))
        assert events[0].kind == 'mode'

    def test_strips_line_break(self, parser):
        """Test a trailing newline does not leak into the event."""
        events = parser.process_line("Linked to DE-Germany\r\n")
        assert events[0].line == "Linked to DE-Germany"
        assert events[0].info == "DE-Germany"


class TestProcessLines:
    """Tests for LogParser.process_lines."""

    def test_full_ysf_session(self, parser):
        """Test a typical YSF transmission end to end."""
        events = parser.process_lines(YSF_SESSION)

        assert [e.kind for e in events] == ['mode', 'start', 'end', 'mode']
        closing = events[2]
        assert closing.callsign == 'DG1ABC'
        assert closing.source == 'NET'
        assert closing.dg_id == 0
        assert closing.duration == pytest.approx(4.5)
        assert closing.ber == 0.0
        assert closing.forced is False

    def test_idle_without_end_forces_close(self, parser):
        """Test a session left open is closed by Idle."""
        events = parser.process_lines([YSF_SESSION[1], YSF_SESSION[3]])

        assert [e.kind for e in events] == ['end', 'mode']
        assert events[0].forced is True
        assert events[0].duration == pytest.approx(14.9)

    def test_printed_seconds_win_over_timestamps(self, parser):
        """Test the End line's seconds are reported, not the stamp delta."""
        events = parser.process_lines([
            "M: 2025-10-27 16:32:00.000 YSF, received RF header from DL1ABC     to DG-ID 0",
            "M: 2025-10-27 16:32:03.000 YSF, received RF end of transmission from DL1ABC     to DG-ID 0, 5.0 seconds, BER: 1.2%",
        ])

        assert events[1].duration == 5.0
        assert events[1].ber == 1.2

    def test_watchdog_end(self, parser):
        """Test a watchdog line closes with the open session's callsign."""
        events = parser.process_lines([
            YSF_SESSION[1],
            "M: 2025-10-27 16:32:55.300 YSF, network watchdog has expired, 5.2 seconds, 0% packet loss, BER: 0.0%",
        ])

        assert events[1].callsign == 'DG1ABC'
        assert events[1].dg_id == 0
        assert events[1].duration == pytest.approx(5.2)

    def test_rereading_same_lines_is_idempotent(self):
        """Test two fresh parsers fed the same lines emit equal events."""
        first = LogParser().process_lines(YSF_SESSION)
        second = LogParser().process_lines(YSF_SESSION)

        assert first == second

    def test_self_echo_suppressed(self):
        """Test a duplex hotspot drops its own network echo but keeps RF."""
        parser = LogParser(LocalStationConfig(callsign='DJ0ABR', duplex=True))

        events = parser.process_lines([
            "M: 2025-10-27 16:32:50.000 YSF, received network data from DJ0ABR-1   to DG-ID 0 at DJ0ABR",
            "M: 2025-10-27 16:32:51.000 YSF, received RF header from DJ0ABR-1   to DG-ID 0",
        ])

        assert [(e.kind, e.source) for e in events] == [('start', 'RF')]


class TestCloseOpen:
    """Tests for LogParser.close_open."""

    def test_close_open_session(self, parser):
        parser.process_line(YSF_SESSION[1])

        event = parser.close_open()

        assert event.reason == 'shutdown'
        assert parser.open_session is None

    def test_nothing_open(self, parser):
        assert parser.close_open() is None


class TestInfoEvents:
    """Tests for info_events function."""

    def test_only_info_events(self):
        """Test transmissions are discarded and link changes kept in order."""
        events = info_events([
            "M: 2025-10-27 10:00:00.000 Linked to DE-Germany",
            *YSF_SESSION,
            "M: 2025-10-27 11:00:00.000 Closing YSF network connection",
        ])

        assert all(isinstance(e, InfoEvent) for e in events)
        assert [e.info for e in events] == ['DE-Germany', '']

    def test_no_info(self):
        assert info_events(YSF_SESSION) == []
