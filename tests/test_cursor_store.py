"""Tests for the persisted cursor store."""

from unittest.mock import patch

from src.dvstatus.models import Cursor
from src.dvstatus.tailing import CursorStore


class TestLoad:
    """Tests for CursorStore.load."""

    def test_missing_file_is_empty(self, tmp_path):
        """Test a store that was never written loads as empty."""
        store = CursorStore(tmp_path / 'offsets')
        assert store.load() == {}

    def test_reads_records(self, tmp_path):
        """Test tab separated records are parsed."""
        path = tmp_path / 'offsets'
        path.write_text("mmdvm@/var/log/mmdvm\t2049:1234\t512\n/tmp/x.log\t2049:99\t0\n")

        cursors = CursorStore(path).load()

        assert cursors == {
            'mmdvm@/var/log/mmdvm': Cursor(identity='2049:1234', offset=512),
            '/tmp/x.log': Cursor(identity='2049:99', offset=0),
        }

    def test_skips_comments_and_blank_lines(self, tmp_path):
        """Test '#' lines and blank lines are ignored."""
        path = tmp_path / 'offsets'
        path.write_text("# written by dvstatus\n\nysf@/logs\t1:2\t10\n")

        assert CursorStore(path).load() == {'ysf@/logs': Cursor('1:2', 10)}

    def test_skips_malformed_records(self, tmp_path):
        """Test records with wrong field count or bad offsets are dropped."""
        path = tmp_path / 'offsets'
        path.write_text(
            "only-two\tfields\n"
            "bad\t1:2\tnot-a-number\n"
            "negative\t1:2\t-5\n"
            "good\t1:2\t7\n"
        )

        assert CursorStore(path).load() == {'good': Cursor('1:2', 7)}

    def test_undecodable_file_is_empty(self, tmp_path):
        """Test a corrupt store is not fatal."""
        path = tmp_path / 'offsets'
        path.write_bytes(b'\xff\xfe\x00garbage')

        assert CursorStore(path).load() == {}


class TestSave:
    """Tests for CursorStore.save."""

    def test_roundtrip(self, tmp_path):
        """Test saved cursors load back unchanged."""
        store = CursorStore(tmp_path / 'offsets')
        cursors = {
            'dmr@/logs': Cursor('5:6', 100),
            'mmdvm@/logs': Cursor('5:7', 0),
        }

        assert store.save(cursors) is True
        assert store.load() == cursors

    def test_records_sorted_by_key(self, tmp_path):
        """Test the file is rewritten with one sorted record per line."""
        path = tmp_path / 'offsets'
        CursorStore(path).save({'b': Cursor('1:1', 1), 'a': Cursor('1:2', 2)})

        assert path.read_text() == "a\t1:2\t2\nb\t1:1\t1\n"

    def test_rewrites_wholesale(self, tmp_path):
        """Test keys missing from the mapping disappear from the file."""
        store = CursorStore(tmp_path / 'offsets')
        store.save({'a': Cursor('1:1', 1), 'b': Cursor('1:2', 2)})
        store.save({'b': Cursor('1:2', 3)})

        assert store.load() == {'b': Cursor('1:2', 3)}

    def test_creates_parent_directory(self, tmp_path):
        """Test a missing parent directory is created."""
        store = CursorStore(tmp_path / 'state' / 'offsets')

        assert store.save({'a': Cursor('1:1', 1)}) is True
        assert store.load() == {'a': Cursor('1:1', 1)}

    def test_failed_replace_keeps_previous(self, tmp_path):
        """Test a failing rename leaves the old store and no temp file."""
        path = tmp_path / 'offsets'
        store = CursorStore(path)
        store.save({'a': Cursor('1:1', 1)})

        with patch('src.dvstatus.tailing.cursor_store.os.replace', side_effect=OSError("disk full")):
            assert store.save({'a': Cursor('1:1', 99)}) is False

        assert store.load() == {'a': Cursor('1:1', 1)}
        assert [p.name for p in tmp_path.iterdir()] == ['offsets']
