"""Live status store backing the dashboard.

Three tables:
- status: a single row (id=1) describing what is on air right now
- lastheard: one row per finished transmission
- reflector: a single row (id=1) with the link target per family

Every write is an idempotent upsert or an append, so replaying the same
events after a crash only repeats rows in lastheard.
"""

import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional

from .config import DB_PATH
from .logging_config import get_logger
from .models import IDLE_MODE, EndEvent, InfoEvent, ModeChangeEvent, ParsedEvent, StartEvent
from .sink import EventSink, ReflectorTracker
from .types import (
    ActivityBucket,
    CallsignCount,
    CallsignDuration,
    HallOfFameEntry,
    HeatmapCell,
    LastHeardRow,
    ModeActivity,
    ModeDuration,
    ReflectorRow,
    StatusRow,
)

logger = get_logger(__name__, namespace='sink')

# Protocol family -> reflector table column
REFLECTOR_COLUMNS = {
    'D-Star': 'dstar',
    'YSF': 'fusion',
    'DMR': 'dmr',
}

# Dashboard family keys; mode strings are matched by prefix so older rows
# written as "D-Star ..." or "System Fusion" still count
MODE_FAMILIES = ('dstar', 'ysf', 'dmr')
_FAMILY_CASE = '''CASE
    WHEN mode LIKE 'D-Star%' THEN 'dstar'
    WHEN mode LIKE 'System Fusion%' OR mode LIKE 'YSF%' THEN 'ysf'
    WHEN mode LIKE 'DMR%' THEN 'dmr'
    ELSE 'other'
END'''


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='seconds')


def init_database():
    """Initialize the status database with schema and the singleton rows."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()

        c.execute('''
            CREATE TABLE IF NOT EXISTS status (
                id INTEGER PRIMARY KEY,
                mode TEXT,
                callsign TEXT,
                dgid INTEGER,
                slot INTEGER,
                source TEXT,
                active INTEGER NOT NULL DEFAULT 0,
                ber REAL,
                duration REAL,
                updated_at TEXT
            )
        ''')

        c.execute('''
            CREATE TABLE IF NOT EXISTS lastheard (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                callsign TEXT,
                mode TEXT,
                dgid INTEGER,
                slot INTEGER,
                source TEXT,
                duration REAL,
                ber REAL,
                ts TEXT NOT NULL
            )
        ''')

        c.execute('''
            CREATE INDEX IF NOT EXISTS idx_lastheard_ts
            ON lastheard(ts)
        ''')

        c.execute('''
            CREATE TABLE IF NOT EXISTS reflector (
                id INTEGER PRIMARY KEY,
                dstar TEXT,
                fusion TEXT,
                dmr TEXT,
                updated_at TEXT
            )
        ''')

        now = _now_iso()
        c.execute('''
            INSERT OR IGNORE INTO status (id, mode, callsign, active, updated_at)
            VALUES (1, ?, '', 0, ?)
        ''', (IDLE_MODE, now))
        c.execute('''
            INSERT OR IGNORE INTO reflector (id, updated_at)
            VALUES (1, ?)
        ''', (now,))

        conn.commit()


def upsert_status(
    mode: str,
    callsign: str,
    dgid: Optional[int],
    slot: Optional[int],
    source: Optional[str],
    active: bool,
    ber: Optional[float] = None,
    duration: Optional[float] = None,
) -> None:
    """Replace the live status row."""
    with sqlite3.connect(DB_PATH) as conn:
        conn.execute('''
            INSERT INTO status (id, mode, callsign, dgid, slot, source, active, ber, duration, updated_at)
            VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                mode = excluded.mode,
                callsign = excluded.callsign,
                dgid = excluded.dgid,
                slot = excluded.slot,
                source = excluded.source,
                active = excluded.active,
                ber = excluded.ber,
                duration = excluded.duration,
                updated_at = excluded.updated_at
        ''', (mode, callsign, dgid, slot, source, int(active), ber, duration, _now_iso()))
        conn.commit()


def insert_lastheard(
    callsign: str,
    mode: str,
    dgid: Optional[int],
    slot: Optional[int],
    source: Optional[str],
    duration: Optional[float],
    ber: Optional[float],
    ts: Optional[str] = None,
) -> None:
    """Append a finished transmission."""
    with sqlite3.connect(DB_PATH) as conn:
        conn.execute('''
            INSERT INTO lastheard (callsign, mode, dgid, slot, source, duration, ber, ts)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ''', (callsign, mode, dgid, slot, source, duration, ber, ts or _now_iso()))
        conn.commit()


def set_reflector(family: str, target: str) -> None:
    """Store the link target of one family ('' = not linked)."""
    column = REFLECTOR_COLUMNS.get(family)
    if column is None:
        raise ValueError(f"unknown protocol family: {family!r}")
    with sqlite3.connect(DB_PATH) as conn:
        # column comes from the fixed mapping above, never from input
        conn.execute(f'''
            INSERT INTO reflector (id, {column}, updated_at)
            VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                {column} = excluded.{column},
                updated_at = excluded.updated_at
        ''', (target, _now_iso()))
        conn.commit()


def get_status() -> StatusRow | None:
    """Get the live status row."""
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute('''
            SELECT mode, callsign, dgid, slot, source, active, ber, duration, updated_at
            FROM status WHERE id = 1
        ''')
        row = c.fetchone()
    if not row:
        return None
    return {
        'mode': row[0],
        'callsign': row[1] or '',
        'dgid': row[2],
        'slot': row[3],
        'source': row[4],
        'active': bool(row[5]),
        'ber': row[6],
        'duration': row[7],
        'updated_at': row[8],
    }


def get_lastheard(limit: int = 10) -> list[LastHeardRow]:
    """Get finished transmissions, newest first."""
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute('''
            SELECT callsign, mode, dgid, slot, source, duration, ber, ts
            FROM lastheard
            ORDER BY ts DESC, id DESC
            LIMIT ?
        ''', (limit,))
        rows = c.fetchall()
    return [
        {
            'callsign': r[0] or '',
            'mode': r[1],
            'dgid': r[2],
            'slot': r[3],
            'source': r[4],
            'duration': r[5],
            'ber': r[6],
            'ts': r[7],
        }
        for r in rows
    ]


def get_reflectors() -> ReflectorRow:
    """Get the current link target per family."""
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute('SELECT dstar, fusion, dmr, updated_at FROM reflector WHERE id = 1')
        row = c.fetchone()
    if not row:
        return {'dstar': None, 'fusion': None, 'dmr': None, 'updated_at': None}
    return {'dstar': row[0], 'fusion': row[1], 'dmr': row[2], 'updated_at': row[3]}


def _cutoff(hours: float) -> str:
    return (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat(timespec='seconds')


def get_activity(hours: int = 48) -> list[ActivityBucket]:
    """Count finished transmissions per hour, split into RF and NET.

    Args:
        hours: How far back to look

    Returns:
        Buckets ordered by hour, only hours with traffic
    """
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute('''
            SELECT substr(ts, 1, 13) AS hour,
                   SUM(CASE WHEN source = 'RF' THEN 1 ELSE 0 END) AS rf,
                   SUM(CASE WHEN source = 'NET' THEN 1 ELSE 0 END) AS net
            FROM lastheard
            WHERE ts >= ?
            GROUP BY hour
            ORDER BY hour
        ''', (_cutoff(hours),))
        rows = c.fetchall()
    return [{'hour': f"{r[0]}:00", 'rf': r[1] or 0, 'net': r[2] or 0} for r in rows]


def get_activity_by_mode(hours: int = 48) -> dict[str, ModeActivity]:
    """Count finished transmissions per protocol family, split into RF and NET.

    Every family is present, with zero counts when it had no traffic.
    """
    result: dict[str, ModeActivity] = {
        family: {'rf': 0, 'net': 0, 'total': 0} for family in MODE_FAMILIES
    }
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute(f'''
            SELECT {_FAMILY_CASE} AS family,
                   SUM(CASE WHEN source = 'RF' THEN 1 ELSE 0 END) AS rf,
                   SUM(CASE WHEN source = 'NET' THEN 1 ELSE 0 END) AS net,
                   COUNT(*) AS total
            FROM lastheard
            WHERE ts >= ?
            GROUP BY family
        ''', (_cutoff(hours),))
        rows = c.fetchall()
    for family, rf, net, total in rows:
        if family in result:
            result[family] = {'rf': rf or 0, 'net': net or 0, 'total': total}
    return result


def get_avg_duration_by_mode() -> list[ModeDuration]:
    """Average length of finished transmissions per mode, longest first."""
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute('''
            SELECT mode, AVG(duration) AS avg
            FROM lastheard
            WHERE duration IS NOT NULL AND mode IS NOT NULL
            GROUP BY mode
            ORDER BY avg DESC
        ''')
        rows = c.fetchall()
    return [{'mode': r[0], 'avg': round(r[1], 3)} for r in rows]


def get_top_callsigns(hours: int = 48, limit: int = 10) -> list[CallsignCount]:
    """Most active callsigns by number of transmissions."""
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute('''
            SELECT UPPER(callsign) AS cs, COUNT(*) AS cnt, COALESCE(SUM(duration), 0) AS sec
            FROM lastheard
            WHERE ts >= ? AND callsign IS NOT NULL AND callsign != ''
            GROUP BY cs
            ORDER BY cnt DESC, sec DESC
            LIMIT ?
        ''', (_cutoff(hours), limit))
        rows = c.fetchall()
    return [{'callsign': r[0], 'count': r[1], 'seconds': round(r[2], 3)} for r in rows]


def get_top_callsigns_by_duration(limit: int = 10) -> list[CallsignDuration]:
    """Callsigns with the most total airtime."""
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute('''
            SELECT UPPER(callsign) AS cs, SUM(duration) AS sec
            FROM lastheard
            WHERE duration IS NOT NULL AND callsign IS NOT NULL AND callsign != ''
            GROUP BY cs
            ORDER BY sec DESC
            LIMIT ?
        ''', (limit,))
        rows = c.fetchall()
    return [{'callsign': r[0], 'seconds': round(r[1], 3)} for r in rows]


def get_heatmap(days: int = 30) -> list[HeatmapCell]:
    """Count transmissions per weekday and hour of day (UTC).

    Returns:
        Only slots with traffic; weekday 0 is Sunday
    """
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute('''
            SELECT CAST(strftime('%w', substr(ts, 1, 10)) AS INTEGER) AS weekday,
                   CAST(substr(ts, 12, 2) AS INTEGER) AS hour,
                   COUNT(*) AS cnt
            FROM lastheard
            WHERE ts >= ?
            GROUP BY weekday, hour
            ORDER BY weekday, hour
        ''', (_cutoff(days * 24),))
        rows = c.fetchall()
    return [{'weekday': r[0], 'hour': r[1], 'count': r[2]} for r in rows]


def get_hall_of_fame(
    hours: int = 720,
    limit: int = 10,
    min_duration: float = 15.0,
) -> list[HallOfFameEntry]:
    """Rank callsigns by a score of transmission count and total airtime.

    Only transmissions of at least min_duration seconds count. The score
    is 60 points for the callsign with the most transmissions plus 40 for
    the one with the most airtime, scaled linearly for everyone else.

    Args:
        hours: How far back to look
        limit: Maximum number of entries
        min_duration: Shortest transmission that counts, in seconds

    Returns:
        Entries ordered by score, then count, then airtime
    """
    with sqlite3.connect(DB_PATH) as conn:
        c = conn.cursor()
        c.execute('''
            SELECT UPPER(callsign) AS cs, COUNT(*) AS cnt, SUM(duration) AS sec
            FROM lastheard
            WHERE ts >= ? AND duration >= ? AND callsign IS NOT NULL AND callsign != ''
            GROUP BY cs
        ''', (_cutoff(hours), min_duration))
        rows = c.fetchall()
    if not rows:
        return []

    max_count = max(r[1] for r in rows)
    max_seconds = max(r[2] for r in rows)
    entries: list[HallOfFameEntry] = []
    for callsign, count, seconds in rows:
        score = count / max_count * 60
        if max_seconds > 0:
            score += seconds / max_seconds * 40
        entries.append({
            'callsign': callsign,
            'qso_count': count,
            'total_sec': round(seconds, 3),
            'avg_sec': round(seconds / count, 3),
            'score': round(score, 3),
        })
    entries.sort(key=lambda e: (e['score'], e['qso_count'], e['total_sec']), reverse=True)
    return entries[:limit]


class StatusStoreSink(EventSink):
    """Apply events to the status store.

    Database errors are logged per event and never propagate to the caller.
    """

    def __init__(self, tracker: Optional[ReflectorTracker] = None):
        self.tracker = tracker or ReflectorTracker()

    def on_event(self, event: ParsedEvent) -> None:
        try:
            super().on_event(event)
        except sqlite3.Error:
            logger.exception("Failed to store %s event", event.kind)

    def on_start(self, event: StartEvent) -> None:
        upsert_status(event.mode, event.callsign, event.dg_id, event.slot,
                      event.source, active=True)

    def on_end(self, event: EndEvent) -> None:
        insert_lastheard(event.callsign, event.mode, event.dg_id, event.slot,
                         event.source, event.duration, event.ber)
        upsert_status(event.mode, event.callsign, event.dg_id, event.slot,
                      event.source, active=False, ber=event.ber, duration=event.duration)

    def on_mode_change(self, event: ModeChangeEvent) -> None:
        # Other modes are announced right before a start; writing them
        # would overwrite the freshly set active row.
        if event.is_idle:
            upsert_status(IDLE_MODE, '', None, None, None, active=False)

    def on_info(self, event: InfoEvent) -> None:
        if event.mode not in REFLECTOR_COLUMNS or not self.tracker.changed(event):
            return
        # The tracker only holds targets that reached the table
        set_reflector(event.mode, event.info)
        self.tracker.commit(event)
