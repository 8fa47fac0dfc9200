"""Configuration module for the gateway log monitor.

Centralizes all configuration constants and environment variables
to eliminate scattered magic numbers and duplicated settings.
"""

import os
from pathlib import Path

# ============================================================================
# Path Configuration
# ============================================================================

# Directory the gateway daemons write their dated log files into
LOG_DIR = Path(os.getenv("DVSTATUS_LOG_DIR", "/var/log/mmdvm"))

# Directories and/or explicit log files to watch, separated by os.pathsep.
# Directories expand to the three role files of the current day.
LOG_INPUTS = [
    Path(p) for p in os.getenv("DVSTATUS_LOG_INPUTS", str(LOG_DIR)).split(os.pathsep)
    if p
]

# Persisted read positions, one record per watched file
CURSOR_FILE = Path(os.getenv("DVSTATUS_CURSOR_FILE", "/tmp/logparse.offsets"))

# Live status / last heard database
DB_PATH = Path(os.getenv(
    "DVSTATUS_DB_PATH",
    str(Path.home() / ".dvstatus" / "status.db")
))

# Modem host configuration holding the local callsign and duplex flag
STATION_INI = Path(os.getenv("DVSTATUS_STATION_INI", "/etc/MMDVMHost.ini"))


# ============================================================================
# Log File Roles
# ============================================================================

# Role name -> filename prefix; files are named <prefix>-YYYY-MM-DD.log
LOG_ROLES = {
    'mmdvm': 'MMDVM',
    'ysf': 'YSFGateway',
    'dmr': 'DMRGateway',
}

LOG_SUFFIX = '.log'


# ============================================================================
# Polling
# ============================================================================

# Pause between two read cycles (seconds)
POLL_INTERVAL_SECONDS = float(os.getenv("DVSTATUS_POLL_INTERVAL", "1.0"))

# Most bytes read from one file per read call; a cycle reads further
# chunks until it has caught up
READ_CHUNK_BYTES = int(os.getenv("DVSTATUS_READ_CHUNK_BYTES", str(1024 * 1024)))


# ============================================================================
# Server Configuration
# ============================================================================

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000

# Dashboard query defaults and bounds
LASTHEARD_DEFAULT_LIMIT = 10
LASTHEARD_MAX_LIMIT = 100
ACTIVITY_DEFAULT_HOURS = 48
ACTIVITY_MAX_HOURS = 168
HEATMAP_DEFAULT_DAYS = 30
HEATMAP_MAX_DAYS = 365

# Hall of fame: window, and transmissions shorter than this are not counted
HALL_OF_FAME_DEFAULT_HOURS = 720
HALL_OF_FAME_MIN_DURATION = 15.0
HALL_OF_FAME_MAX_LIMIT = 50
