"""Local station settings read from the modem host INI file.

Only the callsign and the duplex flag influence event handling (echo
suppression of our own network traffic); the remaining fields are read
so the dashboard can show them.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .logging_config import get_logger

logger = get_logger(__name__, namespace='watcher')


@dataclass(frozen=True)
class LocalStationConfig:
    """Identity of the station running the gateways."""
    callsign: str = ''
    duplex: bool = False
    rx_frequency: int = 0
    tx_frequency: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location: str = ''
    description: str = ''

    @property
    def suppress_own_network_echo(self) -> bool:
        return self.duplex and bool(self.callsign)


def _unquote(value: str) -> str:
    """Strip one pair of matching surrounding quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
        return value[1:-1]
    return value


def _to_int(value: str, default: int = 0) -> int:
    try:
        return int(value)
    except ValueError:
        return default


def _to_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except ValueError:
        return None


def parse_station_config(text: str) -> LocalStationConfig:
    """Parse INI text into a LocalStationConfig.

    The file is scanned line by line rather than by section: comments,
    blank lines and section headers are skipped and the first occurrence
    of each key wins.
    """
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in '#;[':
            continue
        key, sep, value = line.partition('=')
        if not sep:
            continue
        values.setdefault(key.strip(), value.strip())

    config = LocalStationConfig(
        callsign=values.get('Callsign', ''),
        duplex=_to_int(values.get('Duplex', '0')) == 1,
        rx_frequency=_to_int(values.get('RXFrequency', '0')),
        tx_frequency=_to_int(values.get('TXFrequency', '0')),
        latitude=_to_float(values.get('Latitude', '')),
        longitude=_to_float(values.get('Longitude', '')),
        location=_unquote(values.get('Location', '')),
        description=_unquote(values.get('Description', '')),
    )
    return config


def read_local_config(path: Path) -> LocalStationConfig:
    """Read the station config from path.

    A missing or unreadable file is not fatal: an empty config is returned,
    which disables echo suppression.
    """
    try:
        text = path.read_text(encoding='utf-8', errors='replace')
    except OSError as e:
        logger.warning("Cannot read %s (%s) - no local callsign/duplex known", path, e)
        return LocalStationConfig()

    config = parse_station_config(text)
    if config.callsign:
        logger.info("Local callsign %s, duplex=%s", config.callsign, int(config.duplex))
    else:
        logger.warning("No Callsign= found in %s", path)
    return config
