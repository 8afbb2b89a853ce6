"""
Runtime settings and protocol constants for the race companion service.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional, Mapping

logger = logging.getLogger(__name__)

# ============================================================================
# CONSTANTS
# ============================================================================

DEFAULT_HOST = '0.0.0.0'
DEFAULT_PORT = 8080
POLL_INTERVAL = 0.1      # 10Hz telemetry tick
RECONNECT_DELAY = 5.0    # Seconds between SDK startup attempts while disconnected
SNAPSHOT_LAP_COUNT = 10  # Laps included in the connection_status snapshot

# SessionFlags bit that marks the current lap as not counting
LAP_INVALID_FLAG = 0x00000001

# Outbound message types
MSG_CONNECTION_STATUS = 'connection_status'
MSG_CONNECTED = 'iracing_connected'
MSG_DISCONNECTED = 'iracing_disconnected'
MSG_SESSION_INFO = 'session_info'
MSG_TELEMETRY = 'telemetry'
MSG_LAP_COMPLETED = 'lap_completed'
MSG_PIT_STOP = 'pit_stop'

# Inbound message types
CMD_GET_STATUS = 'get_status'

ENV_PREFIX = 'RACE_COMPANION_'


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(ENV_PREFIX + name)
    if raw is None or raw == '':
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"⚠️ Invalid {ENV_PREFIX}{name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"⚠️ {ENV_PREFIX}{name} must be positive, using {default}")
        return default
    return value


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(ENV_PREFIX + name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"⚠️ Invalid {ENV_PREFIX}{name}={raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    """Service settings, overridable through RACE_COMPANION_* variables."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    poll_interval: float = POLL_INTERVAL
    reconnect_delay: float = RECONNECT_DELAY
    log_level: str = 'INFO'
    test_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """Create settings from environment variables."""
        if environ is None:
            environ = os.environ
        return cls(
            host=environ.get(ENV_PREFIX + 'HOST') or DEFAULT_HOST,
            port=_env_int(environ, 'PORT', DEFAULT_PORT),
            poll_interval=_env_float(environ, 'POLL_INTERVAL', POLL_INTERVAL),
            reconnect_delay=_env_float(environ, 'RECONNECT_DELAY', RECONNECT_DELAY),
            log_level=(environ.get(ENV_PREFIX + 'LOG_LEVEL') or 'INFO').upper(),
            test_file=environ.get(ENV_PREFIX + 'TEST_FILE') or None,
        )
