"""
Session tracking.

Parses the session-description document (WeekendInfo / SessionInfo /
DriverInfo sections, as pyirsdk exposes them) into a Session and reports
when the session identity changes.
"""

import re
import logging
from typing import Any, Dict, List, Optional, Tuple

from .models import Session

logger = logging.getLogger(__name__)

UNKNOWN = 'Unknown'

_MINUTES_RE = re.compile(r'([\d.]+)\s*min', re.IGNORECASE)
_HOURS_RE = re.compile(r'([\d.]+)\s*hour', re.IGNORECASE)
_SECONDS_RE = re.compile(r'([\d.]+)\s*sec', re.IGNORECASE)


def parse_session_time(text: Any) -> Tuple[Optional[float], bool]:
    """
    Parse a session time limit such as "90 min", "2 hours" or "600.0000 sec".

    Returns:
        (seconds, is_time_limited). "unlimited" gives (None, False); any
        other text that cannot be parsed gives (None, True).
    """
    if isinstance(text, str) and text.strip().lower() == 'unlimited':
        return None, False
    if not isinstance(text, str):
        return None, True

    for pattern, factor in ((_MINUTES_RE, 60), (_HOURS_RE, 3600), (_SECONDS_RE, 1)):
        match = pattern.search(text)
        if match:
            try:
                return float(match.group(1)) * factor, True
            except ValueError:
                # e.g. "1.2.3 min"
                return None, True
    return None, True


def parse_session_laps(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() == 'unlimited':
        return None
    try:
        laps = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None
    return laps or None


def _section(doc: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = doc.get(key)
    return value if isinstance(value, dict) else {}


def _entries(section: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    """Dict items of a list-valued field; anything else reads as empty."""
    value = section.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _active_session_entry(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the SessionInfo.Sessions entry for the current SessionNum."""
    sessions = _entries(_section(doc, 'SessionInfo'), 'Sessions')
    if not sessions:
        return {}
    session_num = doc.get('SessionNum')
    if session_num is not None:
        for entry in sessions:
            if entry.get('SessionNum') == session_num:
                return entry
    return sessions[0]


def _player_car_name(doc: Dict[str, Any]) -> str:
    driver_info = _section(doc, 'DriverInfo')
    drivers = _entries(driver_info, 'Drivers')
    if not drivers:
        return UNKNOWN
    player_idx = driver_info.get('DriverCarIdx')
    for driver in drivers:
        if player_idx is not None and driver.get('CarIdx') == player_idx:
            return driver.get('CarScreenName') or UNKNOWN
    return drivers[0].get('CarScreenName') or UNKNOWN


def _as_int(value: Any, default: Optional[int]) -> Optional[int]:
    try:
        return int(value) if value is not None else default
    except (TypeError, ValueError, OverflowError):
        return default


def parse_session(doc: Dict[str, Any]) -> Session:
    """Build a Session from a session document, defaulting missing fields."""
    weekend = _section(doc, 'WeekendInfo')
    entry = _active_session_entry(doc)
    seconds, time_limited = parse_session_time(entry.get('SessionTime'))

    return Session(
        sessionId=_as_int(weekend.get('SessionID'), 0) or 0,
        subsessionId=_as_int(weekend.get('SubSessionID'), None) or None,
        trackName=weekend.get('TrackDisplayName') or weekend.get('TrackName') or UNKNOWN,
        trackConfig=weekend.get('TrackConfigName') or None,
        carName=_player_car_name(doc),
        sessionType=entry.get('SessionType') or UNKNOWN,
        sessionLaps=parse_session_laps(entry.get('SessionLaps')),
        sessionTimeSeconds=seconds,
        isTimeLimited=time_limited,
        sessionState=str(entry.get('SessionState') or UNKNOWN),
    )


class SessionTracker:
    """Owns the current session identity."""

    def __init__(self):
        self.session: Optional[Session] = None

    def update(self, doc: Dict[str, Any]) -> Optional[Session]:
        """
        Feed a session document.

        Returns:
            The new Session when its sessionId differs from the stored one
            (or none was stored), otherwise None.
        """
        session = parse_session(doc)
        if self.session is not None and self.session.sessionId == session.sessionId:
            return None

        self.session = session
        logger.info(f"🏁 New session: {session.trackName} - {session.carName} "
                    f"({session.sessionType}, id {session.sessionId})")
        return session

    def reset(self):
        self.session = None
