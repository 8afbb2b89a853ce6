"""
Session-scoped race state.

RaceContext owns the session tracker and both detectors. It runs them in
order for one tick and resets them together, so current session, lap history
and pit history always change as one unit.
"""

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Mapping, Optional

from .config import (
    SNAPSHOT_LAP_COUNT,
    MSG_CONNECTION_STATUS,
    MSG_SESSION_INFO,
    MSG_TELEMETRY,
    MSG_LAP_COMPLETED,
    MSG_PIT_STOP,
)
from .decoder import decode_sample
from .detectors import LapEventDetector, PitStopDetector
from .models import Session
from .session_tracker import SessionTracker

logger = logging.getLogger(__name__)

Event = Dict[str, Any]


def make_event(event_type: str, data: Any) -> Event:
    """Build the {type, data} envelope every outbound message uses."""
    return {'type': event_type, 'data': data}


class RaceContext:
    """Current session plus everything derived from it."""

    def __init__(self, snapshot_laps: int = SNAPSHOT_LAP_COUNT):
        self.snapshot_laps = snapshot_laps
        self.tracker = SessionTracker()
        self.lap_detector = LapEventDetector()
        self.pit_detector = PitStopDetector()

    @property
    def session(self) -> Optional[Session]:
        return self.tracker.session

    def reset(self):
        """Forget the session and all derived state."""
        self.tracker.reset()
        self._reset_derived()
        logger.info("🔄 Race state reset")

    def _reset_derived(self):
        self.lap_detector.reset()
        self.pit_detector.reset()

    def process(self, session_doc: Dict[str, Any], values: Mapping[str, Any]) -> List[Event]:
        """
        Run one tick: session first, then the decoded sample through both
        detectors. Returns the events produced, in order.
        """
        events: List[Event] = []

        new_session = self.tracker.update(session_doc)
        if new_session is not None:
            self._reset_derived()
            events.append(make_event(MSG_SESSION_INFO, asdict(new_session)))

        sample = decode_sample(values)
        events.append(make_event(MSG_TELEMETRY, asdict(sample)))

        if self.session is None:
            return events

        lap = self.lap_detector.on_sample(sample)
        if lap is not None:
            events.append(make_event(MSG_LAP_COMPLETED, asdict(lap)))

        pit_stop = self.pit_detector.on_sample(sample)
        if pit_stop is not None:
            events.append(make_event(MSG_PIT_STOP, asdict(pit_stop)))

        return events

    def snapshot(self, is_connected: bool) -> Event:
        """connection_status message for a newly attached subscriber."""
        session = self.session
        return make_event(MSG_CONNECTION_STATUS, {
            'isConnected': is_connected,
            'session': asdict(session) if session is not None else None,
            'laps': [asdict(lap) for lap in self.lap_detector.recent_laps(self.snapshot_laps)],
            'pitStops': [asdict(stop) for stop in self.pit_detector.pit_stops],
        })
