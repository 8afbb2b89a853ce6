"""
Connection monitor.

The fixed-period ticker that drives everything: poll the source, track
connect/disconnect transitions, feed the race context and hand every event
to the publisher. Ticks never overlap; if one overruns its period the missed
slots are skipped.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .config import POLL_INTERVAL, MSG_CONNECTED, MSG_DISCONNECTED
from .engine import Event, RaceContext, make_event

logger = logging.getLogger(__name__)

# Runs a tick producer and delivers the events it returns
Publisher = Callable[[Callable[[], List[Event]]], Awaitable[Any]]


def iso_timestamp() -> str:
    """UTC now as ISO-8601 with millisecond precision, e.g. 2024-05-01T12:00:00.000Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class ConnectionMonitor:
    """Polls the telemetry source once per tick and derives events."""

    def __init__(self, source: Any, context: RaceContext, publish: Publisher,
                 poll_interval: float = POLL_INTERVAL):
        self.source = source
        self.context = context
        self.publish = publish
        self.poll_interval = poll_interval
        self.connected = False
        self.ticks_skipped = 0
        self._running = False

    def snapshot(self) -> Event:
        return self.context.snapshot(self.connected)

    def _poll_source(self) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        try:
            session_doc = self.source.read_session()
            if session_doc is None:
                return None, None
            return session_doc, self.source.read_sample()
        except Exception as e:
            # Any source failure is a disconnect
            logger.debug(f"Telemetry source read failed: {e}")
            return None, None

    def tick(self) -> List[Event]:
        """Run one polling cycle and return the events it produced, in order."""
        session_doc, values = self._poll_source()
        available = session_doc is not None and values is not None
        events: List[Event] = []

        if self.connected and not available:
            self.connected = False
            self.context.reset()
            logger.warning("❌ Disconnected from iRacing")
            events.append(make_event(MSG_DISCONNECTED, {'timestamp': iso_timestamp()}))
        elif available and not self.connected:
            self.connected = True
            logger.info("✅ Connected to iRacing")
            events.append(make_event(MSG_CONNECTED, {'timestamp': iso_timestamp()}))

        if available:
            events.extend(self.context.process(session_doc, values))
        return events

    async def step(self):
        """One tick, including delivery of all its events."""
        try:
            await self.publish(self.tick)
        except Exception as e:
            logger.error(f"Tick failed: {e}")

    async def run(self):
        """Tick every poll_interval until stop() is called."""
        loop = asyncio.get_running_loop()
        self._running = True
        next_tick = loop.time()
        logger.info(f"📡 Polling iRacing every {self.poll_interval * 1000:.0f}ms")

        while self._running:
            await self.step()

            next_tick += self.poll_interval
            now = loop.time()
            if now > next_tick:
                missed = int((now - next_tick) // self.poll_interval) + 1
                self.ticks_skipped += missed
                next_tick += missed * self.poll_interval
                logger.debug(f"Tick overran, skipping {missed} tick(s)")
            await asyncio.sleep(next_tick - now)

    def stop(self):
        self._running = False
