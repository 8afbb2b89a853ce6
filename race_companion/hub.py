"""
Broadcast hub: the live subscriber registry behind the WebSocket endpoint.

New subscribers get a connection_status snapshot first; after that every
published event is sent to every open subscriber. A subscriber whose send
fails or stalls is dropped without affecting the others.
"""

import json
import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List

import websockets
from websockets.protocol import State

from .config import CMD_GET_STATUS, POLL_INTERVAL

logger = logging.getLogger(__name__)

Event = Dict[str, Any]


class BroadcastHub:
    """WebSocket fan-out of race events."""

    def __init__(self, snapshot: Callable[[], Event], send_timeout: float = POLL_INTERVAL):
        self.snapshot = snapshot
        self.send_timeout = send_timeout
        self.clients: set = set()
        # Held while a tick mutates race state and delivers its events, and
        # while a snapshot is taken and sent. A snapshot therefore reflects
        # either none or all of a tick, never part of it.
        self._lock = asyncio.Lock()

    @staticmethod
    def _is_open(websocket) -> bool:
        return getattr(websocket, 'state', State.OPEN) is State.OPEN

    async def _send(self, websocket, message_str: str) -> bool:
        """Send with a time bound. False means the subscriber should go."""
        if not self._is_open(websocket):
            return False
        try:
            await asyncio.wait_for(websocket.send(message_str), self.send_timeout)
            return True
        except websockets.exceptions.ConnectionClosed:
            return False
        except asyncio.TimeoutError:
            logger.debug(f"Send timed out after {self.send_timeout}s, dropping client")
            return False
        except Exception as e:
            logger.debug(f"Broadcast error, dropping client: {e}")
            return False

    async def _send_snapshot(self, websocket) -> bool:
        return await self._send(websocket, json.dumps(self.snapshot()))

    async def attach(self, websocket):
        """Register a subscriber and send it the current snapshot."""
        async with self._lock:
            self.clients.add(websocket)
            if not await self._send_snapshot(websocket):
                self.clients.discard(websocket)
        logger.info(f"📡 Client connected. Total: {len(self.clients)}")

    async def detach(self, websocket):
        """Remove a subscriber. Unknown subscribers are ignored."""
        self.clients.discard(websocket)
        logger.info(f"📡 Client disconnected. Total: {len(self.clients)}")

    async def _deliver(self, events: Iterable[Event]):
        """Send events in order to every open subscriber. Caller holds the lock."""
        dead_clients = set()
        for event in events:
            clients = [c for c in self.clients if c not in dead_clients]
            if not clients:
                break
            message_str = json.dumps(event)
            results = await asyncio.gather(*(self._send(c, message_str) for c in clients))
            dead_clients.update(c for c, ok in zip(clients, results) if not ok)

        for client in dead_clients:
            self.clients.discard(client)
        if dead_clients:
            logger.info(f"📡 Dropped {len(dead_clients)} client(s). Total: {len(self.clients)}")

    async def publish(self, event: Event):
        """Send one event to every open subscriber."""
        await self.publish_many([event])

    async def publish_many(self, events: List[Event]):
        """Send a batch of events without letting a snapshot in between."""
        async with self._lock:
            await self._deliver(events)

    async def publish_tick(self, produce: Callable[[], List[Event]]) -> List[Event]:
        """
        Run one producer tick and deliver everything it returned, all under
        the registry lock.
        """
        async with self._lock:
            events = produce()
            await self._deliver(events)
        return events

    async def handler(self, websocket):
        """Serve one WebSocket connection for its whole lifetime."""
        await self.attach(websocket)
        try:
            async for message in websocket:
                await self._handle_command(websocket, message)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            await self.detach(websocket)

    async def _handle_command(self, websocket, message):
        """Handle an inbound message from a subscriber."""
        try:
            data = json.loads(message)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Invalid JSON message: {e}")
            return

        msg_type = data.get('type', '') if isinstance(data, dict) else ''
        if msg_type == CMD_GET_STATUS:
            async with self._lock:
                await self._send_snapshot(websocket)
        else:
            logger.debug(f"Unknown message type: {msg_type}")

    async def close_all(self):
        """Close every subscriber connection (shutdown)."""
        async with self._lock:
            clients = list(self.clients)
            self.clients.clear()
        for client in clients:
            try:
                await client.close()
            except Exception as e:
                logger.debug(f"Error closing client: {e}")
        if clients:
            logger.info(f"📡 Closed {len(clients)} client connection(s)")
