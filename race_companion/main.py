#!/usr/bin/env python3
"""
Race Companion - iRacing event service
======================================
Polls iRacing at 10Hz, derives session / lap / pit stop events and streams
them to any number of WebSocket subscribers.
"""

import sys
import asyncio
import logging
import contextlib
from typing import Optional

import websockets

from .config import Settings
from .engine import RaceContext
from .hub import BroadcastHub
from .monitor import ConnectionMonitor
from .sim_process import find_sim_process
from .source import IRacingSource, SourceUnavailableError

logger = logging.getLogger('RaceCompanion')


def configure_logging(level: str = 'INFO'):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='[%(asctime)s] [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S'
    )


async def serve(settings: Settings, source: IRacingSource):
    """Run the ticker and the WebSocket endpoint until cancelled."""
    context = RaceContext()
    hub = BroadcastHub(snapshot=lambda: monitor.snapshot(), send_timeout=settings.poll_interval)
    monitor = ConnectionMonitor(source, context, hub.publish_tick, poll_interval=settings.poll_interval)

    ws_server = await websockets.serve(hub.handler, settings.host, settings.port)
    logger.info(f"✅ WebSocket server started on ws://{settings.host}:{settings.port}")

    ticker = asyncio.create_task(monitor.run())
    try:
        await ticker
    finally:
        # Stop producing before closing subscribers, then the listener
        monitor.stop()
        ticker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await ticker
        await hub.close_all()
        ws_server.close()
        await ws_server.wait_closed()
        source.shutdown()
        logger.info("Companion stopped")


def main(settings: Optional[Settings] = None) -> int:
    """Entry point. Returns the process exit status."""
    if settings is None:
        settings = Settings.from_env()
    configure_logging(settings.log_level)

    logger.info("=" * 50)
    logger.info("Race Companion")
    logger.info("=" * 50)
    logger.info(f"WebSocket: {settings.host}:{settings.port}")
    logger.info(f"Poll interval: {settings.poll_interval}s")
    if settings.test_file:
        logger.info(f"Replaying telemetry dump: {settings.test_file}")
    logger.info("=" * 50)

    try:
        source = IRacingSource(reconnect_delay=settings.reconnect_delay,
                               test_file=settings.test_file)
    except SourceUnavailableError as e:
        logger.error(f"❌ Cannot start telemetry source: {e}")
        return 1

    sim = find_sim_process()
    if sim:
        logger.info(f"🏎️  iRacing process found: {sim}")
    else:
        logger.info("Waiting for iRacing... launch the sim and join a session")

    try:
        asyncio.run(serve(settings, source))
    except KeyboardInterrupt:
        logger.info("Shutdown requested")
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
