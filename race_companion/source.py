"""
Telemetry source backed by pyirsdk.

Exposes the two accessors the monitor polls: the session document and the
flat telemetry mapping. Both return None while the simulator is not
available. SDK startup is retried at most once per reconnect delay.
"""

import time
import logging
from typing import Any, Callable, Dict, Optional

from .config import RECONNECT_DELAY
from .decoder import TELEMETRY_FIELDS

logger = logging.getLogger(__name__)

SESSION_SECTIONS = ('WeekendInfo', 'SessionInfo', 'DriverInfo')


class SourceUnavailableError(RuntimeError):
    """The iRacing SDK could not be loaded or constructed."""


def create_sdk():
    """Construct the pyirsdk client, or raise SourceUnavailableError."""
    try:
        import irsdk  # only needed at runtime; tests inject a fake SDK
        return irsdk.IRSDK()
    except Exception as e:
        raise SourceUnavailableError(f"pyirsdk not usable: {e}") from e


class IRacingSource:
    """Reads session info and telemetry from the iRacing shared memory."""

    def __init__(self, sdk: Any = None, reconnect_delay: float = RECONNECT_DELAY,
                 test_file: Optional[str] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.ir = sdk if sdk is not None else create_sdk()
        self.reconnect_delay = reconnect_delay
        self.test_file = test_file
        self._clock = clock
        self.started = False
        self._last_attempt: Optional[float] = None

    def _startup(self) -> bool:
        if self.test_file:
            return bool(self.ir.startup(test_file=self.test_file))
        return bool(self.ir.startup())

    def _is_live(self) -> bool:
        return bool(self.ir.is_initialized and self.ir.is_connected)

    def ensure_started(self) -> bool:
        """Start the SDK if needed. True when the simulator is readable."""
        if self.started:
            if self._is_live():
                return True
            logger.warning("⚠️  iRacing SDK lost connection")
            self.shutdown()
            self._last_attempt = self._clock()
            return False

        now = self._clock()
        if self._last_attempt is not None and now - self._last_attempt < self.reconnect_delay:
            return False
        self._last_attempt = now

        try:
            if self._startup() and self._is_live():
                self.started = True
                logger.info("✅ iRacing SDK started")
        except Exception as e:
            logger.debug(f"SDK startup failed: {e}")
            self.started = False
        return self.started

    def read_session(self) -> Optional[Dict[str, Any]]:
        """Session document, or None while unavailable."""
        if not self.ensure_started():
            return None
        weekend = self.ir['WeekendInfo']
        if not weekend:
            return None
        doc = {'WeekendInfo': weekend}
        for section in SESSION_SECTIONS[1:]:
            doc[section] = self.ir[section]
        doc['SessionNum'] = self.ir['SessionNum']
        return doc

    def read_sample(self) -> Optional[Dict[str, Any]]:
        """Raw telemetry values for the fields the service decodes."""
        if not self.ensure_started():
            return None
        self.ir.freeze_var_buffer_latest()
        try:
            return {name: self.ir[name] for name in TELEMETRY_FIELDS}
        finally:
            self.ir.unfreeze_var_buffer_latest()

    def shutdown(self):
        if not self.started:
            return
        self.started = False
        try:
            self.ir.shutdown()
        except Exception as e:
            logger.debug(f"SDK shutdown failed: {e}")
