"""
Lap and pit stop detection.

Both detectors compare the current tick to state remembered from earlier
ticks and return a record when something completed. They are driven only by
the monitor's tick, so they keep no locks.
"""

import logging
from enum import Enum
from typing import List, Optional

from .config import LAP_INVALID_FLAG
from .models import LapRecord, OpenPitStop, PitStopRecord, TelemetrySample

logger = logging.getLogger(__name__)


# ============================================================================
# LAPS
# ============================================================================

class LapEventDetector:
    """Emits a LapRecord each time LapCompleted advances past a primed lap."""

    def __init__(self):
        self.laps: List[LapRecord] = []
        self.last_lap_number: int = 0
        self.last_fuel_level: float = 0.0

    def reset(self):
        self.laps.clear()
        self.last_lap_number = 0
        self.last_fuel_level = 0.0

    def on_sample(self, sample: TelemetrySample) -> Optional[LapRecord]:
        # Fuel baseline on the first tick that reports fuel
        if self.last_fuel_level == 0 and sample.fuelLevel > 0:
            self.last_fuel_level = sample.fuelLevel
            logger.debug(f"⛽ Initial fuel level: {self.last_fuel_level:.2f}L")

        record = None
        advanced = sample.lapCompleted > self.last_lap_number

        # 0 -> 1 has no fuel baseline for the previous lap, so it only primes
        if advanced and self.last_lap_number > 0:
            record = LapRecord(
                lapNumber=sample.lapCompleted,
                lapTime=sample.lapLastTime,
                sessionTime=sample.sessionTime,
                fuelAtStart=self.last_fuel_level,
                fuelAtEnd=sample.fuelLevel,
                fuelUsed=max(0.0, self.last_fuel_level - sample.fuelLevel),
                position=sample.position,
                classPosition=sample.classPosition,
                isValid=not (sample.sessionFlags & LAP_INVALID_FLAG),
                isBestLap=sample.lapLastTime == sample.lapBestTime,
            )
            self.laps.append(record)
            logger.info(f"⏱️ Lap {record.lapNumber}: {record.lapTime:.3f}s - Fuel: {record.fuelUsed:.2f}L")

        if advanced:
            self.last_lap_number = sample.lapCompleted
            self.last_fuel_level = sample.fuelLevel

        return record

    def recent_laps(self, count: int) -> List[LapRecord]:
        """The `count` most recent laps, oldest first."""
        if count <= 0:
            return []
        return list(self.laps[-count:])


# ============================================================================
# PIT STOPS
# ============================================================================

class PitState(Enum):
    OUT_OF_PIT = 'out_of_pit'
    IN_PIT = 'in_pit'


class PitStopDetector:
    """
    Two-state machine driven by OnPitRoad.

    OUT_OF_PIT -> IN_PIT opens a stop; IN_PIT -> OUT_OF_PIT completes it and
    returns the PitStopRecord. Tyre changes and repairs cannot be read from
    the available telemetry and are always reported as False.
    """

    def __init__(self):
        self.pit_stops: List[PitStopRecord] = []
        self.state: PitState = PitState.OUT_OF_PIT
        self.open_stop: Optional[OpenPitStop] = None
        self.stop_counter: int = 0

    def reset(self):
        self.pit_stops.clear()
        self.state = PitState.OUT_OF_PIT
        self.open_stop = None
        self.stop_counter = 0

    def on_sample(self, sample: TelemetrySample) -> Optional[PitStopRecord]:
        if self.state is PitState.OUT_OF_PIT and sample.onPitRoad:
            self.stop_counter += 1
            self.open_stop = OpenPitStop(
                stopNumber=self.stop_counter,
                lapNumber=sample.lap,
                pitInTime=sample.sessionTime,
                fuelBefore=sample.fuelLevel,
            )
            self.state = PitState.IN_PIT
            logger.info(f"🔧 Pit entry - Lap {sample.lap}")
            return None

        if self.state is PitState.IN_PIT and not sample.onPitRoad:
            entry = self.open_stop
            self.state = PitState.OUT_OF_PIT
            self.open_stop = None
            if entry is None:
                return None

            record = PitStopRecord(
                stopNumber=entry.stopNumber,
                lapNumber=entry.lapNumber,
                pitInTime=entry.pitInTime,
                pitOutTime=sample.sessionTime,
                pitDuration=sample.sessionTime - entry.pitInTime,
                fuelBefore=entry.fuelBefore,
                fuelAfter=sample.fuelLevel,
                fuelAdded=sample.fuelLevel - entry.fuelBefore,
                tyresChanged=False,
                repairsMade=False,
            )
            self.pit_stops.append(record)
            logger.info(f"🔧 Pit exit - Duration: {record.pitDuration:.1f}s, "
                        f"Fuel added: {record.fuelAdded:.1f}L")
            return record

        return None
