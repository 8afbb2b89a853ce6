"""
Data structures shared by the tracker, the detectors and the broadcast hub.

Field names are camelCase because they go straight onto the wire via asdict().
"""

from typing import Optional
from dataclasses import dataclass


# ============================================================================
# SESSION
# ============================================================================

@dataclass(frozen=True)
class Session:
    """One track/car/event configuration, identified by sessionId."""
    sessionId: int
    subsessionId: Optional[int]
    trackName: str
    trackConfig: Optional[str]
    carName: str
    sessionType: str
    sessionLaps: Optional[int]
    sessionTimeSeconds: Optional[float]
    isTimeLimited: bool
    sessionState: str


# ============================================================================
# TELEMETRY
# ============================================================================

@dataclass(frozen=True)
class TelemetrySample:
    """Decoded telemetry for a single tick. Not stored."""
    # Timing
    sessionTime: float = 0.0
    sessionTimeRemain: float = 0.0
    # Lap data
    lap: int = 0
    lapCompleted: int = 0
    lapDistPct: float = 0.0
    # Lap times
    lapCurrentTime: float = 0.0
    lapLastTime: float = 0.0
    lapBestTime: float = 0.0
    # Fuel
    fuelLevel: float = 0.0
    fuelLevelPct: float = 0.0
    fuelUsePerHour: float = 0.0
    # Pit status
    onPitRoad: bool = False
    pitstopActive: bool = False
    # Position
    carIdx: int = 0
    position: int = 0
    classPosition: int = 0
    speed: float = 0.0
    # Flags
    sessionFlags: int = 0
    # Track state
    trackTemp: float = 0.0
    airTemp: float = 0.0


# ============================================================================
# DERIVED EVENTS
# ============================================================================

@dataclass(frozen=True)
class LapRecord:
    lapNumber: int
    lapTime: float
    sessionTime: float
    fuelAtStart: float
    fuelAtEnd: float
    fuelUsed: float          # clamped to >= 0
    position: int
    classPosition: int
    isValid: bool
    isBestLap: bool


@dataclass(frozen=True)
class OpenPitStop:
    """Entry-side data captured on pit entry, completed on pit exit."""
    stopNumber: int
    lapNumber: int
    pitInTime: float
    fuelBefore: float


@dataclass(frozen=True)
class PitStopRecord:
    stopNumber: int
    lapNumber: int
    pitInTime: float
    pitOutTime: float
    pitDuration: float
    fuelBefore: float
    fuelAfter: float
    fuelAdded: float
    tyresChanged: bool = False
    repairsMade: bool = False
