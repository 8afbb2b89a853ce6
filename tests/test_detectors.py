from race_companion.detectors import LapEventDetector, PitState, PitStopDetector
from race_companion.models import TelemetrySample


def lap_sample(completed, fuel, **kwargs):
    return TelemetrySample(lapCompleted=completed, fuelLevel=fuel, **kwargs)


def pit_sample(on_pit_road, session_time, fuel, lap=5):
    return TelemetrySample(onPitRoad=on_pit_road, sessionTime=session_time, fuelLevel=fuel, lap=lap)


# ---------------------------------------------------------------- laps

def test_first_lap_only_primes():
    detector = LapEventDetector()
    assert detector.on_sample(lap_sample(0, 100.0)) is None
    assert detector.last_fuel_level == 100.0
    assert detector.on_sample(lap_sample(1, 95.0)) is None
    assert detector.last_lap_number == 1
    assert detector.last_fuel_level == 95.0
    assert detector.laps == []


def test_lap_completed_record():
    detector = LapEventDetector()
    detector.on_sample(lap_sample(0, 100.0))
    detector.on_sample(lap_sample(1, 95.0))
    record = detector.on_sample(lap_sample(
        2, 90.0, lapLastTime=88.5, lapBestTime=88.5, sessionFlags=0,
        sessionTime=300.0, position=3, classPosition=2,
    ))
    assert record.lapNumber == 2
    assert record.fuelUsed == 5.0
    assert record.fuelAtStart == 95.0
    assert record.fuelAtEnd == 90.0
    assert record.isValid is True
    assert record.isBestLap is True
    assert record.position == 3
    assert record.classPosition == 2
    assert detector.laps == [record]


def test_invalid_flag_and_not_best():
    detector = LapEventDetector()
    detector.on_sample(lap_sample(1, 50.0))
    record = detector.on_sample(lap_sample(2, 47.0, lapLastTime=90.1, lapBestTime=89.0, sessionFlags=0x5))
    assert record.isValid is False
    assert record.isBestLap is False


def test_fuel_used_is_clamped_after_refuel():
    detector = LapEventDetector()
    detector.on_sample(lap_sample(1, 10.0))
    record = detector.on_sample(lap_sample(2, 60.0))
    assert record.fuelUsed == 0.0


def test_events_only_when_previous_lap_nonzero():
    detector = LapEventDetector()
    sequence = [0, 0, 1, 1, 2, 2, 3, 5, 4, 6]
    emitted = []
    for completed in sequence:
        record = detector.on_sample(lap_sample(completed, 50.0))
        if record is not None:
            emitted.append(record.lapNumber)
    assert emitted == [2, 3, 5, 6]


def test_join_mid_race_primes_on_first_advance():
    """Joining with LapCompleted already at 7 emits nothing for that jump."""
    detector = LapEventDetector()
    assert detector.on_sample(lap_sample(7, 40.0)) is None
    assert detector.on_sample(lap_sample(8, 37.0)).lapNumber == 8


def test_recent_laps_window():
    detector = LapEventDetector()
    for completed in range(1, 17):
        detector.on_sample(lap_sample(completed, 100.0 - completed))
    assert len(detector.laps) == 15
    recent = detector.recent_laps(10)
    assert [lap.lapNumber for lap in recent] == list(range(7, 17))
    assert detector.recent_laps(0) == []


def test_lap_reset():
    detector = LapEventDetector()
    detector.on_sample(lap_sample(1, 10.0))
    detector.on_sample(lap_sample(2, 8.0))
    detector.reset()
    assert detector.laps == []
    assert detector.last_lap_number == 0
    assert detector.last_fuel_level == 0.0


# ---------------------------------------------------------------- pits

def test_pit_stop_cycle():
    detector = PitStopDetector()
    assert detector.on_sample(pit_sample(False, 90.0, 25.0)) is None
    assert detector.on_sample(pit_sample(True, 100.0, 20.0)) is None
    assert detector.state is PitState.IN_PIT
    assert detector.open_stop.stopNumber == 1
    assert detector.on_sample(pit_sample(True, 115.0, 45.0)) is None

    record = detector.on_sample(pit_sample(False, 128.0, 70.0))
    assert record.stopNumber == 1
    assert record.lapNumber == 5
    assert record.pitInTime == 100.0
    assert record.pitOutTime == 128.0
    assert record.pitDuration == 28.0
    assert record.fuelBefore == 20.0
    assert record.fuelAfter == 70.0
    assert record.fuelAdded == 50.0
    assert record.tyresChanged is False
    assert record.repairsMade is False
    assert detector.state is PitState.OUT_OF_PIT
    assert detector.open_stop is None
    assert detector.pit_stops == [record]


def test_stop_numbers_count_full_cycles():
    detector = PitStopDetector()
    pattern = [False, True, True, False, False, True, False, True, False]
    stops = [detector.on_sample(pit_sample(flag, float(i), 10.0)) for i, flag in enumerate(pattern)]
    numbers = [stop.stopNumber for stop in stops if stop is not None]
    assert numbers == [1, 2, 3]
    assert len(detector.pit_stops) == 3


def test_open_stop_not_in_history():
    detector = PitStopDetector()
    detector.on_sample(pit_sample(True, 10.0, 5.0))
    assert detector.pit_stops == []
    assert detector.open_stop is not None


def test_pit_reset():
    detector = PitStopDetector()
    detector.on_sample(pit_sample(True, 10.0, 5.0))
    detector.reset()
    assert detector.state is PitState.OUT_OF_PIT
    assert detector.open_stop is None
    assert detector.stop_counter == 0
    detector.on_sample(pit_sample(True, 20.0, 5.0))
    assert detector.open_stop.stopNumber == 1
