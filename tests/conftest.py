import pytest
from websockets.protocol import State


def make_session_doc(session_id=100, **overrides):
    """Minimal iRacing session document."""
    doc = {
        'WeekendInfo': {
            'SessionID': session_id,
            'SubSessionID': 5000,
            'TrackDisplayName': 'Spa-Francorchamps',
            'TrackConfigName': 'Grand Prix Pits',
        },
        'SessionInfo': {
            'Sessions': [
                {'SessionNum': 0, 'SessionType': 'Race', 'SessionLaps': 'unlimited',
                 'SessionTime': '60 min', 'SessionState': 'racing'},
            ],
        },
        'DriverInfo': {
            'DriverCarIdx': 0,
            'Drivers': [{'CarIdx': 0, 'CarScreenName': 'Porsche 911 GT3 R'}],
        },
    }
    doc.update(overrides)
    return doc


def make_values(**fields):
    """Telemetry mapping with every field at zero, overridden by `fields`."""
    values = {
        'SessionTime': 0.0, 'SessionTimeRemain': 0.0, 'Lap': 0, 'LapCompleted': 0,
        'LapDistPct': 0.0, 'LapCurrentLapTime': 0.0, 'LapLastLapTime': 0.0,
        'LapBestLapTime': 0.0, 'FuelLevel': 0.0, 'FuelLevelPct': 0.0,
        'FuelUsePerHour': 0.0, 'OnPitRoad': False, 'PitstopActive': False,
        'PlayerCarIdx': 0, 'PlayerCarPosition': 0, 'PlayerCarClassPosition': 0,
        'Speed': 0.0, 'SessionFlags': 0, 'TrackTemp': 0.0, 'AirTemp': 0.0,
    }
    values.update(fields)
    return values


class FakeSource:
    """Telemetry source returning queued (session_doc, values) pairs."""

    def __init__(self):
        self.session_doc = None
        self.values = None
        self.error = None
        self.shut_down = False

    def feed(self, session_doc, values):
        self.session_doc = session_doc
        self.values = values
        self.error = None

    def go_away(self, error=None):
        self.session_doc = None
        self.values = None
        self.error = error

    def read_session(self):
        if self.error is not None:
            raise self.error
        return self.session_doc

    def read_sample(self):
        return self.values

    def shutdown(self):
        self.shut_down = True


class FakeSocket:
    """Stand-in for a websockets connection."""

    def __init__(self, fail=False, incoming=()):
        self.sent = []
        self.fail = fail
        self.state = State.OPEN
        self.closed = False
        self._incoming = list(incoming)

    async def send(self, message):
        if self.fail:
            raise OSError("broken pipe")
        self.sent.append(message)

    async def close(self):
        self.closed = True
        self.state = State.CLOSED

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._incoming:
            raise StopAsyncIteration
        return self._incoming.pop(0)


@pytest.fixture
def make_doc():
    return make_session_doc


@pytest.fixture
def make_sample():
    return make_values


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def fake_socket():
    return FakeSocket
