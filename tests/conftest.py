import pytest

from firewatch.data.models import IncidentRecord, Snapshot


class FakeTimer:
    """threading.Timer stand-in that only fires when the test says so."""

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            import requests

            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self.payload


class FakeSession:
    """Returns queued payloads and records every GET."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": dict(params or {}), "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, FakeResponse):
            return response
        return FakeResponse(response)

    def close(self):
        pass


@pytest.fixture
def timers():
    created = []

    def factory(interval, function, args=()):
        timer = FakeTimer(interval, function, args)
        created.append(timer)
        return timer

    factory.created = created
    return factory


@pytest.fixture
def make_record():
    def _make(id, lng, lat, live=False, **attributes):
        return IncidentRecord(
            id=str(id), latitude=lat, longitude=lng, live_flag=live, attributes=attributes
        )

    return _make


@pytest.fixture
def make_snapshot(make_record):
    def _make(points):
        records = [make_record(i, lng, lat) for i, (lng, lat) in enumerate(points)]
        return Snapshot.capture(records, 1)

    return _make


@pytest.fixture
def vancouver_points():
    return [(-123.10, 49.28), (-123.1001, 49.2801)]


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse
