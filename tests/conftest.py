import pytest
import requests

from waypoint_core.models import Fix
from waypoint_core.store import KeyValueStore


# Roughly 1 m of latitude in degrees
DEG_PER_M = 1.0 / 111_195.0


def make_fix(t, lat=0.0, lng=0.0, acc=10.0, speed=-1.0, **kw):
    return Fix(timestamp=t, latitude=lat, longitude=lng, horizontal_accuracy=acc, speed=speed, **kw)


def walk(n, start_t=0.0, step_m=20.0, step_s=1.0, **kw):
    """n fixes heading north, step_m apart, step_s apart."""
    return [
        make_fix(start_t + i * step_s, lat=i * step_m * DEG_PER_M, **kw)
        for i in range(n)
    ]


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    """Records every POST; replies from a scripted list (last entry repeats)."""

    def __init__(self, *replies):
        self.replies = list(replies) or [200]
        self.calls = []
        self.closed = False

    def post(self, url, params=None, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "data": data})
        reply = self.replies[0] if len(self.replies) == 1 else self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return FakeResponse(reply, text=f"status {reply}")

    def close(self):
        self.closed = True


@pytest.fixture
def store(tmp_path):
    return KeyValueStore(tmp_path / "state")


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
