from __future__ import annotations
import threading
import pytest

from ttlstore.cache import TTLMap


class FakeClock:
    """Manually advanced clock; `advance` moves time forward in seconds."""
    def __init__(self, start: float = 1000.0):
        self.now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self.now

    def advance(self, seconds: float):
        with self._lock:
            self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_store():
    """Factory for stores that are always stopped at teardown."""
    stores = []

    def _mk(*args, **kwargs) -> TTLMap:
        m = TTLMap(*args, **kwargs)
        stores.append(m)
        return m

    yield _mk
    for m in stores:
        m.stop()


@pytest.fixture
def store(make_store, clock):
    # long sweep interval so only explicit sweeps/lazy reads evict
    return make_store(10, 3600, clock=clock)
