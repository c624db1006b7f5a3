import logging
import threading
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar, Union

V = TypeVar("V")

Duration = Union[int, float, timedelta, None]

DEFAULT_TTL = 5 * 60.0  # seconds
DEFAULT_SWEEP_INTERVAL = 5.0  # seconds


def to_seconds(value: Duration) -> float:
    """Normalise a duration given as seconds or `timedelta` to float seconds.

    `None` is treated as zero, which callers read as "use the default".
    """

    if value is None:
        return 0.0
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"duration must be seconds or timedelta, got {type(value).__name__}")
    return float(value)


class TTLMap(Generic[V]):
    """Thread-safe expiring key-value store.

    Parameters
    ----------
    default_ttl : int | float | timedelta
        TTL used by `put` when no explicit TTL is given. Zero or negative
        selects `DEFAULT_TTL`.
    sweep_interval : int | float | timedelta
        Period of the background eviction pass. Zero or negative selects
        `DEFAULT_SWEEP_INTERVAL`.
    clock : Callable[[], float]
        Source of "now" in seconds. Defaults to `time.monotonic`.
    logger : Optional[logging.Logger]
        Receives sweep diagnostics. Defaults to the `ttlstore.cache` logger.

    Notes
    -----
    - Expiration is absolute (`now + ttl` at write time); reads never extend it.
    - Expired entries are removed lazily by `get` and actively by a daemon
      sweep thread started in the constructor.
    - `len` and `snapshot` report raw contents, so entries that expired but
      were not yet swept or read are still counted.
    - After `stop` the map remains usable with lazy eviction only.
    """

    def __init__(
        self,
        default_ttl: Duration = 0,
        sweep_interval: Duration = 0,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        ttl = to_seconds(default_ttl)
        interval = to_seconds(sweep_interval)
        self.default_ttl = ttl if ttl > 0 else DEFAULT_TTL
        self.sweep_interval = interval if interval > 0 else DEFAULT_SWEEP_INTERVAL
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)
        self._store: Dict[str, Tuple[float, V]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._stopping = threading.Lock()
        self._thread = threading.Thread(target=self._sweep_loop, name="ttlmap-sweep", daemon=True)
        self._thread.start()

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "TTLMap[Any]":
        """Build a store from a `ttlstore.settings.Settings` instance."""

        return cls(settings.default_ttl, settings.sweep_interval, **kwargs)

    def put(self, key: str, value: V, ttl: Duration = 0) -> None:
        """Insert or replace `key`, expiring `ttl` seconds from now.

        Parameters
        ----------
        key : str
            Entry key.
        value : V
            Arbitrary payload; stored by reference, never mutated.
        ttl : int | float | timedelta
            Time-to-live. Zero, negative or `None` uses `default_ttl`.
        """

        seconds = to_seconds(ttl)
        if seconds <= 0:
            seconds = self.default_ttl
        expires_at = self._clock() + seconds
        with self._lock:
            self._store[key] = (expires_at, value)

    def get(self, key: str) -> Tuple[Optional[V], bool]:
        """Return `(value, True)` for a live entry, else `(None, False)`.

        Notes
        -----
        - Performs lazy eviction: a stale entry is removed before returning.
          The check and the removal happen under one lock, so a concurrent
          `put` of the same key is never lost.
        """

        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None, False
            expires_at, value = item
            if self._clock() >= expires_at:
                del self._store[key]
                return None, False
            return value, True

    def delete(self, key: str) -> None:
        """Remove `key` if present; absent keys are ignored."""

        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        """Remove all entries."""

        with self._lock:
            self._store.clear()

    def len(self) -> int:
        """Raw entry count, including expired entries not yet evicted."""

        with self._lock:
            return len(self._store)

    def snapshot(self) -> Dict[str, V]:
        """Point-in-time copy of every stored value, keyed by entry key.

        Same raw semantics as `len`: expired but unswept entries are included.
        """

        with self._lock:
            return {k: v for k, (_, v) in self._store.items()}

    def sweep(self) -> int:
        """Remove every entry whose deadline has passed; return how many."""

        with self._lock:
            now = self._clock()
            dead = [k for k, (expires_at, _) in self._store.items() if expires_at <= now]
            for k in dead:
                del self._store[k]
        if dead:
            self._log.debug("sweep removed %d expired entries", len(dead))
        return len(dead)

    @property
    def running(self) -> bool:
        """`True` until `stop` is called; the store never restarts."""

        return not self._stop.is_set()

    def stop(self) -> None:
        """Stop the background sweep. Safe to call more than once.

        Stored entries are kept and stay readable.
        """

        if not self._stopping.acquire(blocking=False):
            return
        self._stop.set()
        if self._thread is not threading.current_thread():
            self._thread.join()
        self._log.debug("sweep stopped with %d entries remaining", self.len())

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            self.sweep()

    def __len__(self) -> int:
        return self.len()

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return self.get(key)[1]

    def __enter__(self) -> "TTLMap[V]":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

    def __repr__(self) -> str:
        state = "running" if self.running else "stopped"
        return f"TTLMap(entries={self.len()}, default_ttl={self.default_ttl}, {state})"
