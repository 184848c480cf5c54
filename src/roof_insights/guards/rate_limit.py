"""Fixed-window rate limiting per calling identity.

Counters live behind the RateLimitStore interface. The in-memory store is
process-local, so limits are exact per instance only; a shared counter
store can be injected for multi-instance deployments.
"""

import math
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from roof_insights.config import get_settings
from roof_insights.errors import RateLimitedError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class WindowState:
    """Counter state for one identity after a hit."""

    count: int
    reset_at: float


class RateLimitStore(ABC):
    """Storage for per-identity window counters."""

    @abstractmethod
    def hit(self, key: str, window_seconds: float, now: float) -> WindowState:
        """Atomically register one request for ``key`` and return the new state.

        A window that has expired by ``now`` is reset before counting.
        """

    @abstractmethod
    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when ``key`` is None."""


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store guarded by a single lock.

    Expired windows are swept every ``sweep_every`` hits.
    """

    def __init__(self, sweep_every: int = 256) -> None:
        self._windows: dict[str, WindowState] = {}
        self._lock = threading.Lock()
        self._sweep_every = max(1, sweep_every)
        self._hits = 0

    def _sweep(self, now: float) -> None:
        expired = [k for k, s in self._windows.items() if now >= s.reset_at]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("rate_limit_windows_swept", removed=len(expired))

    def hit(self, key: str, window_seconds: float, now: float) -> WindowState:
        with self._lock:
            self._hits += 1
            if self._hits % self._sweep_every == 0:
                self._sweep(now)
            state = self._windows.get(key)
            if state is None or now >= state.reset_at:
                state = WindowState(count=1, reset_at=now + window_seconds)
            else:
                state = WindowState(count=state.count + 1, reset_at=state.reset_at)
            self._windows[key] = state
            return state

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._windows)


class RateLimiter:
    """Allows ``limit`` requests per identity in each ``window_seconds`` window."""

    def __init__(
        self,
        limit: int | None = None,
        window_seconds: float | None = None,
        store: RateLimitStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings()
        self.limit = limit if limit is not None else settings.rate_limit_requests
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.rate_limit_window_seconds
        )
        self._store = store or InMemoryRateLimitStore()
        self._clock = clock

    def check(self, identity: str) -> None:
        """Count a request, raising RateLimitedError once the window is full."""
        now = self._clock()
        state = self._store.hit(identity, self.window_seconds, now)
        if state.count > self.limit:
            retry_after = max(1, math.ceil(state.reset_at - now))
            logger.warning(
                "rate_limited",
                identity=identity,
                count=state.count,
                limit=self.limit,
                retry_after=retry_after,
            )
            raise RateLimitedError(identity, retry_after)

    def allow(self, identity: str) -> bool:
        """Return True when the request fits in the identity's window."""
        try:
            self.check(identity)
        except RateLimitedError:
            return False
        return True

    def reset(self, identity: str | None = None) -> None:
        self._store.reset(identity)
