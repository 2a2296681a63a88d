"""Per-caller fixed-window throttle guarding oracle-backed operations."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in_ms: int


@dataclass(slots=True)
class _Window:
    count: int
    reset_at_ms: int


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class RateLimiter:
    """Counts requests per caller inside a window of ``window_ms``.

    The first request of a caller (or the first one after the window closed)
    opens a new window. Requests beyond ``max_requests`` inside an open window
    are refused without being counted. Callers without an identity are never
    throttled.
    """

    def __init__(
        self,
        max_requests: int | None = None,
        window_ms: int | None = None,
        *,
        clock: Callable[[], int] = _monotonic_ms,
        cleanup_every: int = 100,
    ) -> None:
        self.max_requests = max_requests if max_requests is not None else settings.rate_limit_max_requests
        self.window_ms = (
            window_ms if window_ms is not None else int(settings.rate_limit_window_seconds * 1000)
        )
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        self._clock = clock
        self._cleanup_every = max(1, cleanup_every)
        self._calls_since_cleanup = 0
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check_limit(self, caller_id: Optional[str]) -> RateLimitResult:
        if not caller_id:
            return RateLimitResult(allowed=True, remaining=self.max_requests, reset_in_ms=0)

        with self._lock:
            now = self._clock()
            self._maybe_cleanup(now)

            window = self._windows.get(caller_id)
            if window is None or now >= window.reset_at_ms:
                window = _Window(count=1, reset_at_ms=now + self.window_ms)
                self._windows[caller_id] = window
                return RateLimitResult(
                    allowed=True,
                    remaining=self.max_requests - 1,
                    reset_in_ms=self.window_ms,
                )

            reset_in_ms = max(0, window.reset_at_ms - now)
            if window.count >= self.max_requests:
                logger.warning(f"Rate limit reached for caller '{caller_id}', resets in {reset_in_ms} ms")
                return RateLimitResult(allowed=False, remaining=0, reset_in_ms=reset_in_ms)

            window.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=self.max_requests - window.count,
                reset_in_ms=reset_in_ms,
            )

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._calls_since_cleanup = 0

    def _maybe_cleanup(self, now: int) -> None:
        # Caller must hold the lock.
        self._calls_since_cleanup += 1
        if self._calls_since_cleanup < self._cleanup_every:
            return
        self._calls_since_cleanup = 0
        stale = [
            caller for caller, window in self._windows.items()
            if now > window.reset_at_ms + self.window_ms
        ]
        for caller in stale:
            del self._windows[caller]
        if stale:
            logger.debug(f"Purged {len(stale)} expired rate-limit windows")

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)


rate_limiter = RateLimiter()
