"""
Fixed-window request and token quotas with OpenAI-style rate-limit headers
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from simulator.logging_utils import get_logger, log_extra

logger = get_logger(__name__)

REQUESTS = "requests"
TOKENS = "tokens"
AXES = (REQUESTS, TOKENS)


@dataclass
class QuotaWindow:
    limit: int
    window_duration: float
    count: int = 0
    reset_at: float = 0.0

    def roll(self, now: float) -> bool:
        """Start a fresh window if the current one has expired.

        The new boundary is measured from ``now``, not from the old boundary,
        so an idle period never produces a burst of catch-up windows.
        """
        if now < self.reset_at:
            return False
        self.count = 0
        self.reset_at = now + self.window_duration
        return True

    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    def reset_in(self, now: float) -> int:
        return max(0, math.floor(self.reset_at - now))


@dataclass(frozen=True)
class QuotaStatus:
    allowed: bool
    limit: int
    remaining: int
    reset_in: int


def format_duration(seconds: int) -> str:
    """Render whole seconds as ``"1h 2m 3s"``; zero is ``"0s"``."""
    seconds = max(0, int(seconds))
    if seconds == 0:
        return "0s"
    parts = []
    for suffix, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        value, seconds = divmod(seconds, size)
        if value:
            parts.append(f"{value}{suffix}")
    return " ".join(parts)


class QuotaTracker:
    """Owns the request and token windows for one server process.

    Every read-modify-write on an axis happens under that axis' lock; the two
    axes are locked independently.
    """

    def __init__(
        self,
        request_limit: int,
        request_window: float,
        token_limit: int,
        token_window: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        now = clock()
        self._windows: Dict[str, QuotaWindow] = {
            REQUESTS: QuotaWindow(limit=request_limit, window_duration=request_window, reset_at=now + request_window),
            TOKENS: QuotaWindow(limit=token_limit, window_duration=token_window, reset_at=now + token_window),
        }
        self._locks: Dict[str, threading.Lock] = {axis: threading.Lock() for axis in AXES}

    @classmethod
    def from_config(cls, config, clock: Callable[[], float] = time.monotonic) -> "QuotaTracker":
        return cls(
            request_limit=config.RPM,
            request_window=config.RPM_WINDOW,
            token_limit=config.TPM,
            token_window=config.TPM_WINDOW,
            clock=clock,
        )

    def _window(self, axis: str) -> QuotaWindow:
        if axis not in self._windows:
            raise ValueError(f"Unknown quota axis '{axis}'")
        return self._windows[axis]

    def _roll(self, axis: str, window: QuotaWindow, now: float) -> None:
        if window.roll(now):
            logger.debug("Quota window reset", extra=log_extra(axis=axis, limit=window.limit))

    def check_and_count(self, axis: str, magnitude: int = 1) -> QuotaStatus:
        """Atomically test and apply ``magnitude``; a rejected call counts nothing."""
        window = self._window(axis)
        with self._locks[axis]:
            now = self._clock()
            self._roll(axis, window, now)
            allowed = window.count + magnitude <= window.limit
            if allowed:
                window.count += magnitude
            else:
                logger.warning(
                    "Quota exceeded",
                    extra=log_extra(axis=axis, count=window.count, magnitude=magnitude, limit=window.limit),
                )
            return QuotaStatus(allowed, window.limit, window.remaining(), window.reset_in(now))

    def status(self, axis: str) -> QuotaStatus:
        window = self._window(axis)
        with self._locks[axis]:
            now = self._clock()
            self._roll(axis, window, now)
            return QuotaStatus(window.remaining() > 0, window.limit, window.remaining(), window.reset_in(now))

    def headers(self) -> Dict[str, str]:
        """Snapshot both axes as ``x-ratelimit-*`` response headers."""
        headers: Dict[str, str] = {}
        for axis in AXES:
            snapshot = self.status(axis)
            headers[f"x-ratelimit-limit-{axis}"] = str(snapshot.limit)
            headers[f"x-ratelimit-remaining-{axis}"] = str(snapshot.remaining)
            headers[f"x-ratelimit-reset-{axis}"] = format_duration(snapshot.reset_in)
        return headers


__all__ = ["QuotaTracker", "QuotaWindow", "QuotaStatus", "format_duration", "REQUESTS", "TOKENS", "AXES"]
