"""Probabilistic error and latency injection."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from simulator.logging_utils import get_logger

logger = get_logger(__name__)

LatencySpec = Union[int, Tuple[int, int]]


@dataclass(frozen=True)
class FaultConfig:
    status_code: Optional[int] = None
    probability: Optional[int] = None
    latency_ms: Optional[LatencySpec] = None

    @classmethod
    def from_config(cls, config) -> "FaultConfig":
        return cls(
            status_code=config.ERROR_CODE,
            probability=config.ERROR_RATE,
            latency_ms=config.SLOWDOWN,
        )


class FaultInjector:
    """Decides per request whether to fail and how long to stall.

    Decisions only; applying them is left to the caller.
    """

    def __init__(self, config: FaultConfig, *, rng: random.Random | None = None) -> None:
        self.config = config
        self._rng = rng if rng is not None else random.Random()

    def maybe_error(self) -> Optional[int]:
        code, probability = self.config.status_code, self.config.probability
        if code is None or probability is None:
            return None
        if self._rng.randrange(100) < probability:
            return code
        return None

    def latency(self) -> float:
        """Delay in seconds, suitable for ``asyncio.sleep``."""
        spec = self.config.latency_ms
        if spec is None:
            return 0.0
        if isinstance(spec, tuple):
            low, high = sorted(spec)
            delay_ms = self._rng.randint(low, high)
        else:
            delay_ms = spec
        return max(0, delay_ms) / 1000.0


__all__ = ["FaultConfig", "FaultInjector"]
