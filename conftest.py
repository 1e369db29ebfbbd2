"""Pytest configuration: asyncio support and shared simulator fixtures."""

from __future__ import annotations

import asyncio
import inspect
import random
from dataclasses import replace
from typing import Any

import pytest

from config import Config


def pytest_pyfunc_call(pyfuncitem):  # pragma: no cover - pytest hook
    """Allow pytest to run ``async def`` tests without extra plugins."""
    test_func = pyfuncitem.obj

    if inspect.iscoroutinefunction(test_func):
        funcargs = pyfuncitem.funcargs
        sig = inspect.signature(test_func)
        call_args = {
            name: value
            for name, value in funcargs.items()
            if name in sig.parameters
        }
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            loop.run_until_complete(test_func(**call_args))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


BASE_CONFIG = Config(
    ADDRESS="127.0.0.1",
    PORT=8000,
    LOG_LEVEL="WARNING",
    CHAT_COMPLETIONS_PATH="/v1/chat/completions",
    RESPONSES_PATH="/v1/responses",
    RESPONSE_LENGTH=10,
    ERROR_CODE=None,
    ERROR_RATE=None,
    SLOWDOWN=None,
    RPM=500,
    RPM_WINDOW=60,
    TPM=30000,
    TPM_WINDOW=60,
    STREAM_CHUNK_DELAY_MS=0,
)


class FakeClock:
    """Manually advanced monotonic clock for quota windows."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_config():
    def _make(**overrides: Any) -> Config:
        return replace(BASE_CONFIG, **overrides)

    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
