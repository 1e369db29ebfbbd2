"""Fixed-window quota accounting and rate-limit headers."""

from __future__ import annotations

import threading

import pytest

from simulator.quota import REQUESTS, TOKENS, QuotaTracker, QuotaWindow, format_duration


def _tracker(clock, request_limit=3, token_limit=100, request_window=60, token_window=10):
    return QuotaTracker(
        request_limit=request_limit,
        request_window=request_window,
        token_limit=token_limit,
        token_window=token_window,
        clock=clock,
    )


def test_limit_reached_then_rejected(clock) -> None:
    tracker = _tracker(clock, request_limit=3)

    for _ in range(3):
        assert tracker.check_and_count(REQUESTS).allowed is True

    status = tracker.check_and_count(REQUESTS)
    assert status.allowed is False
    assert status.remaining == 0


def test_rejected_call_does_not_count(clock) -> None:
    tracker = _tracker(clock, token_limit=100)

    assert tracker.check_and_count(TOKENS, 60).allowed is True
    rejected = tracker.check_and_count(TOKENS, 50)
    assert rejected.allowed is False
    assert rejected.remaining == 40

    # The rejected 50 was never applied, so 40 still fits.
    assert tracker.check_and_count(TOKENS, 40).allowed is True
    assert tracker.status(TOKENS).remaining == 0


def test_window_expiry_starts_fresh_count(clock) -> None:
    tracker = _tracker(clock, request_limit=2, request_window=60)
    tracker.check_and_count(REQUESTS)
    tracker.check_and_count(REQUESTS)
    assert tracker.check_and_count(REQUESTS).allowed is False

    clock.advance(60)

    status = tracker.check_and_count(REQUESTS)
    assert status.allowed is True
    assert status.remaining == 1
    assert status.reset_in == 60


def test_new_window_measured_from_now_not_old_boundary(clock) -> None:
    window = QuotaWindow(limit=5, window_duration=10, count=3, reset_at=clock() + 10)

    clock.advance(35)
    assert window.roll(clock()) is True
    assert window.count == 0
    assert window.reset_at == clock() + 10


def test_axes_are_independent(clock) -> None:
    tracker = _tracker(clock, request_limit=1, token_limit=10)
    tracker.check_and_count(REQUESTS)

    assert tracker.check_and_count(REQUESTS).allowed is False
    assert tracker.check_and_count(TOKENS, 10).allowed is True


def test_status_does_not_count(clock) -> None:
    tracker = _tracker(clock, request_limit=1)

    assert tracker.status(REQUESTS).remaining == 1
    assert tracker.status(REQUESTS).remaining == 1
    assert tracker.check_and_count(REQUESTS).allowed is True


def test_reset_in_is_floored(clock) -> None:
    tracker = _tracker(clock, token_window=10)
    clock.advance(2.7)

    assert tracker.status(TOKENS).reset_in == 7


def test_unknown_axis_rejected(clock) -> None:
    with pytest.raises(ValueError):
        _tracker(clock).check_and_count("images")


def test_headers_snapshot(clock) -> None:
    tracker = _tracker(clock, request_limit=3, token_limit=100, request_window=90, token_window=6)
    tracker.check_and_count(REQUESTS)
    tracker.check_and_count(TOKENS, 25)

    assert tracker.headers() == {
        "x-ratelimit-limit-requests": "3",
        "x-ratelimit-remaining-requests": "2",
        "x-ratelimit-reset-requests": "1m 30s",
        "x-ratelimit-limit-tokens": "100",
        "x-ratelimit-remaining-tokens": "75",
        "x-ratelimit-reset-tokens": "6s",
    }


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0s"), (6, "6s"), (60, "1m"), (3725, "1h 2m 5s"), (90061, "1d 1h 1m 1s")],
)
def test_format_duration(seconds: int, expected: str) -> None:
    assert format_duration(seconds) == expected


def test_concurrent_counting_never_exceeds_limit() -> None:
    tracker = QuotaTracker(request_limit=50, request_window=60, token_limit=10, token_window=60)
    allowed = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(20):
            status = tracker.check_and_count(REQUESTS)
            if status.allowed:
                with lock:
                    allowed.append(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(allowed) == 50
    assert tracker.status(REQUESTS).remaining == 0
