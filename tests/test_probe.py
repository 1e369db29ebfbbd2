"""Retrying SDK client against the simulator."""

from __future__ import annotations

import httpx
import openai
from fastapi.testclient import TestClient

from app import create_app
from simulator.probe import ProbeClient, is_retryable, rate_limit_headers

MESSAGES = [{"role": "user", "content": "Ping"}]


def _probe(make_config, max_attempts: int = 3, **overrides) -> ProbeClient:
    http_client = TestClient(create_app(make_config(**overrides)))
    return ProbeClient(
        "http://testserver/v1",
        max_attempts=max_attempts,
        backoff_multiplier=0,
        http_client=http_client,
    )


def test_probe_success_records_headers(make_config) -> None:
    report = _probe(make_config, RESPONSE_LENGTH=24).chat(MESSAGES)

    assert report.ok
    assert len(report.content) == 24
    assert report.status_code == 200
    assert len(report.attempts) == 1
    assert report.attempts[0].headers["x-ratelimit-remaining-requests"] == "499"
    assert report.usage["total_tokens"] == report.usage["prompt_tokens"] + report.usage["completion_tokens"]


def test_probe_streaming_reassembles_words(make_config) -> None:
    report = _probe(make_config, RESPONSE_LENGTH=60).chat(MESSAGES, stream=True)

    assert report.ok
    assert report.content.strip() != ""
    assert report.usage is not None


def test_probe_retries_server_errors_until_exhausted(make_config) -> None:
    report = _probe(make_config, max_attempts=3, ERROR_CODE=503, ERROR_RATE=100).chat(MESSAGES)

    assert not report.ok
    assert [a.status_code for a in report.attempts] == [503, 503, 503]
    assert report.error.startswith("503")
    remaining = [a.headers["x-ratelimit-remaining-requests"] for a in report.attempts]
    assert remaining == ["499", "498", "497"]


def test_probe_retries_rate_limits(make_config) -> None:
    report = _probe(make_config, max_attempts=4, RPM=1).chat(MESSAGES)

    assert report.ok
    assert len(report.attempts) == 1

    second = _probe(make_config, max_attempts=2, RPM=0).chat(MESSAGES)
    assert [a.status_code for a in second.attempts] == [429, 429]


def test_probe_does_not_retry_client_errors(make_config) -> None:
    report = _probe(make_config, max_attempts=5, ERROR_CODE=400, ERROR_RATE=100).chat(MESSAGES)

    assert [a.status_code for a in report.attempts] == [400]
    assert report.error.startswith("400")


def test_retryable_classification() -> None:
    request = httpx.Request("POST", "http://testserver/v1/chat/completions")

    def status_error(cls, code):
        return cls("boom", response=httpx.Response(code, request=request), body=None)

    assert is_retryable(status_error(openai.RateLimitError, 429))
    assert is_retryable(status_error(openai.InternalServerError, 502))
    assert not is_retryable(status_error(openai.BadRequestError, 400))
    assert not is_retryable(ValueError("nope"))


def test_rate_limit_header_filter() -> None:
    headers = httpx.Headers({"x-ratelimit-limit-tokens": "10", "content-type": "application/json"})
    assert rate_limit_headers(headers) == {"x-ratelimit-limit-tokens": "10"}
