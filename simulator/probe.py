"""
OpenAI-SDK probe that exercises the simulator with retry and backoff
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import openai
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from simulator.logging_utils import get_logger, log_extra
from simulator.models import DEFAULT_CHAT_MODEL

logger = get_logger(__name__)


@dataclass
class ProbeAttempt:
    status_code: int
    headers: Dict[str, str]


@dataclass
class ProbeReport:
    attempts: List[ProbeAttempt] = field(default_factory=list)
    content: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.content is not None

    @property
    def status_code(self) -> Optional[int]:
        return self.attempts[-1].status_code if self.attempts else None


def rate_limit_headers(headers: httpx.Headers) -> Dict[str, str]:
    return {key: value for key, value in headers.items() if key.lower().startswith("x-ratelimit-")}


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (openai.RateLimitError, openai.APIConnectionError)):
        return True
    return isinstance(exc, openai.APIStatusError) and exc.status_code >= 500


class ProbeClient:
    """Chat-completion client with its own retry policy.

    The SDK's built-in retries are disabled so every attempt, and the
    rate-limit headers it saw, land in the report.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "sk-simulator",
        *,
        max_attempts: int = 3,
        backoff_multiplier: float = 1.0,
        backoff_max: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.max_attempts = max_attempts
        self.backoff_multiplier = backoff_multiplier
        self.backoff_max = backoff_max
        self.client = openai.OpenAI(
            base_url=base_url,
            api_key=api_key,
            max_retries=0,
            http_client=http_client,
        )

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_multiplier, max=self.backoff_max),
            retry=retry_if_exception(is_retryable),
            reraise=True,
        )

    def chat(
        self,
        messages: List[Dict[str, str]],
        model: str = DEFAULT_CHAT_MODEL,
        stream: bool = False,
    ) -> ProbeReport:
        report = ProbeReport()
        try:
            for attempt in self._retrying():
                with attempt:
                    self._attempt(report, messages, model, stream)
        except openai.APIStatusError as exc:
            report.error = f"{exc.status_code}: {exc.message}"
            logger.warning(
                "Probe gave up",
                extra=log_extra(attempts=len(report.attempts), status=exc.status_code),
            )
        except openai.APIConnectionError as exc:
            report.error = str(exc)
            logger.warning("Probe could not connect", extra=log_extra(attempts=len(report.attempts)))
        return report

    def _attempt(self, report: ProbeReport, messages, model: str, stream: bool) -> None:
        try:
            raw = self.client.chat.completions.with_raw_response.create(
                model=model,
                messages=messages,
                stream=stream,
            )
        except openai.APIStatusError as exc:
            report.attempts.append(ProbeAttempt(exc.status_code, rate_limit_headers(exc.response.headers)))
            logger.info(
                "Probe attempt failed",
                extra=log_extra(attempt=len(report.attempts), status=exc.status_code),
            )
            raise

        report.attempts.append(ProbeAttempt(raw.status_code, rate_limit_headers(raw.headers)))
        completion = raw.parse()

        if not stream:
            report.content = completion.choices[0].message.content
            report.usage = completion.usage.model_dump() if completion.usage else None
            return

        parts = []
        for chunk in completion:
            if chunk.choices and chunk.choices[0].delta.content:
                parts.append(chunk.choices[0].delta.content)
            if chunk.usage is not None:
                report.usage = chunk.usage.model_dump()
        report.content = "".join(parts)


__all__ = ["ProbeClient", "ProbeReport", "ProbeAttempt", "is_retryable", "rate_limit_headers"]
