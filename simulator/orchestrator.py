"""
Request pipeline for the simulated completion endpoints

Every request runs the same fixed sequence: request quota, fault injection,
content length, generation, tokenization, token quota, then either a full
JSON body or a streaming sequencer. Any step may end the request early with
a simulated error; errors come back as ordinary results.
"""

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Union

from simulator import observability
from simulator.content import ContentGenerator
from simulator.errors import EmptyContent, QuotaExceeded, SimulatedFault, SimulationError
from simulator.faults import FaultConfig, FaultInjector
from simulator.logging_utils import get_logger, log_extra
from simulator.models import (
    DEFAULT_CHAT_MODEL,
    DEFAULT_RESPONSES_MODEL,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    ResponsesRequest,
    Usage,
)
from simulator.quota import REQUESTS, TOKENS, QuotaTracker
from simulator.streaming import ResponsesStream, StreamEvent, chat_completion_events
from simulator.tokenizer import Tokenizer

logger = get_logger(__name__)

CHAT = "chat"
RESPONSES = "responses"


@dataclass
class JsonResult:
    status_code: int
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class StreamResult:
    events: Iterable[StreamEvent]
    protocol: str
    headers: Dict[str, str] = field(default_factory=dict)
    chunk_delay: float = 0.0
    status_code: int = 200


Result = Union[JsonResult, StreamResult]


class Simulator:
    """Composes quotas, faults, content and streaming into one responder."""

    def __init__(
        self,
        config,
        *,
        quota: Optional[QuotaTracker] = None,
        faults: Optional[FaultInjector] = None,
        content: Optional[ContentGenerator] = None,
        tokenizer: Optional[Tokenizer] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self._rng = rng if rng is not None else random.Random()
        self._clock = clock
        self.quota = quota or QuotaTracker.from_config(config)
        self.faults = faults or FaultInjector(FaultConfig.from_config(config), rng=self._rng)
        self.content = content or ContentGenerator(config.RESPONSE_LENGTH, rng=self._rng)
        self.tokenizer = tokenizer or Tokenizer()

    @property
    def chunk_delay(self) -> float:
        return self.config.STREAM_CHUNK_DELAY_MS / 1000.0

    async def stall(self) -> float:
        """Apply the configured artificial latency once."""
        delay = self.faults.latency()
        if delay > 0:
            logger.debug("Slowing down request", extra=log_extra(delay_ms=int(delay * 1000)))
            await asyncio.sleep(delay)
        return delay

    def account(self, prompt_text: str) -> Tuple[str, Usage]:
        """Run the accounting steps; raises ``SimulationError`` to short-circuit."""
        if not self.quota.check_and_count(REQUESTS).allowed:
            raise QuotaExceeded(REQUESTS)

        error_code = self.faults.maybe_error()
        if error_code is not None:
            raise SimulatedFault(error_code)

        length = self.content.resolve_length()
        if length == 0:
            raise EmptyContent()

        content = self.content.generate(length)
        usage = Usage.from_counts(
            self.tokenizer.count_tokens(prompt_text),
            self.tokenizer.count_tokens(content),
        )

        if not self.quota.check_and_count(TOKENS, usage.total_tokens).allowed:
            raise QuotaExceeded(TOKENS)

        logger.debug(
            "Request accounted",
            extra=log_extra(length=length, **usage.model_dump()),
        )
        return content, usage

    def error_result(self, exc: SimulationError) -> JsonResult:
        if isinstance(exc, QuotaExceeded):
            observability.record_quota_rejection(exc.axis)
        elif isinstance(exc, SimulatedFault):
            logger.warning("Returning simulated error", extra=log_extra(status=exc.status_code, code=exc.code))
            observability.record_fault(exc.status_code)
        return JsonResult(exc.status_code, exc.body(), self.quota.headers())

    async def handle_chat(self, request: ChatCompletionRequest) -> Result:
        await self.stall()
        try:
            content, usage = self.account(request.prompt_text())
        except SimulationError as exc:
            return self.error_result(exc)

        completion_id = f"chatcmpl-{self._rng.getrandbits(32)}"
        created = int(self._clock())
        model = request.model or DEFAULT_CHAT_MODEL

        if request.stream:
            events = chat_completion_events(
                completion_id=completion_id,
                created=created,
                model=model,
                content=content,
                usage=usage,
            )
            return StreamResult(events=events, protocol=CHAT, headers=self.quota.headers())

        response = ChatCompletionResponse(
            id=completion_id,
            created=created,
            model=model,
            choices=[Choice(message=ChatMessage(content=content))],
            usage=usage,
        )
        return JsonResult(200, response.model_dump(mode="json"), self.quota.headers())

    async def handle_responses(self, request: ResponsesRequest) -> Result:
        await self.stall()
        try:
            content, usage = self.account(request.prompt_text())
        except SimulationError as exc:
            return self.error_result(exc)

        machine = ResponsesStream(
            response_id=f"resp_{self._rng.getrandbits(64):016x}",
            created_at=int(self._clock()),
            model=request.model or DEFAULT_RESPONSES_MODEL,
            content=content,
            usage=usage,
            instructions=request.instructions,
            rng=self._rng,
        )

        if request.stream:
            return StreamResult(
                events=machine,
                protocol=RESPONSES,
                headers=self.quota.headers(),
                chunk_delay=self.chunk_delay,
            )

        snapshot = machine.run_to_completion()
        return JsonResult(200, snapshot.model_dump(mode="json"), self.quota.headers())


__all__ = ["Simulator", "JsonResult", "StreamResult", "Result", "CHAT", "RESPONSES"]
