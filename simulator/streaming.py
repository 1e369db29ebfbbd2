"""
Server-sent event sequencers for the two streaming protocols

Chat completions stream one delta per word. The responses API streams a
lifecycle of named events that grow a shared response snapshot. Both
sequencers work over content and usage that were fully computed upstream;
they never count tokens or touch quotas.
"""

from __future__ import annotations

import asyncio
import enum
import random
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Iterable, Iterator, Optional, Union

from simulator import observability
from simulator.logging_utils import get_logger, log_extra
from simulator.models import (
    MOCK_REASONING_TOKENS,
    ChatCompletionChunk,
    ChoiceDelta,
    ChunkChoice,
    ContentPartEvent,
    MessageItem,
    OutputItemEvent,
    OutputText,
    ReasoningItem,
    ResponseLifecycleEvent,
    ResponseSnapshot,
    ResponseStreamEvent,
    TextDeltaEvent,
    TextDoneEvent,
    Usage,
)

logger = get_logger(__name__)

CHUNK_SIZE = 5


@dataclass(frozen=True)
class Sentinel:
    payload: str = "[DONE]"


DONE = Sentinel()

StreamEvent = Union[ChatCompletionChunk, ResponseStreamEvent, Sentinel]


def chat_completion_events(
    *,
    completion_id: str,
    created: int,
    model: str,
    content: str,
    usage: Usage,
) -> Iterator[Union[ChatCompletionChunk, Sentinel]]:
    """Role chunk, one chunk per word, finish chunk with usage, then ``[DONE]``."""

    def chunk(delta: ChoiceDelta, finish_reason: Optional[str] = None, with_usage: bool = False):
        return ChatCompletionChunk(
            id=completion_id,
            created=created,
            model=model,
            choices=[ChunkChoice(delta=delta, finish_reason=finish_reason)],
            usage=usage if with_usage else None,
        )

    yield chunk(ChoiceDelta(role="assistant"))
    for word in content.split():
        yield chunk(ChoiceDelta(content=f"{word} "))
    yield chunk(ChoiceDelta(), finish_reason="stop", with_usage=True)
    yield DONE


class Phase(enum.Enum):
    START = "start"
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    REASONING_ADDED = "reasoning_added"
    REASONING_DONE = "reasoning_done"
    MESSAGE_ADDED = "message_added"
    PART_ADDED = "part_added"
    TEXT_DELTA = "text_delta"
    TEXT_DONE = "text_done"
    PART_DONE = "part_done"
    MESSAGE_DONE = "message_done"
    COMPLETED = "completed"
    DONE = "done"


class ResponsesStream:
    """State machine for the responses-API event lifecycle.

    Owns the response snapshot and mutates it as it advances. Each call to
    ``next()`` emits exactly one event; events embedding the snapshot carry a
    copy taken at emission time.
    """

    def __init__(
        self,
        *,
        response_id: str,
        created_at: int,
        model: str,
        content: str,
        usage: Usage,
        instructions: Optional[str] = None,
        reasoning_id: Optional[str] = None,
        message_id: Optional[str] = None,
        chunk_size: int = CHUNK_SIZE,
        reasoning_tokens: int = MOCK_REASONING_TOKENS,
        rng: random.Random | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._rng = rng if rng is not None else random.Random()
        self.content = content
        self.usage = usage
        self.chunk_size = chunk_size
        self.reasoning_tokens = reasoning_tokens
        self.reasoning_id = reasoning_id or f"rs_{self._rng.getrandbits(64):016x}"
        self.message_id = message_id or f"msg_{self._rng.getrandbits(64):016x}"
        self.snapshot = ResponseSnapshot(
            id=response_id,
            created_at=created_at,
            model=model,
            instructions=instructions,
        )
        self.phase = Phase.START
        self._sequence = 0
        self._offset = 0
        self._obfuscation = self._rng.getrandbits(47)

    def __iter__(self) -> "ResponsesStream":
        return self

    def __next__(self) -> Union[ResponseStreamEvent, Sentinel]:
        if self.phase is Phase.DONE:
            raise StopIteration
        if self.phase is Phase.COMPLETED:
            self.phase = Phase.DONE
            return DONE
        return self._advance()

    def run_to_completion(self) -> ResponseSnapshot:
        """Drain the machine and return the final snapshot."""
        for _ in self:
            pass
        return self.snapshot

    def _next_sequence(self) -> int:
        sequence = self._sequence
        self._sequence += 1
        return sequence

    def _lifecycle(self, event_type: str) -> ResponseLifecycleEvent:
        return ResponseLifecycleEvent(
            type=event_type,
            sequence_number=self._next_sequence(),
            response=self.snapshot.model_copy(deep=True),
        )

    def _item_event(self, event_type: str, index: int) -> OutputItemEvent:
        return OutputItemEvent(
            type=event_type,
            sequence_number=self._next_sequence(),
            output_index=index,
            item=self.snapshot.output[index].model_copy(deep=True),
        )

    def _message(self) -> MessageItem:
        return self.snapshot.output[1]

    def _part_event(self, event_type: str) -> ContentPartEvent:
        return ContentPartEvent(
            type=event_type,
            sequence_number=self._next_sequence(),
            item_id=self.message_id,
            output_index=1,
            content_index=0,
            part=self._message().content[0].model_copy(deep=True),
        )

    def _advance(self) -> ResponseStreamEvent:
        phase = self.phase

        if phase is Phase.START:
            self.phase = Phase.CREATED
            return self._lifecycle("response.created")

        if phase is Phase.CREATED:
            self.phase = Phase.IN_PROGRESS
            return self._lifecycle("response.in_progress")

        if phase is Phase.IN_PROGRESS:
            self.snapshot.output.append(ReasoningItem(id=self.reasoning_id))
            self.phase = Phase.REASONING_ADDED
            return self._item_event("response.output_item.added", 0)

        if phase is Phase.REASONING_ADDED:
            self.phase = Phase.REASONING_DONE
            return self._item_event("response.output_item.done", 0)

        if phase is Phase.REASONING_DONE:
            self.snapshot.output.append(MessageItem(id=self.message_id))
            self.phase = Phase.MESSAGE_ADDED
            return self._item_event("response.output_item.added", 1)

        if phase is Phase.MESSAGE_ADDED:
            self._message().content.append(OutputText())
            self.phase = Phase.PART_ADDED
            return self._part_event("response.content_part.added")

        if phase in (Phase.PART_ADDED, Phase.TEXT_DELTA):
            if self._offset < len(self.content):
                return self._delta()
            self.phase = Phase.TEXT_DONE
            return TextDoneEvent(
                sequence_number=self._next_sequence(),
                item_id=self.message_id,
                output_index=1,
                content_index=0,
                text=self.content,
            )

        if phase is Phase.TEXT_DONE:
            self._message().content[0].text = self.content
            self.phase = Phase.PART_DONE
            return self._part_event("response.content_part.done")

        if phase is Phase.PART_DONE:
            self._message().status = "completed"
            self.phase = Phase.MESSAGE_DONE
            return self._item_event("response.output_item.done", 1)

        if phase is Phase.MESSAGE_DONE:
            self.snapshot.status = "completed"
            self.snapshot.usage = self.usage.for_responses(self.reasoning_tokens)
            self.phase = Phase.COMPLETED
            return self._lifecycle("response.completed")

        raise RuntimeError(f"No transition out of phase {phase.value}")

    def _delta(self) -> TextDeltaEvent:
        chunk = self.content[self._offset:self._offset + self.chunk_size]
        self._offset += len(chunk)
        self._message().content[0].text += chunk
        self._obfuscation += 1
        self.phase = Phase.TEXT_DELTA
        return TextDeltaEvent(
            sequence_number=self._next_sequence(),
            item_id=self.message_id,
            output_index=1,
            content_index=0,
            delta=chunk,
            obfuscation=f"{self._obfuscation:012x}",
        )


def encode_sse(event: StreamEvent) -> str:
    """Frame one event for the wire; responses-API events carry an ``event:`` line."""
    if isinstance(event, Sentinel):
        return f"data: {event.payload}\n\n"
    if isinstance(event, ChatCompletionChunk):
        return f"data: {event.model_dump_json(exclude_none=True)}\n\n"
    return f"event: {event.type}\ndata: {event.model_dump_json()}\n\n"


async def stream_sse(
    events: Iterable[StreamEvent],
    *,
    protocol: str,
    chunk_delay: float = 0.0,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """Drive a sequencer as encoded SSE frames.

    Sleeps ``chunk_delay`` seconds between consecutive text deltas. Stops
    without the sentinel as soon as the consumer is gone.
    """
    previous = None
    sent = 0
    try:
        for event in events:
            if chunk_delay and isinstance(event, TextDeltaEvent) and isinstance(previous, TextDeltaEvent):
                await asyncio.sleep(chunk_delay)
            if is_disconnected is not None and await is_disconnected():
                logger.info("Consumer disconnected, stream stopped", extra=log_extra(protocol=protocol, sent=sent))
                observability.record_stream_cancelled(protocol)
                return
            yield encode_sse(event)
            sent += 1
            observability.record_stream_event(protocol)
            previous = event
    except asyncio.CancelledError:
        logger.info("Stream cancelled", extra=log_extra(protocol=protocol, sent=sent))
        observability.record_stream_cancelled(protocol)
        raise


__all__ = [
    "CHUNK_SIZE",
    "DONE",
    "Phase",
    "ResponsesStream",
    "Sentinel",
    "chat_completion_events",
    "encode_sse",
    "stream_sse",
]
