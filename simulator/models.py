"""
Wire models for the chat-completions and responses endpoints
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CHAT_MODEL = "gpt-3.5-turbo"
DEFAULT_RESPONSES_MODEL = "gpt-5"

# Flat surcharge reported as reasoning tokens on responses-API usage.
MOCK_REASONING_TOKENS = 64


# Requests

class ChatCompletionRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    messages: Optional[List[Dict[str, Any]]] = None
    model: Optional[str] = None
    stream: Optional[bool] = False

    def prompt_text(self) -> str:
        if not self.messages:
            return ""
        return json.dumps(self.messages)


class ResponsesRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    input: Optional[Union[str, List[Any]]] = None
    instructions: Optional[str] = None
    stream: Optional[bool] = False

    def prompt_text(self) -> str:
        if self.input is None:
            return ""
        if isinstance(self.input, str):
            return self.input
        return json.dumps(self.input)


# Usage

class Usage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    @classmethod
    def from_counts(cls, prompt_tokens: int, completion_tokens: int) -> "Usage":
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )

    def for_responses(self, reasoning_tokens: int = MOCK_REASONING_TOKENS) -> "ResponsesUsage":
        output_tokens = self.completion_tokens + reasoning_tokens
        return ResponsesUsage(
            input_tokens=self.prompt_tokens,
            input_tokens_details=InputTokensDetails(),
            output_tokens=output_tokens,
            output_tokens_details=OutputTokensDetails(reasoning_tokens=reasoning_tokens),
            total_tokens=self.prompt_tokens + output_tokens,
        )


class InputTokensDetails(BaseModel):
    cached_tokens: int = 0


class OutputTokensDetails(BaseModel):
    reasoning_tokens: int = 0


class ResponsesUsage(BaseModel):
    input_tokens: int
    input_tokens_details: InputTokensDetails
    output_tokens: int
    output_tokens_details: OutputTokensDetails
    total_tokens: int


# Chat completions

class ChatMessage(BaseModel):
    role: str = "assistant"
    content: str


class Choice(BaseModel):
    index: int = 0
    message: ChatMessage
    finish_reason: str = "stop"


class ChatCompletionResponse(BaseModel):
    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: List[Choice]
    usage: Usage


class ChoiceDelta(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None


class ChunkChoice(BaseModel):
    index: int = 0
    delta: ChoiceDelta = Field(default_factory=ChoiceDelta)
    finish_reason: Optional[str] = None


class ChatCompletionChunk(BaseModel):
    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int
    model: str
    choices: List[ChunkChoice]
    usage: Optional[Usage] = None


# Responses API

class OutputText(BaseModel):
    type: Literal["output_text"] = "output_text"
    text: str = ""
    annotations: List[Any] = Field(default_factory=list)
    logprobs: List[Any] = Field(default_factory=list)


class ReasoningItem(BaseModel):
    type: Literal["reasoning"] = "reasoning"
    id: str
    summary: List[Any] = Field(default_factory=list)


class MessageItem(BaseModel):
    type: Literal["message"] = "message"
    id: str
    status: Literal["in_progress", "completed"] = "in_progress"
    role: Literal["assistant"] = "assistant"
    content: List[OutputText] = Field(default_factory=list)


OutputItem = Annotated[Union[ReasoningItem, MessageItem], Field(discriminator="type")]


class ResponseSnapshot(BaseModel):
    id: str
    object: Literal["response"] = "response"
    created_at: int
    model: str
    status: Literal["in_progress", "completed"] = "in_progress"
    instructions: Optional[str] = None
    output: List[OutputItem] = Field(default_factory=list)
    usage: Optional[ResponsesUsage] = None


class ResponseLifecycleEvent(BaseModel):
    type: Literal["response.created", "response.in_progress", "response.completed"]
    sequence_number: int
    response: ResponseSnapshot


class OutputItemEvent(BaseModel):
    type: Literal["response.output_item.added", "response.output_item.done"]
    sequence_number: int
    output_index: int
    item: OutputItem


class ContentPartEvent(BaseModel):
    type: Literal["response.content_part.added", "response.content_part.done"]
    sequence_number: int
    item_id: str
    output_index: int
    content_index: int
    part: OutputText


class TextDeltaEvent(BaseModel):
    type: Literal["response.output_text.delta"] = "response.output_text.delta"
    sequence_number: int
    item_id: str
    output_index: int
    content_index: int
    delta: str
    logprobs: List[Any] = Field(default_factory=list)
    obfuscation: str


class TextDoneEvent(BaseModel):
    type: Literal["response.output_text.done"] = "response.output_text.done"
    sequence_number: int
    item_id: str
    output_index: int
    content_index: int
    text: str
    logprobs: List[Any] = Field(default_factory=list)


ResponseStreamEvent = Union[
    ResponseLifecycleEvent,
    OutputItemEvent,
    ContentPartEvent,
    TextDeltaEvent,
    TextDoneEvent,
]
