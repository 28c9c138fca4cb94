from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from .adapters.base import LLMAdapter
from .types import ChatMessage, GenerateRequest, GenerationSettings


class ChatRequest(BaseModel):
    model: str = Field(min_length=1)
    messages: list[ChatMessage] = Field(min_length=1)
    settings: GenerationSettings = Field(default_factory=GenerationSettings)
    stream: bool = False

    def to_generate_request(self) -> GenerateRequest:
        return GenerateRequest(messages=self.messages, settings=self.settings)

    def total_chars(self) -> int:
        return sum(len(m.content) for m in self.messages)


class ChatReply(BaseModel):
    reply: str
    tokenUsage: int | None = None
    estimatedCost: float | None = None


class ModelInfo(BaseModel):
    key: str
    id: str
    name: str
    type: Literal["cloud", "local"]
    contextWindow: int | None = None


class ModelListResponse(BaseModel):
    success: bool = True
    models: list[ModelInfo]


def model_info(adapter: LLMAdapter) -> ModelInfo:
    # The frontend reads ``key``; ``id`` is kept for older clients.
    return ModelInfo(
        key=adapter.id,
        id=adapter.id,
        name=adapter.name,
        type=adapter.type,
        contextWindow=adapter.context_window,
    )


class ErrorDetail(BaseModel):
    message: str
    type: str = "api_error"


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: ErrorDetail


def make_error_response(*, message: str, type: str = "api_error") -> dict[str, Any]:
    return ErrorResponse(error=ErrorDetail(message=message, type=type)).model_dump()
