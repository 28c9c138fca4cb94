from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ReasoningEffort = Literal["low", "medium", "high"]


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: str


class GenerationSettings(BaseModel):
    """Generation knobs shared by every adapter.

    Keys may be given in snake_case or in the frontend's camelCase. Keys that
    are not named fields are kept in ``extras`` and forwarded to the provider
    untouched.
    """

    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    repeat_penalty: float | None = None
    stop_sequences: list[str] | None = None
    reasoning_effort: ReasoningEffort | None = None
    verbosity: Literal["brief", "full"] | None = None

    @field_validator("temperature")
    @classmethod
    def _validate_temperature(cls, v: float | None) -> float | None:
        if v is not None and not (0.0 <= v <= 2.0):
            raise ValueError("temperature must be between 0 and 2.")
        return v

    @field_validator("top_p")
    @classmethod
    def _validate_top_p(cls, v: float | None) -> float | None:
        if v is not None and not (0.0 < v <= 1.0):
            raise ValueError("top_p must be > 0 and <= 1.")
        return v

    @field_validator("max_tokens")
    @classmethod
    def _validate_max_tokens(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("max_tokens must be > 0.")
        return v

    @field_validator("frequency_penalty", "presence_penalty")
    @classmethod
    def _validate_penalties(cls, v: float | None) -> float | None:
        if v is not None and not (-2.0 <= v <= 2.0):
            raise ValueError("penalty must be between -2 and 2.")
        return v

    @field_validator("repeat_penalty")
    @classmethod
    def _validate_repeat_penalty(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("repeat_penalty must be > 0.")
        return v

    @field_validator("stop_sequences")
    @classmethod
    def _validate_stop(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        if any(not s for s in v):
            raise ValueError("stop sequences must be non-empty strings.")
        return v

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class GenerateRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)
    settings: GenerationSettings = Field(default_factory=GenerationSettings)

    def provider_messages(self) -> list[dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages]


@dataclass(frozen=True)
class GenerateResult:
    reply: str
    token_usage: int | None
    estimated_cost: float | None = None

    def as_payload(self) -> dict[str, Any]:
        return {"reply": self.reply, "tokenUsage": self.token_usage, "estimatedCost": self.estimated_cost}


@dataclass(frozen=True)
class StreamChunk:
    delta: str
    done: bool = False
    token_usage: int | None = None
    estimated_cost: float | None = None

    @classmethod
    def terminal(cls, token_usage: int | None = None, estimated_cost: float | None = None) -> "StreamChunk":
        return cls(delta="", done=True, token_usage=token_usage, estimated_cost=estimated_cost)

    def as_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {"delta": self.delta}
        if self.done:
            out["done"] = True
            out["tokenUsage"] = self.token_usage
            if self.estimated_cost is not None:
                out["estimatedCost"] = self.estimated_cost
        return out
