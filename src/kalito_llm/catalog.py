"""Static model descriptors for every adapter the backend can build.

OpenAI entries describe the request shape each model needs. Local entries
only name the engine tag and context size, the local engine has no pricing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .types import ReasoningEffort


class ApiMode(str, Enum):
    CHAT = "chat"
    RESPONSES = "responses"


@dataclass(frozen=True)
class ChatMode:
    # Newer OpenAI models reject ``max_tokens`` and want ``max_completion_tokens``.
    uses_completion_token_param: bool = False

    @property
    def kind(self) -> ApiMode:
        return ApiMode.CHAT


@dataclass(frozen=True)
class ResponsesMode:
    default_reasoning_effort: ReasoningEffort = "medium"

    @property
    def kind(self) -> ApiMode:
        return ApiMode.RESPONSES


@dataclass(frozen=True)
class Pricing:
    input: float  # USD per 1M input tokens
    output: float  # USD per 1M output tokens


@dataclass(frozen=True)
class ModelConfig:
    model: str
    name: str
    api: ChatMode | ResponsesMode
    context_window: int
    default_max_tokens: int
    default_temperature: float
    pricing: Pricing | None = None
    deprecated: bool = False
    aliases: tuple[str, ...] = field(default_factory=tuple)

    @property
    def api_mode(self) -> ApiMode:
        return self.api.kind


@dataclass(frozen=True)
class LocalModelConfig:
    id: str
    name: str
    model: str
    context_window: int
    base_url: str | None = None
    aliases: tuple[str, ...] = field(default_factory=tuple)


OPENAI_MODELS: dict[str, ModelConfig] = {
    "gpt-4.1-mini": ModelConfig(
        model="gpt-4.1-mini",
        name="GPT-4.1 Mini",
        api=ChatMode(),
        context_window=128000,
        default_max_tokens=1024,
        default_temperature=0.7,
        pricing=Pricing(input=0.40, output=1.60),
        deprecated=True,
    ),
    "gpt-4.1-nano": ModelConfig(
        model="gpt-4.1-nano",
        name="GPT-4.1 Nano",
        api=ChatMode(),
        context_window=128000,
        default_max_tokens=1024,
        default_temperature=0.7,
        pricing=Pricing(input=0.20, output=0.80),
        aliases=("gpt-4-nano",),
    ),
    "gpt-5-mini": ModelConfig(
        model="gpt-5-mini",
        name="GPT-5 Mini",
        api=ResponsesMode(default_reasoning_effort="medium"),
        context_window=400000,
        default_max_tokens=2048,
        default_temperature=1.0,
        pricing=Pricing(input=0.25, output=2.00),
        aliases=("gpt5-mini",),
    ),
    "gpt-5-nano": ModelConfig(
        model="gpt-5-nano",
        name="GPT-5 Nano",
        api=ChatMode(uses_completion_token_param=True),
        context_window=400000,
        default_max_tokens=2048,
        default_temperature=1.0,
        pricing=Pricing(input=0.05, output=0.40),
        aliases=("gpt5-nano",),
    ),
}

OLLAMA_MODELS: dict[str, LocalModelConfig] = {
    "qwen-2.5-coder-3b": LocalModelConfig(
        id="qwen-2.5-coder-3b",
        name="Qwen 2.5 Coder 3B",
        model="qwen2.5-coder:3b",
        context_window=32768,
        aliases=("qwen-coder",),
    ),
    "phi3-mini": LocalModelConfig(
        id="phi3-mini",
        name="Phi-3 Mini",
        model="phi3:mini",
        context_window=4096,
        aliases=("phi3", "phi-3"),
    ),
    "neural-chat-7b": LocalModelConfig(
        id="neural-chat-7b",
        name="Neural Chat 7B",
        model="neural-chat:7b",
        context_window=32768,
    ),
}


def get_model_config(model_id: str) -> ModelConfig | None:
    """Look up an OpenAI model by id, falling back to its aliases."""
    if model_id in OPENAI_MODELS:
        return OPENAI_MODELS[model_id]
    for config in OPENAI_MODELS.values():
        if model_id in config.aliases:
            return config
    return None


def get_all_model_ids() -> list[str]:
    ids: list[str] = []
    for model_id, config in OPENAI_MODELS.items():
        ids.append(model_id)
        ids.extend(config.aliases)
    return ids


def get_active_models() -> dict[str, ModelConfig]:
    return {model_id: config for model_id, config in OPENAI_MODELS.items() if not config.deprecated}
