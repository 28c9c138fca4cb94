from __future__ import annotations

from .adapters import LLMAdapter, OllamaAdapter, OpenAIAdapter, create_ollama_adapter, create_openai_adapter
from .catalog import (
    OLLAMA_MODELS,
    OPENAI_MODELS,
    ApiMode,
    ChatMode,
    LocalModelConfig,
    ModelConfig,
    Pricing,
    ResponsesMode,
    get_active_models,
    get_all_model_ids,
    get_model_config,
)
from .config import KalitoConfig
from .registry import ModelRegistry, build_default_registry
from .types import ChatMessage, GenerateRequest, GenerateResult, GenerationSettings, StreamChunk

__all__ = [
    "ApiMode",
    "ChatMessage",
    "ChatMode",
    "GenerateRequest",
    "GenerateResult",
    "GenerationSettings",
    "KalitoConfig",
    "LLMAdapter",
    "LocalModelConfig",
    "ModelConfig",
    "ModelRegistry",
    "OLLAMA_MODELS",
    "OPENAI_MODELS",
    "OllamaAdapter",
    "OpenAIAdapter",
    "Pricing",
    "ResponsesMode",
    "StreamChunk",
    "build_default_registry",
    "create_ollama_adapter",
    "create_openai_adapter",
    "get_active_models",
    "get_all_model_ids",
    "get_model_config",
]
