from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

import structlog

from .adapters.base import LLMAdapter
from .adapters.ollama import create_ollama_adapter
from .adapters.openai import create_openai_adapter
from .catalog import OLLAMA_MODELS, get_active_models
from .config import KalitoConfig
from .errors import ModelNotFoundError
from .types import GenerateRequest, GenerateResult, StreamChunk

log = structlog.get_logger()


class ModelRegistry:
    """Adapters keyed by canonical id and by alias; aliases share the instance."""

    def __init__(self) -> None:
        self._adapters: dict[str, LLMAdapter] = {}

    def register(self, adapter: LLMAdapter, aliases: Iterable[str] = ()) -> None:
        self._adapters[adapter.id] = adapter
        for alias in aliases:
            if alias:
                self._adapters[alias] = adapter

    def get(self, model_id: str | None) -> LLMAdapter | None:
        if not model_id:
            return None
        return self._adapters.get(model_id.strip())

    def require(self, model_id: str | None) -> LLMAdapter:
        adapter = self.get(model_id)
        if adapter is None:
            raise ModelNotFoundError(f'Model "{model_id}" is not registered.')
        return adapter

    def list_adapters(self) -> list[LLMAdapter]:
        unique: dict[str, LLMAdapter] = {}
        for adapter in self._adapters.values():
            unique.setdefault(adapter.id, adapter)
        return sorted(unique.values(), key=lambda a: (a.type, a.name, a.id))

    def __contains__(self, model_id: object) -> bool:
        return isinstance(model_id, str) and self.get(model_id) is not None

    async def generate(self, model_id: str, request: GenerateRequest | Mapping[str, Any]) -> GenerateResult:
        return await self.require(model_id).generate(request)

    def generate_stream(
        self, model_id: str, request: GenerateRequest | Mapping[str, Any]
    ) -> AsyncIterator[StreamChunk]:
        return self.require(model_id).generate_stream(request)

    async def aclose(self) -> None:
        for adapter in self.list_adapters():
            await adapter.close()


def build_default_registry(cfg: KalitoConfig | None = None) -> ModelRegistry:
    """Register every active OpenAI model and every local model from the catalog."""
    cfg = cfg or KalitoConfig()
    registry = ModelRegistry()

    for config in get_active_models().values():
        adapter = create_openai_adapter(
            config,
            api_key=cfg.openai_api_key,
            base_url=cfg.openai_base_url,
            timeout_seconds=cfg.upstream_timeout_seconds,
        )
        registry.register(adapter, config.aliases)

    for local in OLLAMA_MODELS.values():
        adapter = create_ollama_adapter(
            local,
            base_url=local.base_url or cfg.ollama_base_url,
            timeout_seconds=cfg.upstream_timeout_seconds,
        )
        registry.register(adapter, local.aliases)

    log.info("model_registry_built", adapters=[a.id for a in registry.list_adapters()])
    return registry
