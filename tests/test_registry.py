import pytest

from kalito_llm.adapters.base import LLMAdapter
from kalito_llm.config import KalitoConfig
from kalito_llm.errors import ModelNotFoundError
from kalito_llm.registry import ModelRegistry, build_default_registry
from kalito_llm.types import GenerateResult, StreamChunk


class EchoAdapter(LLMAdapter):
    def __init__(self, id, name, type="cloud"):
        super().__init__(id=id, name=name)
        self.type = type
        self.closed = False

    async def _generate(self, request):
        return GenerateResult(reply=request.messages[-1].content, token_usage=None)

    async def _stream(self, request, tally):
        yield StreamChunk(delta=request.messages[-1].content)

    async def close(self):
        self.closed = True


def test_aliases_resolve_to_the_same_adapter():
    registry = ModelRegistry()
    adapter = EchoAdapter("phi3-mini", "Phi-3 Mini", "local")
    registry.register(adapter, ["phi3", "", "phi-3"])
    assert registry.get("phi3") is adapter
    assert registry.get(" phi-3 ") is adapter
    assert registry.get("") is None
    assert "phi3-mini" in registry


def test_list_is_unique_and_sorted_by_type_name_id():
    registry = ModelRegistry()
    registry.register(EchoAdapter("b", "Zed", "local"), ["b-alias"])
    registry.register(EchoAdapter("a", "Alpha", "local"))
    registry.register(EchoAdapter("c", "Beta", "cloud"), ["c1", "c2"])
    assert [a.id for a in registry.list_adapters()] == ["c", "a", "b"]


def test_require_unknown_model_raises_not_found():
    with pytest.raises(ModelNotFoundError):
        ModelRegistry().require("gpt-9")


@pytest.mark.asyncio
async def test_routes_generate_and_stream_by_alias():
    registry = ModelRegistry()
    registry.register(EchoAdapter("echo", "Echo"), ["e"])
    request = {"messages": [{"role": "user", "content": "hello"}]}

    result = await registry.generate("e", request)
    assert result.reply == "hello"

    chunks = [c async for c in registry.generate_stream("echo", request)]
    assert [c.delta for c in chunks] == ["hello", ""]
    assert chunks[-1].done is True


@pytest.mark.asyncio
async def test_aclose_closes_each_adapter_once():
    registry = ModelRegistry()
    adapter = EchoAdapter("echo", "Echo")
    registry.register(adapter, ["e"])
    await registry.aclose()
    assert adapter.closed is True


@pytest.mark.asyncio
async def test_default_registry_contains_active_catalog_models_and_aliases():
    registry = build_default_registry(KalitoConfig(openai_api_key="sk-test", ollama_base_url="http://ollama.test"))
    try:
        ids = [a.id for a in registry.list_adapters()]
        assert "gpt-4.1-nano" in ids
        assert "gpt-5-nano" in ids
        assert "gpt-4.1-mini" not in ids
        assert "phi3-mini" in ids
        assert registry.get("gpt-4-nano").id == "gpt-4.1-nano"
        assert registry.get("gpt5-nano").id == "gpt-5-nano"
        assert registry.get("phi3").chat_url == "http://ollama.test/api/chat"
    finally:
        await registry.aclose()
