import asyncio
import json

import pytest

from kalito_llm.errors import AuthenticationError, ProviderError, RequestTimeoutError
from kalito_llm.streaming import sse_from_chunks, with_deadlines, with_terminal_chunk
from kalito_llm.types import StreamChunk


async def _collect(stream):
    return [c async for c in stream]


@pytest.mark.asyncio
async def test_synthesizes_terminal_chunk_when_source_never_signals_done():
    async def source():
        yield StreamChunk(delta="a")
        yield StreamChunk(delta="b")

    chunks = await _collect(with_terminal_chunk(source(), fallback=lambda: StreamChunk.terminal(token_usage=9)))
    assert [c.delta for c in chunks] == ["a", "b", ""]
    assert [c.done for c in chunks] == [False, False, True]
    assert chunks[-1].token_usage == 9


@pytest.mark.asyncio
async def test_stops_at_first_terminal_chunk_and_closes_source():
    closed = {"v": False}

    async def source():
        try:
            yield StreamChunk(delta="a")
            yield StreamChunk.terminal(token_usage=1)
            yield StreamChunk(delta="late")
            yield StreamChunk.terminal(token_usage=2)
        finally:
            closed["v"] = True

    chunks = await _collect(with_terminal_chunk(source(), fallback=lambda: StreamChunk.terminal()))
    assert [c.delta for c in chunks] == ["a", ""]
    assert sum(1 for c in chunks if c.done) == 1
    assert chunks[-1].token_usage == 1
    assert closed["v"] is True


@pytest.mark.asyncio
async def test_terminal_chunk_with_text_is_split_into_text_then_terminal():
    async def source():
        yield StreamChunk(delta="tail", done=True, token_usage=3)

    chunks = await _collect(with_terminal_chunk(source(), fallback=lambda: StreamChunk.terminal()))
    assert chunks == [StreamChunk(delta="tail"), StreamChunk.terminal(token_usage=3)]


@pytest.mark.asyncio
async def test_empty_text_chunks_are_dropped():
    async def source():
        yield StreamChunk(delta="")
        yield StreamChunk(delta="x")

    chunks = await _collect(with_terminal_chunk(source(), fallback=lambda: StreamChunk.terminal()))
    assert [c.delta for c in chunks] == ["x", ""]


@pytest.mark.asyncio
async def test_with_deadlines_raises_on_idle_timeout():
    async def slow():
        yield StreamChunk(delta="a")
        await asyncio.sleep(1)
        yield StreamChunk(delta="b")

    got = []
    with pytest.raises(RequestTimeoutError):
        async for chunk in with_deadlines(slow(), idle_timeout=0.01):
            got.append(chunk)
    assert [c.delta for c in got] == ["a"]


@pytest.mark.asyncio
async def test_with_deadlines_raises_on_total_timeout_and_closes_source():
    closed = {"v": False}

    async def steady():
        try:
            while True:
                await asyncio.sleep(0.01)
                yield StreamChunk(delta=".")
        finally:
            closed["v"] = True

    got = []
    with pytest.raises(RequestTimeoutError):
        async for chunk in with_deadlines(steady(), idle_timeout=1, total_timeout=0.05):
            got.append(chunk)
    assert 0 < len(got) < 10
    assert closed["v"] is True


@pytest.mark.asyncio
async def test_with_deadlines_passes_through_when_disabled():
    async def source():
        yield StreamChunk(delta="a")
        yield StreamChunk.terminal()

    chunks = await _collect(with_deadlines(source(), idle_timeout=0, total_timeout=None))
    assert len(chunks) == 2


@pytest.mark.asyncio
async def test_sse_frames_chunks_and_ends_with_done_marker():
    async def source():
        yield StreamChunk(delta="he")
        yield StreamChunk.terminal(token_usage=2, estimated_cost=0.0)

    frames = [b.decode("utf-8") async for b in sse_from_chunks(source())]
    assert frames[-1] == "data: [DONE]\n\n"
    payloads = [json.loads(f[len("data: ") :]) for f in frames[:-1]]
    assert payloads == [{"delta": "he"}, {"delta": "", "done": True, "tokenUsage": 2, "estimatedCost": 0.0}]


@pytest.mark.asyncio
async def test_sse_reports_provider_failure_in_band():
    async def source():
        yield StreamChunk(delta="a")
        raise ProviderError("boom")

    frames = [b.decode("utf-8") async for b in sse_from_chunks(source())]
    assert json.loads(frames[1][len("data: ") :])["error"]["message"] == "boom"
    assert frames[-1] == "data: [DONE]\n\n"
    assert json.loads(frames[1][len("data: ") :])["error"]["type"] == "api_error"


@pytest.mark.asyncio
async def test_sse_in_band_error_uses_client_error_type():
    async def source():
        raise AuthenticationError("bad key")
        yield StreamChunk(delta="never")

    frames = [b.decode("utf-8") async for b in sse_from_chunks(source())]
    assert json.loads(frames[0][len("data: ") :]) == {"error": {"message": "bad key", "type": "authentication_error"}}
    assert frames[-1] == "data: [DONE]\n\n"
