from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable

import structlog

from .errors import ProviderError, RequestTimeoutError, error_type
from .types import StreamChunk

log = structlog.get_logger()


async def _aclose(it: object) -> None:
    aclose = getattr(it, "aclose", None)
    if callable(aclose):
        await aclose()


async def with_terminal_chunk(
    chunks: AsyncIterator[StreamChunk],
    *,
    fallback: Callable[[], StreamChunk],
) -> AsyncIterator[StreamChunk]:
    """Yield text chunks followed by exactly one terminal chunk.

    The first terminal chunk from the source ends the stream; anything the
    source would produce afterwards is dropped. If the source runs dry
    without one, ``fallback()`` supplies it. Empty text chunks are skipped.
    """
    try:
        async for chunk in chunks:
            if chunk.done:
                if chunk.delta:
                    yield StreamChunk(delta=chunk.delta)
                yield StreamChunk.terminal(chunk.token_usage, chunk.estimated_cost)
                return
            if chunk.delta:
                yield chunk
        terminal = fallback()
        yield StreamChunk.terminal(terminal.token_usage, terminal.estimated_cost)
    finally:
        await _aclose(chunks)


async def with_deadlines(
    stream: AsyncIterator[StreamChunk],
    *,
    idle_timeout: float | None = None,
    total_timeout: float | None = None,
) -> AsyncIterator[StreamChunk]:
    """Abandon ``stream`` when a chunk takes too long or the whole stream does.

    Timeouts of ``None`` or ``0`` are disabled. Expiry raises
    ``RequestTimeoutError``; the source is closed either way.
    """
    it = stream.__aiter__()
    loop = asyncio.get_running_loop()
    idle = max(0.0, float(idle_timeout or 0))
    total = max(0.0, float(total_timeout or 0))
    started = loop.time()
    try:
        while True:
            timeout: float | None = idle or None
            if total:
                remaining = total - (loop.time() - started)
                if remaining <= 0:
                    raise RequestTimeoutError("Streaming request timed out.")
                timeout = remaining if timeout is None else min(timeout, remaining)

            try:
                chunk = await asyncio.wait_for(anext(it), timeout=timeout)
            except StopAsyncIteration:
                break
            except asyncio.TimeoutError as e:
                raise RequestTimeoutError("Streaming request timed out.") from e
            yield chunk
    finally:
        await _aclose(it)


def sse_encode(data: str) -> bytes:
    return f"data: {data}\n\n".encode("utf-8")


async def sse_from_chunks(chunks: AsyncIterator[StreamChunk]) -> AsyncIterator[bytes]:
    """Frame chunks as server-sent events, ending with ``[DONE]``.

    A provider failure after the response has started is reported in-band as
    an ``error`` event since the status line is already sent.
    """
    try:
        async for chunk in chunks:
            yield sse_encode(json.dumps(chunk.as_payload()))
    except ProviderError as e:
        log.warning("stream_aborted", error_type=error_type(e), error=str(e))
        yield sse_encode(json.dumps({"error": {"message": str(e), "type": error_type(e)}}))
    yield sse_encode("[DONE]")
