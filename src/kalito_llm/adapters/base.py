"""
kalito_llm.adapters.base: the contract every model integration implements.

Backends implement ``_generate`` and ``_stream``; the public ``generate`` and
``generate_stream`` add logging, metrics and the single-terminal-chunk
guarantee so no backend has to repeat them.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any, Literal

import structlog

from ..metrics import adapter_latency_seconds, adapter_requests_total, record_usage, stream_chunks_total
from ..streaming import with_terminal_chunk
from ..types import GenerateRequest, GenerateResult, StreamChunk

log = structlog.get_logger()

AdapterType = Literal["cloud", "local"]


@dataclass
class StreamTally:
    """Running usage for one stream; becomes the terminal chunk if upstream never sends one."""

    token_usage: int | None = None
    estimated_cost: float | None = None

    def terminal(self) -> StreamChunk:
        return StreamChunk.terminal(self.token_usage, self.estimated_cost)


def coerce_request(request: GenerateRequest | Mapping[str, Any]) -> GenerateRequest:
    if isinstance(request, GenerateRequest):
        return request
    return GenerateRequest.model_validate(request)


class LLMAdapter(ABC):
    vendor: str = ""
    type: AdapterType = "cloud"

    def __init__(self, *, id: str, name: str, context_window: int | None = None):
        self.id = id
        self.name = name
        self.context_window = context_window

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"

    @abstractmethod
    async def _generate(self, request: GenerateRequest) -> GenerateResult: ...

    @abstractmethod
    def _stream(self, request: GenerateRequest, tally: StreamTally) -> AsyncIterator[StreamChunk]:
        """Yield text chunks, keeping ``tally`` current. A terminal chunk is optional."""

    async def close(self) -> None:
        return None

    async def generate(self, request: GenerateRequest | Mapping[str, Any]) -> GenerateResult:
        request = coerce_request(request)
        start = time.monotonic()
        try:
            result = await self._generate(request)
        except Exception as e:
            adapter_requests_total.labels(adapter=self.id, mode="generate", status="error").inc()
            log.exception("adapter_error", adapter=self.id, mode="generate", error=str(e))
            raise

        adapter_requests_total.labels(adapter=self.id, mode="generate", status="success").inc()
        adapter_latency_seconds.labels(adapter=self.id, mode="generate").observe(time.monotonic() - start)
        record_usage(self.id, result.token_usage, result.estimated_cost)
        log.info(
            "adapter_generate_ok",
            adapter=self.id,
            reply_chars=len(result.reply),
            token_usage=result.token_usage,
            estimated_cost=result.estimated_cost,
        )
        return result

    async def generate_stream(self, request: GenerateRequest | Mapping[str, Any]) -> AsyncIterator[StreamChunk]:
        request = coerce_request(request)
        tally = StreamTally()
        start = time.monotonic()
        # Stays "cancelled" when the caller abandons the iterator early.
        status = "cancelled"
        chunks = 0
        stream = with_terminal_chunk(self._stream(request, tally), fallback=tally.terminal)
        try:
            async for chunk in stream:
                if chunk.done:
                    status = "success"
                    record_usage(self.id, chunk.token_usage, chunk.estimated_cost)
                    log.info(
                        "adapter_stream_done",
                        adapter=self.id,
                        chunks=chunks,
                        token_usage=chunk.token_usage,
                        estimated_cost=chunk.estimated_cost,
                    )
                else:
                    chunks += 1
                    stream_chunks_total.labels(adapter=self.id).inc()
                yield chunk
        except Exception as e:
            status = "error"
            log.exception("adapter_error", adapter=self.id, mode="stream", error=str(e))
            raise
        finally:
            await stream.aclose()
            adapter_requests_total.labels(adapter=self.id, mode="stream", status=status).inc()
            adapter_latency_seconds.labels(adapter=self.id, mode="stream").observe(time.monotonic() - start)
