"""
kalito_llm.adapters.ollama: adapters for models served by a local Ollama engine.

Talks to the native ``POST /api/chat`` endpoint. Non-streaming calls return
one JSON object; streaming calls return newline-delimited JSON, one fragment
per line, ending with a ``{"done": true}`` line.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

from ..catalog import LocalModelConfig
from ..config import DEFAULT_OLLAMA_URL
from ..errors import ProviderError, UpstreamProtocolError, upstream_status_error
from ..types import GenerateRequest, GenerateResult, GenerationSettings, StreamChunk
from ..usage import estimate_cost, estimate_tokens
from .base import LLMAdapter, StreamTally

log = structlog.get_logger()

VENDOR = "Ollama"


def build_options(settings: GenerationSettings) -> dict[str, Any]:
    """Map generic settings to Ollama option names, keeping only what was set."""
    options: dict[str, Any] = {}
    if settings.temperature is not None:
        options["temperature"] = settings.temperature
    if settings.max_tokens is not None:
        options["num_predict"] = settings.max_tokens
    if settings.top_p is not None:
        options["top_p"] = settings.top_p
    if settings.repeat_penalty is not None:
        options["repeat_penalty"] = settings.repeat_penalty
    if settings.stop_sequences:
        options["stop"] = settings.stop_sequences
    options.update(settings.extras)
    return options


def build_chat_body(model: str, request: GenerateRequest, *, stream: bool) -> dict[str, Any]:
    body: dict[str, Any] = {"model": model, "messages": request.provider_messages(), "stream": stream}
    options = build_options(request.settings)
    if options:
        body["options"] = options
    return body


class OllamaAdapter(LLMAdapter):
    vendor = VENDOR
    type = "local"

    def __init__(
        self,
        config: LocalModelConfig,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
    ):
        super().__init__(id=config.id, name=config.name, context_window=config.context_window)
        self.config = config
        self._base_url = (base_url or config.base_url or DEFAULT_OLLAMA_URL).rstrip("/")
        if client is None:
            client = httpx.AsyncClient(timeout=timeout_seconds) if timeout_seconds else httpx.AsyncClient()
        self._client = client

    @property
    def chat_url(self) -> str:
        return f"{self._base_url}/api/chat"

    async def close(self) -> None:
        await self._client.aclose()

    def _connection_error(self, e: httpx.HTTPError) -> ProviderError:
        if isinstance(e, httpx.ConnectError):
            return ProviderError(
                f"Cannot connect to {VENDOR} at {self._base_url} for {self.id}. Make sure Ollama is running."
            )
        if isinstance(e, httpx.TimeoutException):
            return ProviderError(f"{VENDOR} request for {self.id} timed out.")
        return ProviderError(f"{VENDOR} request for {self.id} failed: {e}")

    def _status_error(self, resp: httpx.Response) -> ProviderError:
        return upstream_status_error(
            vendor=VENDOR,
            model=self.id,
            status_code=resp.status_code,
            detail=resp.reason_phrase,
            retry_after=resp.headers.get("retry-after"),
        )

    async def _generate(self, request: GenerateRequest) -> GenerateResult:
        body = build_chat_body(self.config.model, request, stream=False)
        try:
            resp = await self._client.post(self.chat_url, json=body)
        except httpx.HTTPError as e:
            raise self._connection_error(e) from e

        if resp.status_code >= 400:
            raise self._status_error(resp)

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamProtocolError(f"{VENDOR} returned invalid JSON for {self.id}.") from e

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise UpstreamProtocolError(f"{VENDOR} response for {self.id} is missing message.content.")

        prompt_count = data.get("prompt_eval_count")
        eval_count = data.get("eval_count")
        token_usage = prompt_count + eval_count if isinstance(prompt_count, int) and isinstance(eval_count, int) else None
        # Local models carry no pricing.
        return GenerateResult(
            reply=content.strip(),
            token_usage=token_usage,
            estimated_cost=estimate_cost(None, None),
        )

    async def _stream(self, request: GenerateRequest, tally: StreamTally) -> AsyncIterator[StreamChunk]:
        body = build_chat_body(self.config.model, request, stream=True)
        tally.token_usage = 0
        tally.estimated_cost = estimate_cost(None, None)
        try:
            async with self._client.stream("POST", self.chat_url, json=body) as resp:
                if resp.status_code >= 400:
                    raise self._status_error(resp)

                async for line in resp.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        event = json.loads(line)
                    except json.JSONDecodeError:
                        log.debug("ollama_stream_line_skipped", adapter=self.id, line_chars=len(line))
                        continue
                    if not isinstance(event, dict):
                        continue
                    if event.get("error"):
                        raise UpstreamProtocolError(f"{VENDOR} stream for {self.id} failed: {event['error']}")

                    message = event.get("message")
                    content = message.get("content") if isinstance(message, dict) else None
                    if isinstance(content, str) and content:
                        tally.token_usage += estimate_tokens(content)
                        yield StreamChunk(delta=content)

                    if event.get("done"):
                        yield tally.terminal()
                        return
        except httpx.HTTPError as e:
            raise self._connection_error(e) from e


def create_ollama_adapter(
    config: LocalModelConfig,
    *,
    client: httpx.AsyncClient | None = None,
    base_url: str | None = None,
    timeout_seconds: float | None = None,
) -> OllamaAdapter:
    return OllamaAdapter(config, client=client, base_url=base_url, timeout_seconds=timeout_seconds)
