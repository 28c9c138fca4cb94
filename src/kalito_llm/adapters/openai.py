"""
kalito_llm.adapters.openai: adapters for OpenAI models, built from ``ModelConfig``.

One adapter class serves every catalog entry. The entry's ``api`` variant picks
the request shape:

* ``ChatMode``: ``chat.completions``; the output-token limit is sent as
  ``max_completion_tokens`` or ``max_tokens`` per the model's flag.
* ``ResponsesMode``: ``responses``; the conversation is sent as a single
  newline-joined prompt and ``reasoning.effort`` is forwarded.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from typing import Any

import openai
import structlog
from openai import AsyncOpenAI

from ..catalog import ChatMode, ModelConfig, ResponsesMode
from ..errors import AuthenticationError, ProviderError, UpstreamProtocolError, upstream_status_error
from ..types import GenerateRequest, GenerateResult, StreamChunk
from ..usage import estimate_cost, total_tokens
from .base import LLMAdapter, StreamTally

log = structlog.get_logger()

VENDOR = "OpenAI"


def _resolve_limits(config: ModelConfig, request: GenerateRequest) -> tuple[int, float]:
    settings = request.settings
    max_tokens = settings.max_tokens if settings.max_tokens is not None else config.default_max_tokens
    temperature = settings.temperature if settings.temperature is not None else config.default_temperature
    return max_tokens, temperature


def build_chat_payload(config: ModelConfig, request: GenerateRequest, *, stream: bool = False) -> dict[str, Any]:
    if not isinstance(config.api, ChatMode):
        raise TypeError(f"{config.model} is not configured for the chat completions API")
    settings = request.settings
    max_tokens, temperature = _resolve_limits(config, request)
    token_param = "max_completion_tokens" if config.api.uses_completion_token_param else "max_tokens"

    payload: dict[str, Any] = {
        "model": config.model,
        "messages": request.provider_messages(),
        "temperature": temperature,
        token_param: max_tokens,
    }
    if settings.top_p is not None:
        payload["top_p"] = settings.top_p
    if settings.frequency_penalty is not None:
        payload["frequency_penalty"] = settings.frequency_penalty
    if settings.presence_penalty is not None:
        payload["presence_penalty"] = settings.presence_penalty
    if settings.stop_sequences:
        payload["stop"] = settings.stop_sequences
    if stream:
        payload["stream"] = True
        payload["stream_options"] = {"include_usage": True}

    extra_body = settings.extras
    if settings.reasoning_effort is not None:
        extra_body["reasoning_effort"] = settings.reasoning_effort
    if settings.verbosity is not None:
        extra_body["verbosity"] = settings.verbosity
    if extra_body:
        payload["extra_body"] = extra_body
    return payload


def flatten_prompt(request: GenerateRequest) -> str:
    # Roles are not carried over; callers see a warning when they differ.
    return "\n".join(m.content for m in request.messages)


def build_responses_payload(
    config: ModelConfig, request: GenerateRequest, *, stream: bool = False
) -> dict[str, Any]:
    if not isinstance(config.api, ResponsesMode):
        raise TypeError(f"{config.model} is not configured for the responses API")
    settings = request.settings
    max_tokens, _ = _resolve_limits(config, request)

    payload: dict[str, Any] = {
        "model": config.model,
        "input": flatten_prompt(request),
        "max_output_tokens": max_tokens,
        "reasoning": {"effort": settings.reasoning_effort or config.api.default_reasoning_effort},
    }
    # Reasoning models reject a non-default temperature, so only an explicit override is sent.
    if settings.temperature is not None:
        payload["temperature"] = settings.temperature
    if settings.top_p is not None:
        payload["top_p"] = settings.top_p
    if settings.verbosity is not None:
        payload["text"] = {"verbosity": settings.verbosity}
    if stream:
        payload["stream"] = True
    if settings.extras:
        payload["extra_body"] = settings.extras
    return payload


def _response_text(response: Any) -> str:
    text = getattr(response, "output_text", None)
    if isinstance(text, str):
        return text
    output = getattr(response, "output", None)
    if not isinstance(output, list):
        raise UpstreamProtocolError("Missing output in OpenAI responses payload.")
    parts: list[str] = []
    for item in output:
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", None) == "output_text":
                parts.append(content.text)
    return "".join(parts)


class OpenAIAdapter(LLMAdapter):
    vendor = VENDOR
    type = "cloud"

    def __init__(
        self,
        config: ModelConfig,
        *,
        client: AsyncOpenAI | Any | None = None,
        id: str | None = None,
        name: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
    ):
        super().__init__(id=id or config.model, name=name or config.name, context_window=config.context_window)
        self.config = config
        self._client = client
        self._owns_client = client is None
        self._api_key = api_key
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        api_key = self._api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise AuthenticationError(f"Missing OPENAI_API_KEY for {VENDOR} model {self.id}.")
        kwargs: dict[str, Any] = {"api_key": api_key}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        if self._timeout_seconds is not None:
            kwargs["timeout"] = self._timeout_seconds
        self._client = AsyncOpenAI(**kwargs)
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    def _translate_error(self, e: Exception) -> ProviderError:
        if isinstance(e, openai.APIStatusError):
            return upstream_status_error(
                vendor=VENDOR,
                model=self.id,
                status_code=e.status_code,
                detail=e.message,
                retry_after=e.response.headers.get("retry-after"),
            )
        if isinstance(e, openai.APITimeoutError):
            return ProviderError(f"{VENDOR} request for {self.id} timed out.")
        if isinstance(e, openai.APIConnectionError):
            return ProviderError(f"{VENDOR} API connection failed for {self.id}: {e}")
        return ProviderError(f"{VENDOR} API error for {self.id}: {e}")

    async def _generate(self, request: GenerateRequest) -> GenerateResult:
        client = self._get_client()
        try:
            if isinstance(self.config.api, ResponsesMode):
                self._warn_if_roles_dropped(request)
                response = await client.responses.create(**build_responses_payload(self.config, request))
                reply = _response_text(response)
            else:
                response = await client.chat.completions.create(**build_chat_payload(self.config, request))
                choice = response.choices[0] if response.choices else None
                message = getattr(choice, "message", None)
                reply = getattr(message, "content", None) or ""
        except openai.OpenAIError as e:
            raise self._translate_error(e) from e

        usage = getattr(response, "usage", None)
        return GenerateResult(
            reply=reply,
            token_usage=total_tokens(usage),
            estimated_cost=estimate_cost(usage, self.config.pricing),
        )

    async def _stream(self, request: GenerateRequest, tally: StreamTally) -> AsyncIterator[StreamChunk]:
        client = self._get_client()
        tally.estimated_cost = estimate_cost(None, self.config.pricing)
        try:
            if isinstance(self.config.api, ResponsesMode):
                self._warn_if_roles_dropped(request)
                events = await client.responses.create(**build_responses_payload(self.config, request, stream=True))
                async for event in events:
                    kind = getattr(event, "type", None)
                    if kind == "response.output_text.delta":
                        yield StreamChunk(delta=event.delta)
                    elif kind in ("response.completed", "response.incomplete"):
                        self._record_usage(tally, getattr(event.response, "usage", None))
                    elif kind in ("response.failed", "error"):
                        raise UpstreamProtocolError(f"{VENDOR} stream for {self.id} failed: {_event_error(event)}")
            else:
                chunks = await client.chat.completions.create(**build_chat_payload(self.config, request, stream=True))
                async for chunk in chunks:
                    if chunk.choices:
                        delta = getattr(chunk.choices[0].delta, "content", None)
                        if delta:
                            yield StreamChunk(delta=delta)
                    self._record_usage(tally, getattr(chunk, "usage", None))
        except openai.OpenAIError as e:
            raise self._translate_error(e) from e

    def _record_usage(self, tally: StreamTally, usage: Any) -> None:
        # Last usage object seen wins.
        if usage is None:
            return
        tally.token_usage = total_tokens(usage)
        tally.estimated_cost = estimate_cost(usage, self.config.pricing)

    def _warn_if_roles_dropped(self, request: GenerateRequest) -> None:
        roles = {m.role for m in request.messages}
        if len(roles) > 1:
            log.warning("responses_prompt_flattened", adapter=self.id, roles=sorted(roles), message_count=len(request.messages))


def _event_error(event: Any) -> str:
    message = getattr(event, "message", None)
    if message:
        return str(message)
    error = getattr(getattr(event, "response", None), "error", None)
    return str(getattr(error, "message", None) or "unknown error")


def create_openai_adapter(
    config: ModelConfig,
    *,
    client: AsyncOpenAI | Any | None = None,
    id: str | None = None,
    name: str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
    timeout_seconds: float | None = None,
) -> OpenAIAdapter:
    """Build an adapter for one catalog entry.

    ``client`` replaces the SDK client, which is otherwise created on first use
    from ``api_key`` or ``OPENAI_API_KEY``.
    """
    adapter = OpenAIAdapter(
        config,
        client=client,
        id=id,
        name=name,
        api_key=api_key,
        base_url=base_url,
        timeout_seconds=timeout_seconds,
    )
    log.debug("openai_adapter_created", adapter=adapter.id, api_mode=config.api_mode.value)
    return adapter
