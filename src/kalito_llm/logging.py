from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, MutableMapping
from typing import Any, TypeAlias, cast

import structlog

_SENSITIVE_KEYS = {
    "authorization",
    "x-api-key",
    "api_key",
    "apikey",
    "openai_api_key",
    "token",
    "secret",
    "password",
}

# Conversation text (journal entries, care notes) is logged by size only.
_PRIVATE_TEXT_KEYS = {"content", "reply", "delta", "prompt", "messages", "input"}

_SK_RE = re.compile(r"\bsk-[A-Za-z0-9_-]{8,}")
_BEARER_RE = re.compile(r"(?i)\bBearer\s+([A-Za-z0-9._-]{6,})")

ProcessorReturn: TypeAlias = Mapping[str, Any] | str | bytes | bytearray | tuple[Any, ...]
Processor: TypeAlias = Callable[[Any, str, MutableMapping[str, Any]], ProcessorReturn]


def _scrub_text(value: str, *, secrets: list[str]) -> str:
    for secret in secrets:
        if secret in value:
            value = value.replace(secret, "[REDACTED]")
    value = _SK_RE.sub("sk-[REDACTED]", value)
    return _BEARER_RE.sub("Bearer [REDACTED]", value)


def _describe_private(value: Any) -> str:
    if isinstance(value, str):
        return f"[{len(value)} chars]"
    if isinstance(value, (list, tuple)):
        return f"[{len(value)} items]"
    return "[PRIVATE]"


def scrub(obj: Any, *, secrets: list[str]) -> Any:
    if isinstance(obj, str):
        return _scrub_text(obj, secrets=secrets)
    if isinstance(obj, list):
        return [scrub(v, secrets=secrets) for v in obj]
    if isinstance(obj, tuple):
        return tuple(scrub(v, secrets=secrets) for v in obj)
    if isinstance(obj, Mapping):
        return _scrub_fields(obj, secrets=secrets)
    return obj


def _scrub_fields(fields: Mapping[Any, Any], *, secrets: list[str]) -> dict[Any, Any]:
    out: dict[Any, Any] = {}
    for k, v in fields.items():
        key = str(k).lower()
        if key in _SENSITIVE_KEYS or key.endswith(("_key", "_token", "_secret")):
            out[k] = "[REDACTED]"
        elif key in _PRIVATE_TEXT_KEYS:
            out[k] = _describe_private(v)
        else:
            out[k] = scrub(v, secrets=secrets)
    return out


class ScrubProcessor:
    """structlog processor applying ``scrub`` to each event's fields."""

    def __init__(self, secrets: list[str]):
        self.secrets = [s for s in secrets if isinstance(s, str) and s]

    def __call__(self, _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]) -> ProcessorReturn:
        return _scrub_fields(event_dict, secrets=self.secrets)


def configure_logging(level: str = "INFO", fmt: str = "json", *, secrets: list[str] | None = None) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level)

    processors: list[Processor] = [
        cast(Processor, structlog.contextvars.merge_contextvars),
        cast(Processor, structlog.processors.add_log_level),
        cast(Processor, structlog.processors.TimeStamper(fmt="iso")),
        cast(Processor, structlog.processors.format_exc_info),
        ScrubProcessor(secrets or []),
    ]

    if fmt == "json":
        processors.append(cast(Processor, structlog.processors.JSONRenderer()))
    else:
        processors.append(cast(Processor, structlog.dev.ConsoleRenderer()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )
