from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_OLLAMA_URL = "http://localhost:11434"


def _optional_float(name: str) -> float | None:
    value = os.getenv(name)
    if not value:
        return None
    return float(value)


class KalitoConfig(BaseModel):
    # Cloud vendor
    openai_api_key: str | None = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    openai_base_url: str | None = Field(default_factory=lambda: os.getenv("OPENAI_BASE_URL"))

    # Local engine
    ollama_base_url: str = Field(default_factory=lambda: os.getenv("OLLAMA_BASE_URL", DEFAULT_OLLAMA_URL))

    # None keeps the HTTP client library's own default
    upstream_timeout_seconds: float | None = Field(
        default_factory=lambda: _optional_float("UPSTREAM_TIMEOUT_SECONDS")
    )

    # Observability
    enable_metrics: bool = Field(
        default_factory=lambda: os.getenv("ENABLE_METRICS", "false").lower() == "true"
    )
    metrics_bind: str = Field(default_factory=lambda: os.getenv("METRICS_BIND", "127.0.0.1"))
    metrics_port: int = Field(default_factory=lambda: int(os.getenv("METRICS_PORT", "9109")))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = Field(default_factory=lambda: os.getenv("LOG_FORMAT", "json"))

    # HTTP surface
    enable_api_docs: bool = Field(
        default_factory=lambda: os.getenv("ENABLE_API_DOCS", "false").lower() == "true"
    )
    max_messages: int = Field(default_factory=lambda: int(os.getenv("MAX_MESSAGES", "64")))
    max_total_message_chars: int = Field(
        default_factory=lambda: int(os.getenv("MAX_TOTAL_MESSAGE_CHARS", "100000"))
    )

    # End-to-end deadlines for /api/chat (0 disables)
    chat_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("CHAT_TIMEOUT_SECONDS", "120"))
    )
    chat_stream_idle_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("CHAT_STREAM_IDLE_TIMEOUT_SECONDS", "60"))
    )
    chat_stream_total_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("CHAT_STREAM_TOTAL_TIMEOUT_SECONDS", "600"))
    )

    def secrets(self) -> list[str]:
        return [s for s in (self.openai_api_key,) if s]
