from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager

import structlog

from .config import KalitoConfig
from .errors import (
    AuthenticationError,
    ConfigurationError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
    UpstreamProtocolError,
    error_type,
)
from .logging import configure_logging
from .metrics import server_errors_total, server_requests_total, start_metrics_server
from .registry import ModelRegistry, build_default_registry
from .schemas import ChatReply, ChatRequest, ModelListResponse, make_error_response, model_info
from .streaming import sse_from_chunks, with_deadlines

log = structlog.get_logger()


def create_app(cfg: KalitoConfig | None = None, registry: ModelRegistry | None = None):
    try:
        from fastapi import FastAPI
        from fastapi.responses import JSONResponse, StreamingResponse
    except ImportError as e:  # pragma: no cover
        raise RuntimeError('Install the "server" extra: pip install -e ".[server]"') from e

    cfg = cfg or KalitoConfig()
    configure_logging(level=cfg.log_level, fmt=cfg.log_format, secrets=cfg.secrets())
    registry = registry or build_default_registry(cfg)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        start_metrics_server(cfg)
        try:
            yield
        finally:
            await registry.aclose()

    app = FastAPI(
        title="kalito-llm",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if cfg.enable_api_docs else None,
        redoc_url="/redoc" if cfg.enable_api_docs else None,
        openapi_url="/openapi.json" if cfg.enable_api_docs else None,
    )

    def _error(status_code: int, exc: ProviderError, headers: dict[str, str] | None = None) -> JSONResponse:
        kind = error_type(exc)
        server_errors_total.labels(type=kind).inc()
        log.warning("chat_request_failed", status_code=status_code, error_type=kind, error=str(exc))
        return JSONResponse(
            status_code=status_code,
            content=make_error_response(message=str(exc), type=kind),
            headers=headers,
        )

    @app.exception_handler(AuthenticationError)
    async def _auth_error_handler(_request, exc: AuthenticationError):
        return _error(401, exc)

    @app.exception_handler(RateLimitError)
    async def _rate_limit_error_handler(_request, exc: RateLimitError):
        headers = {}
        if exc.retry_after_seconds is not None:
            headers["Retry-After"] = str(exc.retry_after_seconds)
        return _error(429, exc, headers)

    @app.exception_handler(ModelNotFoundError)
    async def _not_found_handler(_request, exc: ModelNotFoundError):
        return _error(404, exc)

    @app.exception_handler(ConfigurationError)
    async def _config_error_handler(_request, exc: ConfigurationError):
        return _error(400, exc)

    @app.exception_handler(UpstreamProtocolError)
    async def _upstream_error_handler(_request, exc: UpstreamProtocolError):
        return _error(502, exc)

    @app.exception_handler(RequestTimeoutError)
    async def _timeout_error_handler(_request, exc: RequestTimeoutError):
        return _error(504, exc)

    @app.exception_handler(ProviderError)
    async def _provider_error_handler(_request, exc: ProviderError):
        return _error(500, exc)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/models", response_model=ModelListResponse)
    async def list_models() -> ModelListResponse:
        server_requests_total.labels(path="/api/models", status="200").inc()
        return ModelListResponse(models=[model_info(a) for a in registry.list_adapters()])

    @app.post("/api/chat", response_model=ChatReply)
    async def chat(req: ChatRequest):
        if len(req.messages) > cfg.max_messages:
            raise ConfigurationError("Too many messages.")
        if req.total_chars() > cfg.max_total_message_chars:
            raise ConfigurationError("Message content too large.")

        adapter = registry.require(req.model)
        request = req.to_generate_request()

        if req.stream:
            chunks = with_deadlines(
                adapter.generate_stream(request),
                idle_timeout=cfg.chat_stream_idle_timeout_seconds,
                total_timeout=cfg.chat_stream_total_timeout_seconds,
            )
            server_requests_total.labels(path="/api/chat", status="200").inc()
            return StreamingResponse(sse_from_chunks(chunks), media_type="text/event-stream")

        try:
            result = await asyncio.wait_for(
                adapter.generate(request),
                timeout=max(0.0, float(cfg.chat_timeout_seconds or 0)) or None,
            )
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError("Request timed out.") from e

        server_requests_total.labels(path="/api/chat", status="200").inc()
        return ChatReply(**result.as_payload())

    return app


def main() -> None:  # pragma: no cover
    try:
        import uvicorn
    except ImportError as e:
        raise RuntimeError('Install the "server" extra: pip install -e ".[server]"') from e

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "3001"))
    uvicorn.run("kalito_llm.server:create_app", host=host, port=port, factory=True)


if __name__ == "__main__":  # pragma: no cover
    main()
