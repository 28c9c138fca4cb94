from __future__ import annotations

import structlog
from prometheus_client import Counter, Histogram, start_http_server

from .config import KalitoConfig

log = structlog.get_logger()

server_requests_total = Counter(
    "kalito_server_requests_total",
    "Total HTTP requests handled by the chat server",
    labelnames=["path", "status"],
)

server_errors_total = Counter(
    "kalito_server_errors_total",
    "Total error responses returned by the chat server",
    labelnames=["type"],
)

adapter_requests_total = Counter(
    "kalito_adapter_requests_total",
    "Adapter calls by outcome",
    labelnames=["adapter", "mode", "status"],
)

adapter_latency_seconds = Histogram(
    "kalito_adapter_latency_seconds",
    "Adapter call latency, first byte to terminal chunk for streams",
    buckets=[0.1, 0.3, 0.5, 1, 2, 5, 10, 30, 60, 120],
    labelnames=["adapter", "mode"],
)

adapter_tokens_total = Counter(
    "kalito_adapter_tokens_total",
    "Tokens reported (or estimated) by adapters",
    labelnames=["adapter"],
)

adapter_estimated_cost_usd_total = Counter(
    "kalito_adapter_estimated_cost_usd_total",
    "Estimated spend in USD derived from token usage and pricing",
    labelnames=["adapter"],
)

stream_chunks_total = Counter(
    "kalito_stream_chunks_total",
    "Text chunks delivered by streaming adapters",
    labelnames=["adapter"],
)


def record_usage(adapter: str, token_usage: int | None, estimated_cost: float | None) -> None:
    if token_usage:
        adapter_tokens_total.labels(adapter=adapter).inc(token_usage)
    if estimated_cost:
        adapter_estimated_cost_usd_total.labels(adapter=adapter).inc(estimated_cost)


def start_metrics_server(cfg: KalitoConfig) -> bool:
    """Expose the registry on ``METRICS_BIND:METRICS_PORT`` when metrics are enabled."""
    if not cfg.enable_metrics:
        return False
    start_http_server(cfg.metrics_port, addr=cfg.metrics_bind)
    log.info("metrics_server_started", bind=cfg.metrics_bind, port=cfg.metrics_port)
    return True
