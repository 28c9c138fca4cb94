from prometheus_client import REGISTRY

from kalito_llm import metrics
from kalito_llm.config import KalitoConfig


def test_metrics_server_not_started_when_disabled(monkeypatch):
    calls = []
    monkeypatch.setattr(metrics, "start_http_server", lambda *a, **kw: calls.append((a, kw)))
    assert metrics.start_metrics_server(KalitoConfig(enable_metrics=False)) is False
    assert calls == []


def test_metrics_server_binds_configured_address(monkeypatch):
    calls = []
    monkeypatch.setattr(metrics, "start_http_server", lambda *a, **kw: calls.append((a, kw)))
    cfg = KalitoConfig(enable_metrics=True, metrics_bind="0.0.0.0", metrics_port=9200)
    assert metrics.start_metrics_server(cfg) is True
    assert calls == [((9200,), {"addr": "0.0.0.0"})]


def _sample(name: str, adapter: str) -> float:
    return REGISTRY.get_sample_value(name, {"adapter": adapter}) or 0.0


def test_record_usage_counts_tokens_and_cost():
    tokens_before = _sample("kalito_adapter_tokens_total", "usage-test")
    cost_before = _sample("kalito_adapter_estimated_cost_usd_total", "usage-test")
    metrics.record_usage("usage-test", 12, 0.5)
    metrics.record_usage("usage-test", None, 0.0)
    assert _sample("kalito_adapter_tokens_total", "usage-test") - tokens_before == 12
    assert _sample("kalito_adapter_estimated_cost_usd_total", "usage-test") - cost_before == 0.5
