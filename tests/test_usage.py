import pytest

from kalito_llm.catalog import Pricing
from kalito_llm.usage import estimate_cost, estimate_tokens, input_tokens, output_tokens, total_tokens


def test_estimate_cost_uses_per_million_pricing():
    usage = {"prompt_tokens": 1000, "completion_tokens": 500, "total_tokens": 1500}
    cost = estimate_cost(usage, Pricing(input=0.20, output=0.80))
    assert cost == pytest.approx((1000 * 0.20 + 500 * 0.80) / 1_000_000)


def test_estimate_cost_reads_responses_field_names():
    usage = {"input_tokens": 2_000_000, "output_tokens": 1_000_000}
    assert estimate_cost(usage, Pricing(input=0.25, output=2.0)) == pytest.approx(2.5)


def test_estimate_cost_is_zero_without_pricing_or_usage():
    assert estimate_cost({"prompt_tokens": 10, "completion_tokens": 10}, None) == 0
    assert estimate_cost(None, Pricing(input=1.0, output=1.0)) == 0


def test_token_fields_read_from_sdk_style_objects():
    class Usage:
        prompt_tokens = None
        input_tokens = 7
        output_tokens = 3
        total_tokens = None

    assert input_tokens(Usage()) == 7
    assert output_tokens(Usage()) == 3
    assert total_tokens(Usage()) == 10


def test_total_tokens_prefers_reported_total_and_is_none_without_counts():
    assert total_tokens({"prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 5}) == 5
    assert total_tokens({}) is None
    assert total_tokens(None) is None


def test_estimate_tokens_rounds_up_quarter_of_characters():
    assert estimate_tokens("") == 0
    assert estimate_tokens("Hi") == 1
    assert estimate_tokens("12345678") == 2
    assert estimate_tokens("123456789") == 3
