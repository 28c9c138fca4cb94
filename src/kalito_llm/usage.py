from __future__ import annotations

import math
from typing import Any

from .catalog import Pricing

# Chat completions report prompt/completion tokens, the responses API reports
# input/output tokens.
_INPUT_FIELDS = ("prompt_tokens", "input_tokens")
_OUTPUT_FIELDS = ("completion_tokens", "output_tokens")


def _field(usage: Any, name: str) -> int | None:
    if usage is None:
        return None
    value = usage.get(name) if isinstance(usage, dict) else getattr(usage, name, None)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _first(usage: Any, names: tuple[str, ...]) -> int | None:
    for name in names:
        value = _field(usage, name)
        if value is not None:
            return value
    return None


def input_tokens(usage: Any) -> int:
    return _first(usage, _INPUT_FIELDS) or 0


def output_tokens(usage: Any) -> int:
    return _first(usage, _OUTPUT_FIELDS) or 0


def total_tokens(usage: Any) -> int | None:
    if usage is None:
        return None
    total = _field(usage, "total_tokens")
    if total is not None:
        return total
    if _first(usage, _INPUT_FIELDS) is None and _first(usage, _OUTPUT_FIELDS) is None:
        return None
    return input_tokens(usage) + output_tokens(usage)


def estimate_cost(usage: Any, pricing: Pricing | None) -> float:
    if pricing is None or usage is None:
        return 0.0
    return (input_tokens(usage) * pricing.input + output_tokens(usage) * pricing.output) / 1_000_000


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)
