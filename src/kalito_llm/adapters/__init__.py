"""
kalito_llm.adapters: model integrations behind the ``LLMAdapter`` contract.

    - ``openai``: cloud models via the OpenAI SDK (chat or responses API)
    - ``ollama``: local models via an Ollama engine's ``/api/chat``
"""

from __future__ import annotations

from kalito_llm.adapters.base import LLMAdapter, StreamTally
from kalito_llm.adapters.ollama import OllamaAdapter, create_ollama_adapter
from kalito_llm.adapters.openai import OpenAIAdapter, create_openai_adapter

__all__ = [
    "LLMAdapter",
    "StreamTally",
    "OllamaAdapter",
    "OpenAIAdapter",
    "create_ollama_adapter",
    "create_openai_adapter",
]
