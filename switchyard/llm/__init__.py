"""LLM provider access."""

from __future__ import annotations

from switchyard.llm.factory import (
    LangChainProvider,
    LLMProvider,
    LLMResponse,
    create_provider,
    get_llm,
)

__all__ = [
    "LangChainProvider",
    "LLMProvider",
    "LLMResponse",
    "create_provider",
    "get_llm",
]
