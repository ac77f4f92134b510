"""LLM factory: a ``chat(messages)`` provider backed by LangChain + LiteLLM."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage


@dataclass
class LLMResponse:
    content: str
    usage: dict[str, Any] | None = None

    @property
    def total_tokens(self) -> int | None:
        if not self.usage:
            return None
        total = self.usage.get("total_tokens")
        return int(total) if total is not None else None


class LLMProvider(Protocol):
    """Stateless chat capability; safe to call concurrently."""

    async def chat(self, messages: list[dict[str, str]]) -> LLMResponse: ...


@lru_cache(maxsize=32)
def get_llm(model_name: str = "claude-sonnet-4-6", temperature: float = 0.0) -> BaseChatModel:
    """Return a cached LangChain chat model via LiteLLM.

    Supports any model string that LiteLLM understands:
      - "claude-sonnet-4-6"
      - "gpt-4o" / "gpt-4o-mini"
      - "gemini/gemini-2.0-flash"
    """
    from langchain_litellm import ChatLiteLLM  # type: ignore[import-untyped]

    return ChatLiteLLM(model=model_name, temperature=temperature)  # type: ignore[return-value]


_ROLE_TO_MESSAGE: dict[str, type[BaseMessage]] = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


def to_langchain_messages(messages: list[dict[str, str]]) -> list[BaseMessage]:
    converted: list[BaseMessage] = []
    for message in messages:
        role = message.get("role", "user")
        message_cls = _ROLE_TO_MESSAGE.get(role)
        if message_cls is None:
            raise ValueError(f"Unsupported message role: {role!r}")
        converted.append(message_cls(content=message.get("content", "")))
    return converted


class LangChainProvider:
    """Adapts a LangChain chat model to the ``LLMProvider`` protocol."""

    def __init__(self, llm: BaseChatModel) -> None:
        self.llm = llm

    async def chat(self, messages: list[dict[str, str]]) -> LLMResponse:
        response = await self.llm.ainvoke(to_langchain_messages(messages))
        usage = getattr(response, "usage_metadata", None)
        return LLMResponse(content=str(response.content), usage=dict(usage) if usage else None)


def create_provider(
    model_name: str = "claude-sonnet-4-6", temperature: float = 0.0
) -> LangChainProvider:
    return LangChainProvider(get_llm(model_name, temperature))
