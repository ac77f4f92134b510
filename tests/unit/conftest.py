"""Shared fixtures: a scripted LLM provider that never touches the network."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from switchyard.llm.factory import LLMResponse

Reply = str | Exception | Callable[[list[dict[str, str]]], str]


class FakeProvider:
    """Returns canned replies in order; the last reply repeats."""

    def __init__(self, *replies: Reply, usage: dict | None = None) -> None:
        self.replies = list(replies) or [""]
        self.usage = usage
        self.calls: list[list[dict[str, str]]] = []

    async def chat(self, messages: list[dict[str, str]]) -> LLMResponse:
        self.calls.append(messages)
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        reply = self.replies[index]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(messages)
        return LLMResponse(content=reply, usage=self.usage)


@pytest.fixture
def fake_provider() -> type[FakeProvider]:
    return FakeProvider
