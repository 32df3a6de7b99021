"""Shared fixtures for the FAQ chatbot tests."""

from __future__ import annotations

import pytest

from faq_chatbot.conversation.session import ChatSession
from faq_chatbot.core.knowledge_base import KnowledgeBase, default_knowledge_base


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def kb() -> KnowledgeBase:
    return default_knowledge_base()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session(kb: KnowledgeBase, clock: FakeClock) -> ChatSession:
    return ChatSession(kb, response_delay=0.5, clock=clock)
