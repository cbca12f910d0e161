"""Shared fixtures: a scripted CompletionGateway and store/service builders."""

import itertools
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, List, Optional

import pytest

from chatbot.models import ChatMessage, CompletionResult
from chatbot.services.chat_service import ChatService
from chatbot.services.inference_service import CompletionGateway
from chatbot.services.model_registry import ModelRegistry
from chatbot.services.session_store import SessionStore

ALIASES = {
    "llama3": "meta-llama/Llama-3.1-8B-Instruct",
    "qwen": "Qwen/Qwen2.5-7B-Instruct",
}
DEFAULT_PROMPT = "You are a helpful, friendly AI assistant."


class FakeGateway(CompletionGateway):
    """
    Records every call. Replies come from `replies` in order (falling back to
    "reply N"); an Exception instance in `replies` is raised instead.
    """

    def __init__(self, replies: Optional[list] = None, chunks: Optional[List[str]] = None):
        self.replies = list(replies or [])
        self.chunks = list(chunks or [])
        self.calls = []
        self.stream_closed = False
        self.chunks_pulled = 0

    async def complete(self, model, messages, params) -> CompletionResult:
        self.calls.append(
            {"model": model, "messages": [m.model_copy() for m in messages], "params": params}
        )
        reply = self.replies.pop(0) if self.replies else f"reply {len(self.calls)}"
        if isinstance(reply, Exception):
            raise reply
        return CompletionResult(text=reply, usage={"total_tokens": 3})

    async def complete_stream(self, model, messages, params) -> AsyncIterator[str]:
        self.calls.append(
            {"model": model, "messages": [m.model_copy() for m in messages], "params": params}
        )
        try:
            for chunk in self.chunks:
                if isinstance(chunk, Exception):
                    raise chunk
                self.chunks_pulled += 1
                yield chunk
        finally:
            self.stream_closed = True


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def registry() -> ModelRegistry:
    return ModelRegistry(ALIASES, "llama3")


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store(registry, gateway) -> SessionStore:
    counter = itertools.count(1)
    return SessionStore(
        registry,
        gateway,
        default_system_prompt=DEFAULT_PROMPT,
        max_messages=20,
        id_factory=lambda: f"session-{next(counter)}",
        clock=StepClock(),
    )


@pytest.fixture
def chat_service(registry, gateway) -> ChatService:
    return ChatService(registry, gateway, DEFAULT_PROMPT)


def user(content: str) -> ChatMessage:
    return ChatMessage(role="user", content=content)


def assistant(content: str) -> ChatMessage:
    return ChatMessage(role="assistant", content=content)


