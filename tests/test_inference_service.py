"""Tests for HuggingFaceService with the AsyncInferenceClient replaced by a stub."""

from types import SimpleNamespace

import pytest

from chatbot.errors import GatewayError
from chatbot.models import ChatMessage, GenerationParams
from chatbot.services.inference_service import HuggingFaceService

MESSAGES = [
    ChatMessage(role="system", content="Be nice."),
    ChatMessage(role="user", content="Hello"),
]
MODEL = "Qwen/Qwen2.5-7B-Instruct"


class ProviderHTTPError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.response = SimpleNamespace(status_code=status_code)


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class StubClient:
    def __init__(self, response=None, chunks=None, error=None):
        self.response = response
        self.chunks = chunks or []
        self.error = error
        self.kwargs = None
        self.stream_closed = False

    async def chat_completion(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        if kwargs.get("stream"):
            return self._stream()
        return self.response

    async def _stream(self):
        try:
            for chunk in self.chunks:
                if isinstance(chunk, Exception):
                    raise chunk
                yield chunk
        finally:
            self.stream_closed = True


@pytest.mark.asyncio
async def test_complete_sends_messages_model_and_params() -> None:
    client = StubClient(
        response=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Hi there"))],
            usage=SimpleNamespace(prompt_tokens=5, completion_tokens=2, total_tokens=7),
        )
    )
    service = HuggingFaceService("hf_test", client=client)

    result = await service.complete(MODEL, MESSAGES, GenerationParams(temperature=0.3, max_tokens=64))

    assert result.text == "Hi there"
    assert result.usage == {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7}
    assert client.kwargs == {
        "messages": [
            {"role": "system", "content": "Be nice."},
            {"role": "user", "content": "Hello"},
        ],
        "model": MODEL,
        "temperature": 0.3,
        "max_tokens": 64,
    }


@pytest.mark.asyncio
async def test_complete_with_empty_choices_returns_empty_text() -> None:
    client = StubClient(response=SimpleNamespace(choices=[], usage=None))
    service = HuggingFaceService("hf_test", client=client)

    result = await service.complete(MODEL, MESSAGES, GenerationParams())

    assert result.text == ""
    assert result.usage is None


@pytest.mark.asyncio
async def test_complete_wraps_provider_errors() -> None:
    service = HuggingFaceService("hf_test", client=StubClient(error=RuntimeError("boom")))

    with pytest.raises(GatewayError) as exc_info:
        await service.complete(MODEL, MESSAGES, GenerationParams())

    assert exc_info.value.rate_limited is False


@pytest.mark.asyncio
async def test_complete_flags_rate_limit() -> None:
    error = ProviderHTTPError("Too many requests", status_code=429)
    service = HuggingFaceService("hf_test", client=StubClient(error=error))

    with pytest.raises(GatewayError) as exc_info:
        await service.complete(MODEL, MESSAGES, GenerationParams())

    assert exc_info.value.rate_limited is True


@pytest.mark.asyncio
async def test_stream_skips_empty_fragments() -> None:
    client = StubClient(chunks=[_chunk("Hel"), _chunk(None), SimpleNamespace(choices=[]), _chunk("lo")])
    service = HuggingFaceService("hf_test", client=client)

    received = [c async for c in service.complete_stream(MODEL, MESSAGES, GenerationParams())]

    assert received == ["Hel", "lo"]
    assert client.kwargs["stream"] is True
    assert client.stream_closed is True


@pytest.mark.asyncio
async def test_closing_stream_early_closes_provider_stream() -> None:
    client = StubClient(chunks=[_chunk("a"), _chunk("b"), _chunk("c")])
    service = HuggingFaceService("hf_test", client=client)

    stream = service.complete_stream(MODEL, MESSAGES, GenerationParams())
    assert await stream.__anext__() == "a"
    await stream.aclose()

    assert client.stream_closed is True


@pytest.mark.asyncio
async def test_stream_error_mid_way_becomes_gateway_error() -> None:
    client = StubClient(chunks=[_chunk("a"), RuntimeError("connection reset")])
    service = HuggingFaceService("hf_test", client=client)

    received = []
    with pytest.raises(GatewayError):
        async for chunk in service.complete_stream(MODEL, MESSAGES, GenerationParams()):
            received.append(chunk)

    assert received == ["a"]
