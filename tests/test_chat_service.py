import pytest

from chatbot.errors import ValidationError
from chatbot.models import GenerationParams


def test_build_messages_is_system_then_user(chat_service) -> None:
    messages = chat_service.build_messages("Hello")

    assert [(m.role, m.content) for m in messages] == [
        ("system", "You are a helpful, friendly AI assistant."),
        ("user", "Hello"),
    ]


def test_build_messages_uses_prompt_override(chat_service) -> None:
    messages = chat_service.build_messages("Hello", "Be terse.")

    assert messages[0].content == "Be terse."


def test_build_messages_rejects_blank_message(chat_service) -> None:
    with pytest.raises(ValidationError):
        chat_service.build_messages("  ")


@pytest.mark.asyncio
async def test_reply_resolves_model_and_calls_gateway_once(chat_service, gateway) -> None:
    gateway.replies = ["Hi"]
    params = GenerationParams(temperature=0.2, max_tokens=10)

    result, model = await chat_service.reply("Hello", model="qwen", params=params)

    assert result.text == "Hi"
    assert model == "Qwen/Qwen2.5-7B-Instruct"
    assert len(gateway.calls) == 1
    assert gateway.calls[0]["model"] == model
    assert gateway.calls[0]["params"] == params
    assert len(gateway.calls[0]["messages"]) == 2


@pytest.mark.asyncio
async def test_reply_keeps_no_history(chat_service, gateway) -> None:
    await chat_service.reply("one")
    await chat_service.reply("two")

    assert [m.content for m in gateway.calls[1]["messages"]][1:] == ["two"]


@pytest.mark.asyncio
async def test_stream_yields_gateway_chunks(chat_service, gateway) -> None:
    gateway.chunks = ["Hel", "lo"]

    chunks, model = chat_service.stream("Hello")
    received = [chunk async for chunk in chunks]

    assert received == ["Hel", "lo"]
    assert model == "meta-llama/Llama-3.1-8B-Instruct"


def test_stream_validates_before_streaming(chat_service, gateway) -> None:
    with pytest.raises(ValidationError):
        chat_service.stream("")

    assert gateway.calls == []
