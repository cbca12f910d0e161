"""Tests for the terminal client with requests patched out."""

from unittest.mock import MagicMock

import pytest
import requests

import chat_client


def _response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.text = text
    return response


@pytest.fixture(autouse=True)
def reset_client_state(monkeypatch):
    monkeypatch.setattr(chat_client, "SESSION_ID", None)
    monkeypatch.setattr(chat_client, "CURRENT_MODEL", None)


def test_send_message_stores_session_id(monkeypatch) -> None:
    post = MagicMock(return_value=_response(payload={"reply": "Hi", "session_id": "abc"}))
    monkeypatch.setattr(chat_client.requests, "post", post)

    assert chat_client.send_message("Hello") == "Hi"
    assert chat_client.SESSION_ID == "abc"

    chat_client.send_message("Again")
    assert post.call_args.kwargs["json"] == {"message": "Again", "session_id": "abc"}


def test_send_message_includes_selected_model(monkeypatch) -> None:
    post = MagicMock(return_value=_response(payload={"reply": "Hi", "session_id": "abc"}))
    monkeypatch.setattr(chat_client.requests, "post", post)

    chat_client.handle_command("/model qwen")
    chat_client.send_message("Hello")

    assert post.call_args.kwargs["json"]["model"] == "qwen"


def test_send_message_shows_server_detail(monkeypatch) -> None:
    post = MagicMock(return_value=_response(502, {"detail": "Failed to generate response"}))
    monkeypatch.setattr(chat_client.requests, "post", post)

    assert chat_client.send_message("Hello") == "Error: Failed to generate response"
    assert chat_client.SESSION_ID is None


def test_send_message_connection_error(monkeypatch) -> None:
    post = MagicMock(side_effect=requests.exceptions.ConnectionError())
    monkeypatch.setattr(chat_client.requests, "post", post)

    assert "Cannot connect" in chat_client.send_message("Hello")


def test_history_without_session() -> None:
    assert chat_client.get_chat_history() == "No active session"


def test_history_formats_messages(monkeypatch) -> None:
    monkeypatch.setattr(chat_client, "SESSION_ID", "abc")
    get = MagicMock(
        return_value=_response(
            payload={
                "messages": [
                    {"role": "user", "content": "Hello"},
                    {"role": "assistant", "content": "Hi"},
                ]
            }
        )
    )
    monkeypatch.setattr(chat_client.requests, "get", get)

    output = chat_client.get_chat_history()

    assert "1. You: Hello" in output
    assert "2. Assistant: Hi" in output
    assert get.call_args.args[0].endswith("/conversation/abc")


def test_clear_deletes_server_session(monkeypatch) -> None:
    monkeypatch.setattr(chat_client, "SESSION_ID", "abc")
    delete = MagicMock(return_value=_response())
    monkeypatch.setattr(chat_client.requests, "delete", delete)

    chat_client.handle_command("/clear")

    assert delete.call_args.args[0].endswith("/conversation/abc")
    assert chat_client.SESSION_ID is None


def test_models_command(monkeypatch) -> None:
    get = MagicMock(
        return_value=_response(
            payload={"models": [{"alias": "llama3", "model_id": "meta-llama/x", "is_default": True}]}
        )
    )
    monkeypatch.setattr(chat_client.requests, "get", get)

    assert "llama3" in chat_client.handle_command("/models")
    assert "(default)" in chat_client.handle_command("/models")


def test_quit_and_unknown_commands() -> None:
    assert chat_client.handle_command("/quit") is None
    assert chat_client.handle_command("/exit") is None
    assert chat_client.handle_command("/nope") == "Unknown command: /nope"
