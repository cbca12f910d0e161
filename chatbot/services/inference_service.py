"""
INFERENCE SERVICE MODULE
========================

The completion gateway: given a model id, an ordered list of role-tagged
messages and generation parameters, produce the assistant's reply, either in
one piece or as a stream of text fragments.

CompletionGateway is the contract the SessionStore and ChatService depend on.
HuggingFaceService binds it to the Hugging Face hosted inference API through
huggingface_hub's AsyncInferenceClient.

FAILURES:
  Any provider or network exception is wrapped in GatewayError (rate_limited is
  set for 429s). Nothing here retries; the caller decides what to report.

STREAMING:
  complete_stream() returns an async generator. It is lazy, finite and not
  restartable. If the consumer stops early (client disconnected) and closes the
  generator, the underlying provider stream is closed too.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional

from huggingface_hub import AsyncInferenceClient

from chatbot.errors import GatewayError, is_rate_limit_error
from chatbot.models import ChatMessage, CompletionResult, GenerationParams

logger = logging.getLogger("HF-Chatbot")


def _wrap_provider_error(exc: Exception) -> GatewayError:
    """Turn whatever the client raised into a GatewayError, flagging rate limits."""
    return GatewayError(str(exc) or exc.__class__.__name__, rate_limited=is_rate_limit_error(exc))


def _to_provider_messages(messages: List[ChatMessage]) -> List[Dict[str, str]]:
    return [{"role": m.role, "content": m.content} for m in messages]


def _usage_to_dict(usage: Any) -> Optional[Dict[str, Any]]:
    if not usage:
        return None
    return {
        "prompt_tokens": getattr(usage, "prompt_tokens", None),
        "completion_tokens": getattr(usage, "completion_tokens", None),
        "total_tokens": getattr(usage, "total_tokens", None),
    }


# ==============================================================================
# CONTRACT
# ==============================================================================

class CompletionGateway(ABC):
    """What the rest of the app needs from an inference provider."""

    @abstractmethod
    async def complete(
        self,
        model: str,
        messages: List[ChatMessage],
        params: GenerationParams,
    ) -> CompletionResult:
        """Return the full reply. Raises GatewayError on failure."""

    @abstractmethod
    def complete_stream(
        self,
        model: str,
        messages: List[ChatMessage],
        params: GenerationParams,
    ) -> AsyncIterator[str]:
        """Return an async iterator of non-empty text fragments. Raises GatewayError on failure."""


# ==============================================================================
# HUGGING FACE IMPLEMENTATION
# ==============================================================================

class HuggingFaceService(CompletionGateway):
    """
    Chat completion over the Hugging Face inference API. One AsyncInferenceClient
    is shared by every request; the model is chosen per call so sessions bound to
    different models can use the same client.
    """

    def __init__(
        self,
        api_key: str,
        provider: str = "auto",
        timeout: Optional[float] = None,
        client: Optional[AsyncInferenceClient] = None,
    ):
        self.provider = provider
        self.client = client or AsyncInferenceClient(
            provider=provider,
            api_key=api_key or None,
            timeout=timeout,
        )
        if not api_key:
            logger.warning("No Hugging Face API key configured. Inference calls will fail.")

    async def complete(
        self,
        model: str,
        messages: List[ChatMessage],
        params: GenerationParams,
    ) -> CompletionResult:
        try:
            response = await self.client.chat_completion(
                messages=_to_provider_messages(messages),
                model=model,
                temperature=params.temperature,
                max_tokens=params.max_tokens,
            )
        except Exception as e:
            logger.error(f"Chat completion failed (model={model}): {e}")
            raise _wrap_provider_error(e) from e

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""
        return CompletionResult(text=text, usage=_usage_to_dict(getattr(response, "usage", None)))

    async def complete_stream(
        self,
        model: str,
        messages: List[ChatMessage],
        params: GenerationParams,
    ) -> AsyncIterator[str]:
        try:
            stream = await self.client.chat_completion(
                messages=_to_provider_messages(messages),
                model=model,
                temperature=params.temperature,
                max_tokens=params.max_tokens,
                stream=True,
            )
        except Exception as e:
            logger.error(f"Chat completion stream failed to start (model={model}): {e}")
            raise _wrap_provider_error(e) from e

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except Exception as e:
            logger.error(f"Chat completion stream failed (model={model}): {e}")
            raise _wrap_provider_error(e) from e
        finally:
            # Runs on normal end, on error and when the consumer closes us early.
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
