"""
CHAT SERVICE MODULE
===================

Stateless single-turn chat used by POST /chat and POST /chat/stream. Every
request is exactly [system prompt, user message]; nothing is remembered.
Use the SessionStore for conversations with history.
"""

import logging
from typing import AsyncIterator, List, Optional, Tuple

from chatbot.errors import ValidationError
from chatbot.models import ChatMessage, CompletionResult, GenerationParams
from chatbot.services.inference_service import CompletionGateway
from chatbot.services.model_registry import ModelRegistry
from config import DEFAULT_SYSTEM_PROMPT

logger = logging.getLogger("HF-Chatbot")


class ChatService:
    """One message in, one reply out, no history."""

    def __init__(
        self,
        registry: ModelRegistry,
        gateway: CompletionGateway,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ):
        self.registry = registry
        self.gateway = gateway
        self.default_system_prompt = default_system_prompt

    def build_messages(self, message: str, system_prompt: Optional[str] = None) -> List[ChatMessage]:
        if not message or not message.strip():
            raise ValidationError("message is required")
        return [
            ChatMessage(role="system", content=system_prompt or self.default_system_prompt),
            ChatMessage(role="user", content=message),
        ]

    async def reply(
        self,
        message: str,
        *,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        params: Optional[GenerationParams] = None,
    ) -> Tuple[CompletionResult, str]:
        """Return the provider's reply and the model id that produced it."""
        messages = self.build_messages(message, system_prompt)
        resolved = self.registry.resolve(model)
        logger.info(f"[chat] model={resolved} message={message[:50]!r}")
        result = await self.gateway.complete(resolved, messages, params or GenerationParams())
        return result, resolved

    def stream(
        self,
        message: str,
        *,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        params: Optional[GenerationParams] = None,
    ) -> Tuple[AsyncIterator[str], str]:
        """
        Validate now, stream later: ValidationError is raised before anything is
        sent to the client. The returned iterator yields reply fragments.
        """
        messages = self.build_messages(message, system_prompt)
        resolved = self.registry.resolve(model)
        logger.info(f"[stream] model={resolved} message={message[:50]!r}")
        return self.gateway.complete_stream(resolved, messages, params or GenerationParams()), resolved
