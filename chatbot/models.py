"""
DATA MODELS MODULE
==================

Pydantic models used for API requests and responses, and for the session data
the SessionStore keeps in memory. FastAPI uses them to validate incoming JSON
and to serialize responses.

MODELS:
  ChatMessage          - One transcript entry (role + content).
  Session              - A conversation: transcript, system prompt, bound model, timestamps.
  SessionSummary       - Read-only projection of a Session for GET /conversations.
  GenerationParams     - temperature / max_tokens passed straight to the provider.
  CompletionResult     - What the gateway returns (reply text + optional token usage).
  TurnResult           - What SessionStore.apply_turn returns.
  ChatRequest/Response - POST /chat and POST /chat/stream (stateless).
  ConversationRequest/Response - POST /conversation (session turn).
  SessionDetail        - GET /conversation/{session_id}.
  ModelInfo            - One alias row for GET /models.
  ImageRequest/Response - POST /images.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from config import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, MAX_MESSAGE_LENGTH

Role = Literal["system", "user", "assistant"]


# ==============================================================================
# SESSION DATA
# ==============================================================================

class ChatMessage(BaseModel):
    """A single message. Order inside a transcript defines chronology."""
    role: Role
    content: str


class Session(BaseModel):
    """
    One conversation. messages never contains the system prompt; it is
    prepended only when the request to the provider is assembled.
    model always holds a fully-qualified model id, never an alias.
    """
    id: str
    messages: List[ChatMessage] = Field(default_factory=list)
    system_prompt: str
    model: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class SessionSummary(BaseModel):
    session_id: str
    message_count: int
    model: str
    last_message: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class GenerationParams(BaseModel):
    """Pass-through generation settings; not interpreted by the services."""
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS


class CompletionResult(BaseModel):
    text: str
    usage: Optional[Dict[str, Any]] = None


class TurnResult(BaseModel):
    reply: str
    session: Session
    usage: Optional[Dict[str, Any]] = None


# ==============================================================================
# REQUEST / RESPONSE MODELS
# ==============================================================================

class ChatRequest(BaseModel):
    """
    Request body for POST /chat and POST /chat/stream.

    - message: Required, 1-32,000 characters (422 otherwise).
    - model: Optional alias ("llama3") or full model id. Default model if omitted.
    - system_prompt: Optional; the default prompt is used if omitted.
    """
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    model: Optional[str] = None
    system_prompt: Optional[str] = None
    temperature: float = Field(DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    max_tokens: int = Field(DEFAULT_MAX_TOKENS, ge=1)

    def generation_params(self) -> GenerationParams:
        return GenerationParams(temperature=self.temperature, max_tokens=self.max_tokens)


class ChatResponse(BaseModel):
    success: bool = True
    reply: str
    model: str
    usage: Optional[Dict[str, Any]] = None


class ConversationRequest(ChatRequest):
    """
    Request body for POST /conversation.

    - session_id: Optional. If omitted the server creates a session and returns
      its id; send it back on the next request to continue the conversation.
    - model / system_prompt: if given, they replace the session's settings and
      stick for later turns.
    """
    session_id: Optional[str] = None


class ConversationResponse(BaseModel):
    success: bool = True
    session_id: str
    reply: str
    model: str
    message_count: int
    usage: Optional[Dict[str, Any]] = None


class SessionDetail(BaseModel):
    session_id: str
    system_prompt: str
    model: str
    message_count: int
    messages: List[ChatMessage]
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_session(cls, session: Session) -> "SessionDetail":
        return cls(
            session_id=session.id,
            system_prompt=session.system_prompt,
            model=session.model,
            message_count=len(session.messages),
            messages=session.messages,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )


class SessionListResponse(BaseModel):
    sessions: List[SessionSummary]


class DeleteResponse(BaseModel):
    success: bool = True
    message: str


class ModelInfo(BaseModel):
    alias: str
    model_id: str
    is_default: bool


class ModelListResponse(BaseModel):
    models: List[ModelInfo]


class ImageRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    model: Optional[str] = None
    num_inference_steps: Optional[int] = Field(None, ge=1, le=100)


class ImageResponse(BaseModel):
    success: bool = True
    path: str
    url: str
    model: str
