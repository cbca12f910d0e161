"""
SESSION STORE MODULE
====================

Owns every conversation the server knows about. Sessions live in memory for
the lifetime of the process; there is no persistence and no expiry. Nothing
else touches the session map: route handlers go through the methods below.

OPERATIONS:
  get_or_create(id)   - Return the session, or create it (new id if none given).
  apply_turn(id, ...) - One user message + one assistant reply (see below).
  get(id)             - Return the session or raise NotFoundError.
  delete(id)          - Remove the session or raise NotFoundError.
  list_sessions()     - Summaries of every session, in creation order.

TURN ORDER (apply_turn):
  1. get or create the session
  2. apply the system prompt / model overrides (model resolved through the registry)
  3. append the user message
  4. build [system prompt] + full transcript and call the gateway
  5. append the reply, stamp updated_at
  6. keep only the last max_messages entries
  The provider always sees the whole transcript for the current turn; the cap
  only decides what is kept for the next turn.

  If the gateway fails, the user message stays in the transcript, nothing else
  changes, and GatewayError is raised.

CONCURRENCY:
  Turns on the same session id are serialised with one asyncio.Lock per id, so
  two requests for one conversation cannot interleave their appends. Turns on
  different sessions run concurrently. Deleting a session leaves its lock in
  place while turns still hold or await it, so a turn that starts after the
  delete still waits for the one in flight.

Returned Session objects are copies; mutating them does not change the store.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from chatbot.errors import GatewayError, NotFoundError, ValidationError
from chatbot.models import (
    ChatMessage,
    GenerationParams,
    Session,
    SessionSummary,
    TurnResult,
)
from chatbot.services.inference_service import CompletionGateway
from chatbot.services.model_registry import ModelRegistry
from config import (
    DEFAULT_SYSTEM_PROMPT,
    LAST_MESSAGE_PREVIEW_LENGTH,
    MAX_HISTORY_MESSAGES,
    MAX_SESSION_ID_LENGTH,
)

logger = logging.getLogger("HF-Chatbot")


def _new_session_id() -> str:
    return str(uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """In-memory conversation store with per-session turn serialisation."""

    def __init__(
        self,
        registry: ModelRegistry,
        gateway: CompletionGateway,
        *,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_messages: int = MAX_HISTORY_MESSAGES,
        id_factory: Callable[[], str] = _new_session_id,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.registry = registry
        self.gateway = gateway
        self.default_system_prompt = default_system_prompt
        self.max_messages = max_messages
        self._id_factory = id_factory
        self._clock = clock
        # Plain dicts keep insertion order, which list_sessions() relies on.
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    # --------------------------------------------------------------------------
    # INTERNAL HELPERS
    # --------------------------------------------------------------------------

    def _check_session_id(self, session_id: Optional[str]) -> Optional[str]:
        """Empty ids count as "not supplied"; overly long ids are rejected."""
        if not session_id:
            return None
        if len(session_id) > MAX_SESSION_ID_LENGTH:
            raise ValidationError(
                f"session_id must be at most {MAX_SESSION_ID_LENGTH} characters"
            )
        return session_id

    @asynccontextmanager
    async def _turn_lock(self, session_id: str):
        """Hold the per-session lock; it is discarded once no turn holds or awaits it."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if self._lock_users[session_id] == 0:
                del self._lock_users[session_id]
                del self._locks[session_id]

    def _load_or_create(self, session_id: Optional[str]) -> Session:
        """Return the stored Session object itself (not a copy)."""
        session_id = self._check_session_id(session_id)
        if session_id and session_id in self._sessions:
            return self._sessions[session_id]

        session = Session(
            id=session_id or self._id_factory(),
            messages=[],
            system_prompt=self.default_system_prompt,
            model=self.registry.default_model,
            created_at=self._clock(),
        )
        self._sessions[session.id] = session
        logger.info(f"Created session {session.id[:8]} (model={session.model})")
        return session

    def _truncate(self, session: Session) -> None:
        if len(session.messages) > self.max_messages:
            session.messages = session.messages[-self.max_messages:]

    # --------------------------------------------------------------------------
    # PUBLIC API
    # --------------------------------------------------------------------------

    def get_or_create(self, session_id: Optional[str] = None) -> Session:
        """
        Return the session stored under session_id, unchanged. If there is none
        (or no id was given) create one with the default prompt and model.
        """
        return self._load_or_create(session_id).model_copy(deep=True)

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(session_id)
        return session.model_copy(deep=True)

    def delete(self, session_id: str) -> None:
        if session_id not in self._sessions:
            raise NotFoundError(session_id)
        del self._sessions[session_id]
        logger.info(f"Deleted session {session_id[:8]}")

    def list_sessions(self) -> List[SessionSummary]:
        summaries = []
        for session in self._sessions.values():
            last = session.messages[-1].content if session.messages else ""
            summaries.append(
                SessionSummary(
                    session_id=session.id,
                    message_count=len(session.messages),
                    model=session.model,
                    last_message=last[:LAST_MESSAGE_PREVIEW_LENGTH],
                    created_at=session.created_at,
                    updated_at=session.updated_at,
                )
            )
        return summaries

    async def apply_turn(
        self,
        session_id: Optional[str],
        message: str,
        *,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        params: Optional[GenerationParams] = None,
    ) -> TurnResult:
        """
        Run one turn against a session (created if unknown) and return the reply
        together with the session as it is stored afterwards.
        """
        if not message or not message.strip():
            raise ValidationError("message is required")
        params = params or GenerationParams()
        session_id = self._check_session_id(session_id) or self._id_factory()

        async with self._turn_lock(session_id):
            session = self._load_or_create(session_id)

            if system_prompt:
                session.system_prompt = system_prompt
            if model:
                session.model = self.registry.resolve(model)

            session.messages.append(ChatMessage(role="user", content=message))

            outbound = [ChatMessage(role="system", content=session.system_prompt)]
            outbound.extend(m.model_copy() for m in session.messages)

            logger.info(
                f"[session:{session.id[:8]}] messages={len(session.messages)} model={session.model}"
            )

            try:
                result = await self.gateway.complete(session.model, outbound, params)
            except GatewayError:
                logger.warning(f"[session:{session.id[:8]}] gateway failed; user message kept")
                raise
            except Exception as e:
                logger.warning(f"[session:{session.id[:8]}] gateway failed; user message kept")
                raise GatewayError(str(e) or e.__class__.__name__) from e

            session.messages.append(ChatMessage(role="assistant", content=result.text))
            session.updated_at = self._clock()
            self._truncate(session)

            return TurnResult(
                reply=result.text,
                session=session.model_copy(deep=True),
                usage=result.usage,
            )
