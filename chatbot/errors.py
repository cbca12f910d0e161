"""
ERRORS MODULE
=============

Exceptions raised by the services. They carry no HTTP knowledge; chatbot.main
maps each one to a status code:

  ValidationError -> 400   required input missing or malformed
  NotFoundError   -> 404   session id does not exist (read/delete only)
  GatewayError    -> 502   inference provider failed (429 when rate limited)
"""


class ChatbotError(Exception):
    """Base class for every error the services raise on purpose."""


class ValidationError(ChatbotError):
    """Required input (message, prompt, session id) is missing or invalid."""


class NotFoundError(ChatbotError):
    """A session id was referenced that does not exist."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class GatewayError(ChatbotError):
    """
    The inference provider failed: timeout, HTTP error, bad credentials, network.

    rate_limited is True when the provider answered 429 so the API layer can
    tell the user to slow down instead of reporting a generic failure.
    """

    def __init__(self, message: str, *, rate_limited: bool = False):
        super().__init__(message)
        self.rate_limited = rate_limited


def is_rate_limit_error(exc: Exception) -> bool:
    """
    True if the provider answered 429 or the message reads like a rate limit.

    A bare "429" in the message is not enough: it also turns up inside model
    ids and request ids.
    """
    status = getattr(getattr(exc, "response", None), "status_code", None)
    if status == 429:
        return True
    msg = str(exc).lower()
    return "rate limit" in msg or "too many requests" in msg
