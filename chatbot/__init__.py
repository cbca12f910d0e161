"""
HF CHATBOT APPLICATION PACKAGE
==============================

FastAPI backend over the Hugging Face inference API.

  from chatbot.main import app
  from chatbot.models import ChatRequest
  from chatbot.services.session_store import SessionStore

FILE STRUCTURE:
  chatbot/
    __init__.py   - This file; marks 'chatbot' as a package.
    main.py       - FastAPI app and all HTTP endpoints (/chat, /conversation, /images, ...).
    models.py     - Pydantic models for API requests, responses and session data.
    errors.py     - ValidationError, NotFoundError, GatewayError.
    services/     - Model registry, session store, stateless chat, inference gateway, images.
    static/       - The single-page chat UI served at /.
"""
