"""
SERVICES PACKAGE
=================

Business logic lives here. The API layer (chatbot.main) calls these services;
they don't handle HTTP, only sessions, model resolution and provider calls.

MODULES:
    model_registry    - alias -> full model id
    session_store     - in-memory conversations and the per-turn protocol
    chat_service      - stateless single-turn chat (buffered or streamed)
    inference_service - CompletionGateway contract + Hugging Face implementation
    image_service     - text-to-image, saved as PNG
"""
