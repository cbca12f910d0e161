"""
HF CHATBOT MAIN API
===================

This module defines the FastAPI application and all HTTP endpoints. Handlers
only translate HTTP bodies into service calls and service results (or errors)
back into HTTP responses; the logic lives in chatbot.services.

ENDPOINTS:
  GET    /                         - Browser chat UI.
  GET    /api                      - API name and list of endpoints.
  GET    /health                   - Status of all services (for monitoring).
  GET    /models                   - Model aliases and which one is the default.
  POST   /chat                     - Single message, no history, full reply.
  POST   /chat/stream              - Single message, no history, reply as Server-Sent Events.
  POST   /conversation             - Chat with history kept in a server-side session.
  GET    /conversation/{id}        - Full transcript and settings of one session.
  DELETE /conversation/{id}        - Delete one session.
  GET    /conversations            - Summaries of all sessions.
  POST   /images                   - Generate an image from a prompt.
  GET    /generated/{file}         - Generated images.

SESSION:
  POST /conversation takes an optional session_id. If omitted, the server
  generates one and returns it; send it back on the next request to continue.
  Sessions live in memory only and are gone after a restart.

STARTUP:
  The lifespan function builds the registry, the inference gateway, the session
  store, the stateless chat service and the image service, in that order.
"""

import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles

from chatbot.errors import GatewayError, NotFoundError, ValidationError
from chatbot.models import (
    ChatRequest,
    ChatResponse,
    ConversationRequest,
    ConversationResponse,
    DeleteResponse,
    ImageRequest,
    ImageResponse,
    ModelListResponse,
    SessionDetail,
    SessionListResponse,
)
from chatbot.services.chat_service import ChatService
from chatbot.services.image_service import ImageService
from chatbot.services.inference_service import HuggingFaceService
from chatbot.services.model_registry import ModelRegistry
from chatbot.services.session_store import SessionStore
from config import (
    DEFAULT_MODEL_ALIAS,
    DEFAULT_SYSTEM_PROMPT,
    GENERATED_IMAGES_DIR,
    HOST,
    HUGGINGFACE_API_KEY,
    HUGGINGFACE_PROVIDER,
    IMAGE_INFERENCE_STEPS,
    IMAGE_MODEL,
    IMAGE_PROVIDER,
    LOG_LEVEL,
    MAX_HISTORY_MESSAGES,
    MODEL_ALIASES,
    PORT,
    REQUEST_TIMEOUT,
)

STATIC_DIR = Path(__file__).parent / "static"

# Shown instead of the provider's own message when the quota is exhausted.
RATE_LIMIT_MESSAGE = (
    "The inference provider is rate limiting this server. "
    "Please wait a moment and try again."
)
GATEWAY_FAILURE_MESSAGE = "Failed to generate response"


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("HF-Chatbot")


# -----------------------------------------------------------------------------
# GLOBAL SERVICE REFERENCES
# -----------------------------------------------------------------------------
# Set during startup (lifespan) and used by all route handlers.
model_registry: Optional[ModelRegistry] = None
inference_service: Optional[HuggingFaceService] = None
session_store: Optional[SessionStore] = None
chat_service: Optional[ChatService] = None
image_service: Optional[ImageService] = None


def print_title():
    """Print a small banner to the console when the server starts."""
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    RESET = "\033[0m"
    print(f"\n{BOLD}{CYAN}  HF Chatbot API{RESET}  -  chat over the Hugging Face inference API\n")


def _gateway_http_error(exc: GatewayError, where: str) -> HTTPException:
    """Log the provider's message, but only return a generic one to the client."""
    if exc.rate_limited:
        logger.warning(f"[{where}] Rate limit hit: {exc}")
        return HTTPException(status_code=429, detail=RATE_LIMIT_MESSAGE)
    logger.error(f"[{where}] Error: {exc}", exc_info=True)
    return HTTPException(status_code=502, detail=GATEWAY_FAILURE_MESSAGE)


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


async def _next_chunk(chunks: AsyncIterator[str]) -> Optional[str]:
    """Next fragment of a reply stream, or None once it is exhausted."""
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


# -------------------------------------------------------------------------
# LIFESPAN (STARTUP / SHUTDOWN)
# -------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build every service once at startup:
      1. ModelRegistry: alias table from config
      2. HuggingFaceService: the completion gateway
      3. SessionStore: conversations (needs the registry and the gateway)
      4. ChatService: stateless chat (same registry and gateway)
      5. ImageService: text-to-image
    On shutdown the sessions are simply dropped; nothing is persisted.
    """
    global model_registry, inference_service, session_store, chat_service, image_service

    print_title()
    logger.info("=" * 60)
    logger.info("HF Chatbot - Starting Up...")
    logger.info("=" * 60)

    try:
        model_registry = ModelRegistry(MODEL_ALIASES, DEFAULT_MODEL_ALIAS)
        logger.info(f"Model registry ready (default: {model_registry.default_model})")

        inference_service = HuggingFaceService(
            HUGGINGFACE_API_KEY,
            provider=HUGGINGFACE_PROVIDER,
            timeout=REQUEST_TIMEOUT,
        )
        logger.info(f"Inference service ready (provider: {HUGGINGFACE_PROVIDER})")

        session_store = SessionStore(
            model_registry,
            inference_service,
            default_system_prompt=DEFAULT_SYSTEM_PROMPT,
            max_messages=MAX_HISTORY_MESSAGES,
        )
        chat_service = ChatService(model_registry, inference_service, DEFAULT_SYSTEM_PROMPT)
        image_service = ImageService(
            HUGGINGFACE_API_KEY,
            provider=IMAGE_PROVIDER,
            default_model=IMAGE_MODEL,
            output_dir=GENERATED_IMAGES_DIR,
            default_steps=IMAGE_INFERENCE_STEPS,
        )

        logger.info("=" * 60)
        logger.info("Service Status:")
        logger.info("    - Model Registry: Ready")
        logger.info("    - Inference: Ready")
        logger.info("    - Session Store: Ready")
        logger.info("    - Chat Service: Ready")
        logger.info("    - Image Service: Ready")
        logger.info("=" * 60)
        logger.info(f"API: http://localhost:{PORT}")
        logger.info(f"Docs: http://localhost:{PORT}/docs")
        logger.info("=" * 60)

        yield

        logger.info(f"Shutting down; dropping {len(session_store)} in-memory session(s).")

    except Exception as e:
        logger.error(f"Fatal error during startup: {e}", exc_info=True)
        raise


# -------------------------------------------------------------------------
# FASTAPI APP AND CORS
# -------------------------------------------------------------------------
app = FastAPI(
    title="HF Chatbot API",
    description="Chat and image generation over the Hugging Face inference API",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/generated", StaticFiles(directory=str(GENERATED_IMAGES_DIR)), name="generated")


# =========================================================================
# API ENDPOINTS
# =========================================================================

@app.get("/", include_in_schema=False)
async def index():
    """Serve the single-page chat UI."""
    return FileResponse(STATIC_DIR / "index.html")


@app.get("/api")
async def root():
    """Return the API name and a short description of each endpoint (for discovery)."""
    return {
        "message": "HF Chatbot API",
        "endpoints": {
            "/models": "List available models",
            "/chat": "Single message (no history)",
            "/chat/stream": "Single message with SSE streaming",
            "/conversation": "Chat with history kept on the server",
            "/conversation/{session_id}": "Get or delete a conversation",
            "/conversations": "List all conversations",
            "/images": "Generate an image from a prompt",
            "/health": "System health check",
        }
    }


@app.get("/health")
async def health():
    """Return 'healthy' and whether each service is initialized."""
    return {
        "status": "healthy",
        "model_registry": model_registry is not None,
        "inference_service": inference_service is not None,
        "session_store": session_store is not None,
        "chat_service": chat_service is not None,
        "image_service": image_service is not None,
    }


@app.get("/models", response_model=ModelListResponse)
async def list_models():
    """List the model aliases clients can send as "model"."""
    if model_registry is None:
        raise HTTPException(status_code=503, detail="Model registry not initialized")
    return ModelListResponse(models=model_registry.list_models())


@app.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest):
    """
    Single message, no history.

    REQUEST BODY:
    {
        "message": "What is Python?",
        "model": "qwen",                 (optional alias or full model id)
        "system_prompt": "Be brief.",    (optional)
        "temperature": 0.7,              (optional)
        "max_tokens": 1024               (optional)
    }
    """
    if chat_service is None:
        raise HTTPException(status_code=503, detail="Chat service not initialized")

    try:
        result, model = await chat_service.reply(
            request.message,
            system_prompt=request.system_prompt,
            model=request.model,
            params=request.generation_params(),
        )
        return ChatResponse(reply=result.text, model=model, usage=result.usage)
    except ValidationError as e:
        logger.warning(f"[chat] Invalid request: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except GatewayError as e:
        raise _gateway_http_error(e, "chat")


@app.post("/chat/stream")
async def chat_stream(body: ChatRequest, request: Request):
    """
    Single message, no history, reply streamed as Server-Sent Events:

      data: {"content": "Hel", "done": false}
      data: {"content": "lo", "done": false}
      data: {"content": "", "done": true, "full_response": "Hello"}

    The first fragment is fetched before the response starts, so a provider
    failure up front (bad key, unknown model) is a normal 502/429 like /chat.
    If the provider fails mid-stream the last event is {"error": ..., "done": true}.
    If the client goes away we stop reading from the provider.
    """
    if chat_service is None:
        raise HTTPException(status_code=503, detail="Chat service not initialized")

    try:
        chunks, model = chat_service.stream(
            body.message,
            system_prompt=body.system_prompt,
            model=body.model,
            params=body.generation_params(),
        )
    except ValidationError as e:
        logger.warning(f"[stream] Invalid request: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    try:
        first = await _next_chunk(chunks)
    except GatewayError as e:
        raise _gateway_http_error(e, "stream")

    async def event_generator():
        full_response = ""
        content = first
        try:
            while content is not None:
                full_response += content
                yield _sse({"content": content, "done": False})
                if await request.is_disconnected():
                    logger.info(f"[stream] Client disconnected; abandoning {model} stream")
                    return
                content = await _next_chunk(chunks)
            yield _sse({"content": "", "done": True, "full_response": full_response})
        except GatewayError as e:
            logger.error(f"[stream] Error: {e}")
            message = RATE_LIMIT_MESSAGE if e.rate_limited else "Streaming failed"
            yield _sse({"error": message, "done": True})
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@app.post("/conversation", response_model=ConversationResponse)
async def conversation(request: ConversationRequest):
    """
    Chat with history kept on the server.

    HOW IT WORKS:
    1. Gets the session for session_id (or creates one)
    2. Applies system_prompt / model if given (they stick for later turns)
    3. Sends [system prompt] + the whole transcript to the model
    4. Stores the reply and keeps only the latest 20 messages
    5. Returns the reply and the session_id to send next time

    If the model call fails, your message stays in the history but no reply is stored.
    """
    if session_store is None:
        raise HTTPException(status_code=503, detail="Session store not initialized")

    try:
        turn = await session_store.apply_turn(
            request.session_id,
            request.message,
            system_prompt=request.system_prompt,
            model=request.model,
            params=request.generation_params(),
        )
        return ConversationResponse(
            session_id=turn.session.id,
            reply=turn.reply,
            model=turn.session.model,
            message_count=len(turn.session.messages),
            usage=turn.usage,
        )
    except ValidationError as e:
        logger.warning(f"[conversation] Invalid request: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except GatewayError as e:
        raise _gateway_http_error(e, "conversation")


@app.get("/conversation/{session_id}", response_model=SessionDetail)
async def get_conversation(session_id: str):
    """Return the transcript (oldest first), system prompt, model and timestamps."""
    if session_store is None:
        raise HTTPException(status_code=503, detail="Session store not initialized")

    try:
        return SessionDetail.from_session(session_store.get(session_id))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")


@app.delete("/conversation/{session_id}", response_model=DeleteResponse)
async def delete_conversation(session_id: str):
    if session_store is None:
        raise HTTPException(status_code=503, detail="Session store not initialized")

    try:
        session_store.delete(session_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return DeleteResponse(message="Conversation deleted")


@app.get("/conversations", response_model=SessionListResponse)
async def list_conversations():
    """One summary per session, oldest session first."""
    if session_store is None:
        raise HTTPException(status_code=503, detail="Session store not initialized")
    return SessionListResponse(sessions=session_store.list_sessions())


@app.post("/images", response_model=ImageResponse)
def generate_image(request: ImageRequest):
    """
    Generate an image and save it under generated_images/.

    Sync on purpose: the Hugging Face client blocks, so FastAPI runs this in
    its threadpool instead of the event loop.
    """
    if image_service is None:
        raise HTTPException(status_code=503, detail="Image service not initialized")

    try:
        path = image_service.generate(
            request.prompt,
            model=request.model,
            num_inference_steps=request.num_inference_steps,
        )
    except ValidationError as e:
        logger.warning(f"[image] Invalid request: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except GatewayError as e:
        raise _gateway_http_error(e, "image")

    return ImageResponse(
        path=str(path),
        url=f"/generated/{path.name}",
        model=request.model or image_service.default_model,
    )


# -------------------------------------------------------------------------
# STANDALONE RUN (python -m chatbot.main)
# -------------------------------------------------------------------------
def run():
    """Start the uvicorn server (same as run.py)."""
    uvicorn.run(
        "chatbot.main:app",
        host=HOST,
        port=PORT,
        reload=True,
        log_level="info"
    )

if __name__ == "__main__":
    run()
