"""
CONFIGURATION MODULE
====================

PURPOSE:
  Central place for all chatbot settings: the Hugging Face API key, provider,
  model aliases, generation defaults, history limits and image settings.

WHAT THIS FILE DOES:
  - Loads environment variables from .env (so API keys stay out of code).
  - Exposes HUGGINGFACE_API_KEY and HUGGINGFACE_PROVIDER for the inference API.
  - Defines the model alias table and which alias is the default.
  - Defines the default system prompt, history cap and generation defaults.
  - Defines where generated images are written and creates that folder.

USAGE:
  Import what you need: `from config import HUGGINGFACE_API_KEY, MODEL_ALIASES`
  All services receive these values from chatbot.main so behaviour is consistent.
"""

import os
from pathlib import Path
from dotenv import load_dotenv


# -----------------------------------------------------------------------------
# ENVIRONMENT
# -----------------------------------------------------------------------------
# Load environment variables from .env file (if it exists).
load_dotenv()


# -----------------------------------------------------------------------------
# BASE PATH
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent

# ============================================================================
# HUGGING FACE INFERENCE API
# ============================================================================
# One key is used for both chat completion and image generation.
# HF_TOKEN is the name huggingface_hub itself reads, so accept it as a fallback.
# The provider picks which hosted backend serves the model ("auto" lets the hub decide).

HUGGINGFACE_API_KEY = (
    os.getenv("HUGGINGFACE_API_KEY", "").strip()
    or os.getenv("HF_TOKEN", "").strip()
)
HUGGINGFACE_PROVIDER = os.getenv("HUGGINGFACE_PROVIDER", "auto").strip() or "auto"
REQUEST_TIMEOUT = float(os.getenv("HUGGINGFACE_TIMEOUT", "120"))

# ============================================================================
# MODEL REGISTRY
# ============================================================================
# Short aliases clients may send instead of a full model id.
# Anything that is not an alias is passed to the provider unchanged.

MODEL_ALIASES = {
    "llama3": "meta-llama/Llama-3.1-8B-Instruct",
    "mistral": "mistralai/Mistral-7B-Instruct-v0.3",
    "phi3": "microsoft/Phi-3-mini-4k-instruct",
    "qwen": "Qwen/Qwen2.5-7B-Instruct",
    "gemma": "google/gemma-2-9b-it",
}
DEFAULT_MODEL_ALIAS = os.getenv("DEFAULT_MODEL", "llama3").strip() or "llama3"

# ============================================================================
# CONVERSATION SETTINGS
# ============================================================================
# MAX_HISTORY_MESSAGES: messages kept per session after each turn (oldest dropped first).
# The model always sees the full transcript for the current turn; the cap only
# affects what is kept for the next one.

DEFAULT_SYSTEM_PROMPT = (
    os.getenv("DEFAULT_SYSTEM_PROMPT", "").strip()
    or "You are a helpful, friendly AI assistant."
)
MAX_HISTORY_MESSAGES = 20

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1024

# Maximum length (characters) for a single user message.
MAX_MESSAGE_LENGTH = 32_000
MAX_SESSION_ID_LENGTH = 128
# How much of the last message is shown in the session list.
LAST_MESSAGE_PREVIEW_LENGTH = 100

# ============================================================================
# IMAGE GENERATION
# ============================================================================

IMAGE_MODEL = os.getenv("IMAGE_MODEL", "black-forest-labs/FLUX.1-dev")
IMAGE_PROVIDER = os.getenv("IMAGE_PROVIDER", "together")
IMAGE_INFERENCE_STEPS = int(os.getenv("IMAGE_INFERENCE_STEPS", "5"))

GENERATED_IMAGES_DIR = BASE_DIR / "generated_images"
# Create the folder up front so the static mount in chatbot.main can serve it.
GENERATED_IMAGES_DIR.mkdir(parents=True, exist_ok=True)

# ============================================================================
# SERVER
# ============================================================================

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
