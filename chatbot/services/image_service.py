"""
IMAGE SERVICE MODULE
====================

Text-to-image generation through the Hugging Face inference API. Each image is
written as a PNG into GENERATED_IMAGES_DIR under a random name; chatbot.main
serves that folder at /generated so the browser can load the result.

The client call is blocking, so the route that uses this service is a plain
(sync) endpoint and FastAPI runs it in its threadpool.
"""

import logging
from pathlib import Path
from typing import Optional
from uuid import uuid4

from huggingface_hub import InferenceClient

from chatbot.errors import GatewayError, ValidationError, is_rate_limit_error

logger = logging.getLogger("HF-Chatbot")


class ImageService:
    """Generate an image from a prompt and save it to disk."""

    def __init__(
        self,
        api_key: str,
        provider: str,
        default_model: str,
        output_dir: Path,
        default_steps: int = 5,
        client: Optional[InferenceClient] = None,
    ):
        self.default_model = default_model
        self.output_dir = Path(output_dir)
        self.default_steps = default_steps
        self.client = client or InferenceClient(provider=provider, api_key=api_key or None)

    def generate(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        num_inference_steps: Optional[int] = None,
    ) -> Path:
        """Return the path of the saved PNG. Raises GatewayError if the provider fails."""
        if not prompt or not prompt.strip():
            raise ValidationError("prompt is required")

        model = model or self.default_model
        steps = num_inference_steps or self.default_steps
        logger.info(f"[image] model={model} steps={steps} prompt={prompt[:50]!r}")

        try:
            image = self.client.text_to_image(
                prompt,
                model=model,
                num_inference_steps=steps,
            )
        except Exception as e:
            logger.error(f"Image generation failed (model={model}): {e}")
            raise GatewayError(str(e) or e.__class__.__name__, rate_limited=is_rate_limit_error(e)) from e

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{uuid4().hex}.png"
        image.save(path)
        logger.info(f"[image] saved {path.name}")
        return path
