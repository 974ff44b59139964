"""Background generation via Gemini image models."""

from __future__ import annotations

import base64
import logging
import time
from typing import Any, Optional

from google import genai
from google.genai import types

from posterhub import config

from .errors import EmptyResultError, GenerationFailedError, MissingCredentialError
from .model import AspectRatio

logger = logging.getLogger(__name__)


PROMPT_TEMPLATE = (
    "High-quality cinematic background for a professional event poster. "
    "Scene: {theme}. "
    "Vibe: Ultra-modern, Dubai luxury, technology-centric. "
    "Composition: Ensure the lower 40% and top 20% of the image has relative negative space "
    "(dark or soft focus) to allow for white text and logos to be clearly visible. "
    "Do not include any pre-written text in the image. "
    "Use professional architectural lighting."
)


def build_prompt(theme: str) -> str:
    return PROMPT_TEMPLATE.format(theme=(theme or "").strip())


class GeminiBackgroundClient:
    """Generates poster backgrounds and returns them as data URIs."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Any = None):
        if client is None:
            key = api_key if api_key is not None else config.GEMINI_API_KEY
            if not key:
                raise MissingCredentialError("Missing GEMINI_API_KEY. Please set your Gemini API key.")
            client = genai.Client(api_key=key)
        self.client = client
        self.model = model or config.GEMINI_IMAGE_MODEL

    def _call_with_retry(self, func, max_retries=3, retry_codes=(503, 429)):
        """Retry API calls on transient errors with exponential backoff."""
        for attempt in range(max_retries):
            try:
                return func()
            except Exception as e:
                error_str = str(e)
                is_retryable = any(str(code) in error_str for code in retry_codes)

                if not is_retryable or attempt == max_retries - 1:
                    raise GenerationFailedError(f"Gemini image generation failed: {e}") from e

                wait_time = 2 ** attempt
                logger.warning(
                    "Gemini API error (attempt %s/%s), retrying in %ss: %s",
                    attempt + 1, max_retries, wait_time, e,
                )
                time.sleep(wait_time)

    def generate(self, theme: str, aspect_ratio: AspectRatio) -> str:
        aspect = AspectRatio.parse(aspect_ratio)
        prompt = build_prompt(theme)

        response = self._call_with_retry(
            lambda: self.client.models.generate_content(
                model=self.model,
                contents=[prompt],
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                    image_config=types.ImageConfig(aspect_ratio=aspect.value),
                ),
            )
        )

        # Extract generated image from response
        candidates = getattr(response, "candidates", None) or []
        if candidates:
            content = getattr(candidates[0], "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and inline.data:
                    data = inline.data
                    # SDK liefert bytes; als str ist es schon base64
                    if isinstance(data, str):
                        payload = data
                    else:
                        payload = base64.b64encode(data).decode("ascii")
                    mime = inline.mime_type or "image/png"
                    return f"data:{mime};base64,{payload}"

        raise EmptyResultError("Empty model response (no image payload)")


def generate_background(
    theme: str,
    aspect_ratio: AspectRatio,
    api_key: Optional[str] = None,
    client: Any = None,
    model: Optional[str] = None,
) -> str:
    return GeminiBackgroundClient(api_key=api_key, model=model, client=client).generate(theme, aspect_ratio)
