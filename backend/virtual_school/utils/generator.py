"""Thin wrapper around the Gemini API used for text and image generation.

Services only depend on two methods, `generate_text(prompt)` and
`generate_image(prompt, image_bytes=None, mime_type=...)`, so tests can
swap in any object with the same shape. No retries are performed: a
failed call raises `GenerationError` and the request fails.
"""

from __future__ import annotations

import logging
from typing import Optional

from google import genai
from google.genai import types

from ..errors import GenerationError

_LOGGER = logging.getLogger("virtual_school.generator")


class GeminiGenerator:
    def __init__(self, api_key: str, text_model: str, image_model: str, timeout_seconds: float = 300.0):
        self.api_key = api_key
        self.text_model = text_model
        self.image_model = image_model
        self.timeout_seconds = timeout_seconds
        self._client: Optional[genai.Client] = None

    def _get_client(self) -> genai.Client:
        # Built on first use; a missing key fails the call, not startup.
        if not self.api_key:
            raise GenerationError("GEMINI_API_KEY is not configured")
        if self._client is None:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
            )
        return self._client

    def generate_text(self, prompt: str) -> str:
        """Send `prompt` to the text model and return the raw response text."""
        client = self._get_client()
        try:
            resp = client.models.generate_content(model=self.text_model, contents=prompt)
        except Exception as e:
            raise GenerationError(f"text generation failed: {e}") from e
        text = (getattr(resp, "text", None) or "").strip()
        if not text:
            raise GenerationError("text generation returned an empty response")
        return text

    def generate_image(self, prompt: str, image_bytes: Optional[bytes] = None, mime_type: str = "image/png") -> Optional[bytes]:
        """Return the first inline image payload produced for `prompt`.

        When `image_bytes` is given the image is sent alongside the prompt
        so the model edits it. Returns None when the model answers without
        an inline image.
        """
        client = self._get_client()
        contents: list = [prompt]
        if image_bytes is not None:
            contents.append(types.Part.from_bytes(data=image_bytes, mime_type=mime_type))
        try:
            resp = client.models.generate_content(model=self.image_model, contents=contents)
        except Exception as e:
            raise GenerationError(f"image generation failed: {e}") from e
        candidates = getattr(resp, "candidates", None) or []
        if not candidates or candidates[0].content is None:
            return None
        for part in candidates[0].content.parts or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                return inline.data
        _LOGGER.info("image generation returned no inline payload model=%s", self.image_model)
        return None
