"""HTTP client for the Virtual School API.

Wraps an `httpx.Client` (FastAPI's `TestClient` is one, which keeps the
client testable in-process). Each method posts JSON and returns the
decoded body; non-2xx responses raise `ApiError` with the server's
`error` message.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..utils.image_store import image_basename

logger = logging.getLogger("virtual_school.client")

DEFAULT_TIMEOUT_SECONDS = 300.0


class ApiError(Exception):
    """A failed API call, carrying a message suitable for a notification."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Server error: {response.status_code}"


class ApiClient:
    def __init__(self, http: httpx.Client, base_url: str = "/api"):
        self.http = http
        self.base_url = base_url.rstrip("/")

    @classmethod
    def connect(cls, server_url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> "ApiClient":
        """Build a client for a running server, e.g. `http://localhost:5000`."""
        return cls(httpx.Client(base_url=server_url, timeout=timeout))

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("api request %s %s", method, url)
        try:
            resp = self.http.request(method, url, json=payload)
        except httpx.HTTPError as e:
            logger.error("api request failed %s %s: %s", method, url, e)
            raise ApiError("Network error: Unable to connect to server") from e
        if resp.status_code >= 400:
            message = error_message(resp)
            logger.error("api error %s %s status=%s error=%s", method, url, resp.status_code, message)
            raise ApiError(message, resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            logger.error("api response not json %s %s status=%s", method, url, resp.status_code)
            raise ApiError("Invalid server response", resp.status_code) from e

    def generate_quiz(self, topic: str, num_questions: int, include_images: bool = False):
        return self._request("POST", "/generate-quiz", {"topic": topic, "numQuestions": num_questions, "includeImages": include_images})

    def generate_notes(self, topic: str, grade_level: str, include_images: bool = False):
        return self._request("POST", "/generate-notes", {"topic": topic, "gradeLevel": grade_level, "includeImages": include_images})

    def generate_flashcards(self, topic: str, include_images: bool = False):
        return self._request("POST", "/generate-flashcards", {"topic": topic, "includeImages": include_images})

    def generate_assignment(self, topic: str, grade_level: str):
        return self._request("POST", "/generate-assignment", {"topic": topic, "gradeLevel": grade_level})

    def ask_tutor(self, question: str, grade_level: Optional[str] = None, include_images: bool = False):
        return self._request("POST", "/tutor", {"question": question, "gradeLevel": grade_level, "includeImages": include_images})

    def generate_feedback(self, student_data: dict):
        return self._request("POST", "/feedback", {"studentData": student_data})

    def generate_image(self, prompt: str, topic: Optional[str] = None, style: str = "educational"):
        return self._request("POST", "/generate-image", {"prompt": prompt, "topic": topic, "style": style})

    def enhance_image(self, image_data: str, instructions: str, mime_type: str = "image/png"):
        return self._request("POST", "/enhance-image", {"imageData": image_data, "instructions": instructions, "mimeType": mime_type})

    def health(self):
        return self._request("GET", "/health")

    def image_url(self, stored_path: str) -> str:
        """Fetch URL for a stored `image` value; only its basename is used."""
        return f"{self.base_url}/images/{image_basename(stored_path)}"

    def fetch_image(self, stored_path: str) -> bytes:
        resp = self.http.get(self.image_url(stored_path))
        if resp.status_code >= 400:
            raise ApiError(error_message(resp), resp.status_code)
        return resp.content
