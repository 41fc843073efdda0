import io
import json
import os
import tempfile

import pytest
from PIL import Image

# Keep generated images out of the source tree; must be set before the app imports settings.
os.environ.setdefault("IMAGES_DIR", tempfile.mkdtemp(prefix="virtual_school_images_"))

from fastapi.testclient import TestClient  # noqa: E402

from virtual_school.errors import GenerationError  # noqa: E402
from virtual_school.main import app, get_generator, get_image_store  # noqa: E402
from virtual_school.utils.image_store import ImageStore  # noqa: E402


def make_png(size=(64, 32)) -> bytes:
    img = Image.new("RGB", size, "white")
    bio = io.BytesIO()
    img.save(bio, format="PNG")
    return bio.getvalue()


class FakeGenerator:
    """Stand-in for GeminiGenerator.

    `text` is returned (or raised) for every text call. `image` may be
    bytes, None, an exception, or a callable taking the prompt.
    """

    def __init__(self, text="{}", image=None):
        self.text = text
        self.image = image
        self.text_calls = []
        self.image_calls = []

    def generate_text(self, prompt):
        self.text_calls.append(prompt)
        if isinstance(self.text, Exception):
            raise self.text
        if isinstance(self.text, (dict, list)):
            return json.dumps(self.text)
        return self.text

    def generate_image(self, prompt, image_bytes=None, mime_type="image/png"):
        self.image_calls.append({"prompt": prompt, "image_bytes": image_bytes, "mime_type": mime_type})
        if isinstance(self.image, Exception):
            raise self.image
        if callable(self.image):
            return self.image(prompt)
        return self.image


SAMPLE_QUIZ = {
    "title": "Quiz on Mathematics",
    "description": "Test your knowledge on Mathematics",
    "questions": [
        {"id": 1, "question": "What is 2+2?", "options": ["3", "4", "5", "6"], "correctAnswer": "4", "explanation": "2+2 equals 4"},
        {"id": 2, "question": "Pick B", "options": ["A", "B", "C", "D"], "correctAnswer": "B", "explanation": "B is B"},
        {"id": 3, "question": "True or False?", "options": ["True", "False", "Maybe", "Never"], "correctAnswer": "True", "explanation": "It is true"},
    ],
}

SAMPLE_ASSIGNMENT = {
    "title": "Assignment: Fractions",
    "gradeLevel": "5",
    "sections": [
        {
            "type": "multiple-choice",
            "title": "Multiple Choice Questions",
            "questions": [
                {"question": "Q1", "options": ["A", "B", "C", "D"], "correctAnswer": "A", "points": 2},
                {"question": "Q2", "options": ["A", "B", "C", "D"], "correctAnswer": "B", "points": 3},
            ],
        },
        {
            "type": "short-answer",
            "title": "Short Answer Questions",
            "questions": [{"question": "Explain", "expectedLength": "2-3 sentences", "points": 5}],
        },
    ],
    "totalPoints": 10,
}


@pytest.fixture
def generator():
    return FakeGenerator(text=SAMPLE_QUIZ)


@pytest.fixture
def image_store(tmp_path):
    return ImageStore(tmp_path / "images")


@pytest.fixture
def client(generator, image_store):
    app.dependency_overrides[get_generator] = lambda: generator
    app.dependency_overrides[get_image_store] = lambda: image_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def failing_generator():
    return FakeGenerator(text=GenerationError("upstream 503"), image=GenerationError("upstream 503"))
