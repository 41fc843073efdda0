import re

import pytest
from fastapi.testclient import TestClient

from virtual_school.config import settings
from virtual_school.errors import GenerationError
from virtual_school.main import app, get_generator, get_image_store
from virtual_school.utils.generator import GeminiGenerator

from conftest import SAMPLE_ASSIGNMENT, make_png


def test_health_and_request_id(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "OK"
    assert r.json()["timestamp"]
    assert "X-Request-ID" in r.headers


def test_unknown_route_returns_json_404(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json() == {"error": "Endpoint not found"}


@pytest.mark.parametrize("method,path", [
    ("GET", "/api/generate-quiz"),
    ("POST", "/api/health"),
    ("DELETE", "/api/tutor"),
])
def test_wrong_method_is_endpoint_not_found(client, method, path):
    r = client.request(method, path)
    assert r.status_code == 404
    assert r.json() == {"error": "Endpoint not found"}


@pytest.mark.parametrize("path,message", [
    ("/api/generate-quiz", "Topic is required and must be a non-empty string"),
    ("/api/tutor", "Question is required and must be a non-empty string"),
    ("/api/enhance-image", "Image data and instructions are required"),
])
def test_missing_body_reports_field_message(client, path, message):
    r = client.post(path)
    assert r.status_code == 400
    assert r.json() == {"error": message}


def test_security_headers(client):
    r = client.get("/api/health")
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert r.headers["Cross-Origin-Resource-Policy"] == "cross-origin"
    assert "Content-Security-Policy" in r.headers


def test_generate_quiz(client, generator):
    r = client.post("/api/generate-quiz", json={"topic": "Mathematics", "numQuestions": 3})
    assert r.status_code == 200
    body = r.json()
    assert body["title"] == "Quiz on Mathematics"
    assert len(body["questions"]) == 3
    assert "image" not in body
    assert "3 multiple-choice questions" in generator.text_calls[0]
    assert generator.image_calls == []


@pytest.mark.parametrize("payload,message", [
    ({}, "Topic is required"),
    ({"topic": "   ", "numQuestions": 5}, "Topic is required"),
    ({"topic": "Math", "numQuestions": 25}, "Number of questions must be between 1 and 20"),
    ({"topic": "Math", "numQuestions": 0}, "Number of questions must be between 1 and 20"),
    ({"topic": "Math", "numQuestions": "5"}, "Number of questions must be between 1 and 20"),
    ({"topic": "Math", "numQuestions": True}, "Number of questions must be between 1 and 20"),
])
def test_generate_quiz_validation(client, payload, message):
    r = client.post("/api/generate-quiz", json=payload)
    assert r.status_code == 400
    assert message in r.json()["error"]


def test_invalid_json_body(client):
    r = client.post("/api/generate-quiz", content=b"not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert "error" in r.json()


def test_generator_failure_is_generic_500(client, failing_generator):
    app.dependency_overrides[get_generator] = lambda: failing_generator
    r = client.post("/api/generate-quiz", json={"topic": "Math", "numQuestions": 2})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate quiz"}


def test_unparsable_response_is_500(client, generator):
    generator.text = "I cannot help with that."
    r = client.post("/api/generate-notes", json={"topic": "Cells", "gradeLevel": "7"})
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate notes"}


def test_quiz_without_inline_image_has_no_image_key(client, generator):
    generator.image = None
    r = client.post("/api/generate-quiz", json={"topic": "World War II", "numQuestions": 3, "includeImages": True})
    assert r.status_code == 200
    assert "image" not in r.json()
    assert len(generator.image_calls) == 1


def test_quiz_image_failure_does_not_fail_request(client, generator):
    generator.image = GenerationError("quota exceeded")
    r = client.post("/api/generate-quiz", json={"topic": "Math", "numQuestions": 3, "includeImages": True})
    assert r.status_code == 200
    assert "image" not in r.json()


def test_quiz_image_is_stored_and_served(client, generator):
    png = make_png()
    generator.image = png
    r = client.post("/api/generate-quiz", json={"topic": "World War II", "numQuestions": 3, "includeImages": True})
    assert r.status_code == 200
    image = r.json()["image"]
    assert re.fullmatch(r"/images/quiz_World_War_II_\d+\.png", image)

    served = client.get(f"/api/images/{image.rsplit('/', 1)[-1]}")
    assert served.status_code == 200
    assert served.content == png
    assert served.headers["cache-control"] == "public, max-age=31536000"


def test_missing_image_is_404(client):
    r = client.get("/api/images/missing.png")
    assert r.status_code == 404
    assert r.json() == {"error": "Image not found"}


def test_notes_validation(client):
    r = client.post("/api/generate-notes", json={"topic": ""})
    assert r.status_code == 400
    assert "Topic is required" in r.json()["error"]
    r = client.post("/api/generate-notes", json={"topic": "Cells"})
    assert r.status_code == 400
    assert r.json()["error"] == "Grade level is required"


def test_generate_notes_with_image(client, generator):
    generator.text = {"title": "Notes: Cells", "gradeLevel": "7", "sections": [{"heading": "Intro", "content": "...", "keyPoints": []}], "summary": "s"}
    generator.image = make_png()
    r = client.post("/api/generate-notes", json={"topic": "Cells", "gradeLevel": "7", "includeImages": True})
    assert r.status_code == 200
    assert r.json()["image"].startswith("/images/notes_Cells_")
    assert "grade level 7" in generator.image_calls[0]["prompt"]


def test_flashcard_images_are_independent(client, generator):
    generator.text = {"title": "Flashcards: Spanish", "cards": [
        {"id": i, "front": f"word{i}", "back": f"meaning{i}", "difficulty": "easy"} for i in range(5)
    ]}
    png = make_png()

    def image_for(prompt):
        # deck image and the second card fail; the rest succeed
        if "flashcards about" in prompt or '"word1"' in prompt:
            return None
        return png

    generator.image = image_for
    r = client.post("/api/generate-flashcards", json={"topic": "Spanish Vocabulary", "includeImages": True})
    assert r.status_code == 200
    deck = r.json()
    assert "image" not in deck
    assert deck["cards"][0]["image"].startswith("/images/flashcard_0_Spanish_Vocabulary_")
    assert "image" not in deck["cards"][1]
    assert deck["cards"][2]["image"].startswith("/images/flashcard_2_Spanish_Vocabulary_")
    assert "image" not in deck["cards"][3]
    assert len(generator.image_calls) == 4


def test_flashcards_require_topic(client):
    r = client.post("/api/generate-flashcards", json={"includeImages": True})
    assert r.status_code == 400


def test_generate_assignment(client, generator):
    generator.text = SAMPLE_ASSIGNMENT
    r = client.post("/api/generate-assignment", json={"topic": "Fractions", "gradeLevel": "5", "includeImages": True})
    assert r.status_code == 200
    assert len(r.json()["sections"]) == 2
    assert generator.image_calls == []


def test_tutor(client, generator):
    generator.text = {"response": "Photosynthesis is...", "examples": ["e1"], "relatedTopics": [], "practiceQuestions": [], "difficulty": "beginner"}
    generator.image = make_png()
    r = client.post("/api/tutor", json={"question": "What is photosynthesis?", "includeImages": True})
    assert r.status_code == 200
    body = r.json()
    assert body["response"] == "Photosynthesis is..."
    assert re.fullmatch(r"/images/tutor_\d+\.png", body["image"])
    assert 'grade level "general"' in generator.text_calls[0]


def test_tutor_requires_question(client):
    r = client.post("/api/tutor", json={"question": ""})
    assert r.status_code == 400
    assert r.json()["error"] == "Question is required and must be a non-empty string"


def test_feedback(client, generator):
    generator.text = {"overallScore": 85, "strengths": ["s"], "improvements": [], "recommendations": [], "encouragement": "Great"}
    r = client.post("/api/feedback", json={"studentData": {"name": "Sam", "scores": [80, 90]}})
    assert r.status_code == 200
    assert r.json()["overallScore"] == 85
    assert '"scores"' in generator.text_calls[0]


def test_feedback_requires_object(client):
    r = client.post("/api/feedback", json={"studentData": "Sam"})
    assert r.status_code == 400
    assert r.json()["error"] == "Student data is required"


def test_grade_quiz_endpoint(client):
    quiz = {"questions": [
        {"question": "2+2", "options": ["3", "4"], "correctAnswer": "4"},
        {"question": "Pick B", "options": ["A", "B"], "correctAnswer": "B"},
        {"question": "T?", "options": ["True", "False"], "correctAnswer": "True"},
    ]}
    r = client.post("/api/grade-quiz", json={"quiz": quiz, "answers": {"0": "4", "2": "False"}})
    assert r.status_code == 200
    body = r.json()
    assert body["correctAnswers"] == 1
    assert body["score"] == 33
    assert body["results"][1]["userAnswer"] is None


def test_grade_quiz_endpoint_rejects_empty_quiz(client):
    r = client.post("/api/grade-quiz", json={"quiz": {"questions": []}, "answers": []})
    assert r.status_code == 400
    assert r.json()["error"].startswith("Invalid definition")


def test_grade_assignment_endpoint(client):
    answers = {"multiple-choice-0": "A", "multiple-choice-1": "C", "short-answer-0": "free text"}
    r = client.post("/api/grade-assignment", json={"assignment": SAMPLE_ASSIGNMENT, "answers": answers})
    assert r.status_code == 200
    body = r.json()
    assert (body["totalPoints"], body["earnedPoints"], body["score"]) == (10, 2, 20)
    assert body["needsManualGrading"] is True


def test_grade_assignment_missing_questions(client):
    r = client.post("/api/grade-assignment", json={"assignment": {"sections": [{"type": "multiple-choice"}]}})
    assert r.status_code == 400


def test_oversized_body_rejected(client, monkeypatch):
    monkeypatch.setattr(settings, "MAX_BODY_BYTES", 16)
    r = client.post("/api/generate-quiz", json={"topic": "A long topic name", "numQuestions": 3})
    assert r.status_code == 413
    assert r.json() == {"error": "Request body too large"}


def test_missing_api_key_fails_generation(image_store):
    app.dependency_overrides[get_generator] = lambda: GeminiGenerator("", "text-model", "image-model")
    app.dependency_overrides[get_image_store] = lambda: image_store
    try:
        r = TestClient(app).post("/api/generate-flashcards", json={"topic": "Math"})
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate flashcards"}

