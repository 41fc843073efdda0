"""Parsing utilities that turn raw generator text into definition dicts.

The generator returns free-form text that is expected to hold a single
JSON object, sometimes wrapped in a Markdown code fence. Parsers strip the
fence, decode the JSON and check the structural fields each artifact kind
needs before anything downstream touches it. Any mismatch raises
`GenerationError`; partially shaped objects are never returned.
"""

import json
import re
from typing import Any, Dict

from ..errors import GenerationError

_FENCE_RE = re.compile(r"```json|```")

QUIZ = "quiz"
NOTES = "notes"
FLASHCARDS = "flashcards"
ASSIGNMENT = "assignment"
TUTOR = "tutor"
FEEDBACK = "feedback"


def clean_model_response(text: str) -> str:
    """Remove Markdown code fences and surrounding whitespace."""
    return _FENCE_RE.sub("", text or "").strip()


def parse_json_object(text: str) -> Dict[str, Any]:
    """Decode a generator response into a JSON object (dict)."""
    cleaned = clean_model_response(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise GenerationError(f"generator returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise GenerationError(f"generator returned {type(data).__name__}, expected an object")
    return data


def _require_list(data: dict, field: str, kind: str) -> list:
    value = data.get(field)
    if not isinstance(value, list):
        raise GenerationError(f"{kind} response is missing a '{field}' list")
    return value


def _validate_quiz(data: dict):
    questions = _require_list(data, "questions", QUIZ)
    if not questions:
        raise GenerationError("quiz response has no questions")
    for idx, q in enumerate(questions):
        if not isinstance(q, dict):
            raise GenerationError(f"quiz question {idx} must be an object")
        if not isinstance(q.get("question"), str):
            raise GenerationError(f"quiz question {idx} is missing its text")
        options = q.get("options")
        if not isinstance(options, list) or not options:
            raise GenerationError(f"quiz question {idx} has no options")
        if q.get("correctAnswer") not in options:
            raise GenerationError(f"quiz question {idx} correctAnswer is not one of its options")


def _validate_notes(data: dict):
    for idx, section in enumerate(_require_list(data, "sections", NOTES)):
        if not isinstance(section, dict):
            raise GenerationError(f"notes section {idx} must be an object")


def _validate_flashcards(data: dict):
    for idx, card in enumerate(_require_list(data, "cards", FLASHCARDS)):
        if not isinstance(card, dict):
            raise GenerationError(f"flashcard {idx} must be an object")


def _validate_assignment(data: dict):
    for s_idx, section in enumerate(_require_list(data, "sections", ASSIGNMENT)):
        if not isinstance(section, dict):
            raise GenerationError(f"assignment section {s_idx} must be an object")
        if not isinstance(section.get("questions"), list):
            raise GenerationError(f"assignment section {s_idx} is missing a 'questions' list")


def _validate_tutor(data: dict):
    if not isinstance(data.get("response"), str):
        raise GenerationError("tutor response is missing the 'response' text")


_VALIDATORS = {
    QUIZ: _validate_quiz,
    NOTES: _validate_notes,
    FLASHCARDS: _validate_flashcards,
    ASSIGNMENT: _validate_assignment,
    TUTOR: _validate_tutor,
    FEEDBACK: lambda data: None,
}


def parse_definition(kind: str, text: str) -> Dict[str, Any]:
    """Parse and structurally validate a generated definition of `kind`."""
    try:
        validator = _VALIDATORS[kind]
    except KeyError:
        raise ValueError(f"unknown definition kind: {kind}")
    data = parse_json_object(text)
    validator(data)
    return data
