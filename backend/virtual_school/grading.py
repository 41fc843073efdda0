"""Score computation for generated quizzes and assignments.

Both graders are pure functions of (definition, answers): they perform no
I/O and return a fresh result dictionary shaped for the browser client
(camelCase keys). The only non-deterministic field is the completion
timestamp.

Answers are compared with exact equality. No case folding, whitespace
trimming or type coercion is applied, and a missing answer is never
correct, even when the definition itself lacks an answer key.

Quiz grading rejects a definition with zero questions, while assignment
grading reports a score of 0 when the definition carries zero points.
Both behaviours are kept as observed in the product.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .errors import InvalidDefinition

MULTIPLE_CHOICE = "multiple-choice"

QuizAnswers = Union[Sequence[Any], Mapping[Any, Any], None]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def percentage(part: int, whole: int) -> int:
    """Return `part / whole * 100` rounded half-up to an integer.

    Integer arithmetic keeps exact halves exact (1/8 -> 13, 2/3 -> 67).
    """
    if whole <= 0:
        raise ValueError("whole must be positive")
    return (200 * part + whole) // (2 * whole)


def _same_answer(given: Any, expected: Any) -> bool:
    if given is None:
        return False
    # bool is an int subclass; True must not match 1.
    if isinstance(given, bool) != isinstance(expected, bool):
        return False
    if isinstance(given, str) != isinstance(expected, str):
        return False
    return given == expected


def pad_answers(answers: QuizAnswers, count: int) -> List[Any]:
    """Build a dense answer list of exactly `count` entries.

    `answers` may be a sequence (short ones are padded with None, extra
    entries are dropped) or a sparse mapping of question index to answer.
    Mapping keys may be ints or numeric strings, as produced by JSON
    objects; keys that are not valid indices are ignored.
    """
    dense: List[Any] = [None] * count
    if answers is None:
        return dense
    if isinstance(answers, Mapping):
        for key, value in answers.items():
            try:
                idx = int(key)
            except (TypeError, ValueError):
                continue
            if 0 <= idx < count:
                dense[idx] = value
        return dense
    if isinstance(answers, (str, bytes)):
        raise TypeError("answers must be a sequence or a mapping")
    for idx, value in enumerate(list(answers)[:count]):
        dense[idx] = value
    return dense


def _quiz_questions(definition: Any) -> List[dict]:
    if not isinstance(definition, Mapping):
        raise InvalidDefinition("quiz definition must be an object")
    questions = definition.get("questions")
    if not isinstance(questions, list):
        raise InvalidDefinition("quiz definition has no questions list")
    if not questions:
        raise InvalidDefinition("quiz definition has zero questions")
    for idx, q in enumerate(questions):
        if not isinstance(q, Mapping):
            raise InvalidDefinition(f"question {idx} must be an object")
    return questions


def grade_quiz(definition: Mapping[str, Any], answers: QuizAnswers) -> Dict[str, Any]:
    """Grade a quiz against the learner's answers.

    Returns a dictionary with `score` (0-100), `totalQuestions`,
    `correctAnswers`, per-question `results` in definition order and a
    `completedAt` timestamp. Short or sparse answers are padded with None
    rather than rejected; unanswered questions count as incorrect.

    Raises `InvalidDefinition` when the definition has no questions.
    """
    questions = _quiz_questions(definition)
    total = len(questions)
    given = pad_answers(answers, total)
    correct = 0
    results = []
    for idx, q in enumerate(questions):
        expected = q.get("correctAnswer")
        is_correct = _same_answer(given[idx], expected)
        if is_correct:
            correct += 1
        results.append({
            "questionId": q.get("id") or idx + 1,
            "question": q.get("question"),
            "userAnswer": given[idx],
            "correctAnswer": expected,
            "isCorrect": is_correct,
            "explanation": q.get("explanation"),
        })
    return {
        "score": percentage(correct, total),
        "totalQuestions": total,
        "correctAnswers": correct,
        "results": results,
        "completedAt": _now_iso(),
    }


def _question_points(question: Mapping[str, Any], where: str) -> int:
    points = question.get("points")
    if isinstance(points, bool) or not isinstance(points, int) or points < 0:
        raise InvalidDefinition(f"{where}: points must be a non-negative integer")
    return points


def answer_key(section_type: str, index: int) -> str:
    """Composite answer-map key for question `index` of a section."""
    return f"{section_type}-{index}"


def grade_assignment(definition: Mapping[str, Any], answers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Grade an assignment against a map of composite answer keys.

    Multiple-choice sections are auto-graded by exact match against each
    question's `correctAnswer`. Every other section type only contributes
    to `totalPoints` and is flagged for manual grading. Each section in
    `results` is a shallow copy of the original plus a `results` list.

    Raises `InvalidDefinition` on a missing `sections`/`questions` list or
    a question without valid `points`.
    """
    if not isinstance(definition, Mapping):
        raise InvalidDefinition("assignment definition must be an object")
    sections = definition.get("sections")
    if not isinstance(sections, list):
        raise InvalidDefinition("assignment definition has no sections list")
    answers = answers or {}

    total_points = 0
    earned_points = 0
    needs_manual = False
    section_results = []
    for s_idx, section in enumerate(sections):
        if not isinstance(section, Mapping):
            raise InvalidDefinition(f"section {s_idx} must be an object")
        questions = section.get("questions")
        if not isinstance(questions, list):
            raise InvalidDefinition(f"section {s_idx} has no questions list")
        section_type = section.get("type")
        auto_graded = section_type == MULTIPLE_CHOICE
        if not auto_graded:
            needs_manual = True

        items = []
        for q_idx, q in enumerate(questions):
            where = f"section {s_idx} question {q_idx}"
            if not isinstance(q, Mapping):
                raise InvalidDefinition(f"{where} must be an object")
            points = _question_points(q, where)
            user_answer = answers.get(answer_key(section_type, q_idx))
            total_points += points
            if auto_graded:
                is_correct = _same_answer(user_answer, q.get("correctAnswer"))
                if is_correct:
                    earned_points += points
                items.append({
                    "question": q.get("question"),
                    "userAnswer": user_answer,
                    "correctAnswer": q.get("correctAnswer"),
                    "isCorrect": is_correct,
                    "points": points,
                    "earnedPoints": points if is_correct else 0,
                })
            else:
                items.append({
                    "question": q.get("question"),
                    "userAnswer": user_answer,
                    "points": points,
                    "needsManualGrading": True,
                })
        section_results.append({**section, "results": items})

    score = percentage(earned_points, total_points) if total_points > 0 else 0
    return {
        "score": score,
        "totalPoints": total_points,
        "earnedPoints": earned_points,
        "results": section_results,
        "submittedAt": _now_iso(),
        "needsManualGrading": needs_manual,
    }
