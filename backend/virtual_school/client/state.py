"""In-memory session state for the learner/teacher views.

`AppState` is an explicit tree of per-feature states. It is passed by
reference to the action functions below, which mutate it in place; no
module-level state exists. Grading goes through the pure functions in
`virtual_school.grading`.

History lists are front-inserted logs. Only the `clear_*` actions and
`reset` remove entries from them.
"""

from __future__ import annotations

import itertools
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .. import grading
from ..errors import InvalidDefinition
from .api import ApiClient, ApiError

LIGHT = "light"
DARK = "dark"
DEFAULT_NOTIFICATION_MS = 5000

_notification_ids = itertools.count(1)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class QuizState:
    current_quiz: Optional[dict] = None
    current_answers: Dict[int, Any] = field(default_factory=dict)
    result: Optional[dict] = None
    history: List[dict] = field(default_factory=list)
    is_submitted: bool = False
    loading: bool = False
    error: Optional[str] = None


@dataclass
class AssignmentState:
    current_assignment: Optional[dict] = None
    current_answers: Dict[str, Any] = field(default_factory=dict)
    result: Optional[dict] = None
    history: List[dict] = field(default_factory=list)
    is_submitted: bool = False
    loading: bool = False
    error: Optional[str] = None


@dataclass
class NotesState:
    current_notes: Optional[dict] = None
    history: List[dict] = field(default_factory=list)
    expanded_sections: List[int] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None


@dataclass
class StudyStats:
    cards_studied: int = 0
    correct_answers: int = 0
    session_start_time: Optional[str] = None


@dataclass
class FlashcardsState:
    current_deck: Optional[dict] = None
    history: List[dict] = field(default_factory=list)
    current_card_index: int = 0
    is_flipped: bool = False
    study_stats: StudyStats = field(default_factory=StudyStats)
    loading: bool = False
    error: Optional[str] = None


@dataclass
class TutorState:
    chat_history: List[dict] = field(default_factory=list)
    current_question: str = ""
    is_typing: bool = False
    loading: bool = False
    error: Optional[str] = None


@dataclass
class FeedbackState:
    current_feedback: Optional[dict] = None
    history: List[dict] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None


@dataclass
class UIState:
    user_role: str = "student"
    current_page: str = "dashboard"
    theme: str = LIGHT
    notifications: List[dict] = field(default_factory=list)


@dataclass
class AppState:
    quiz: QuizState = field(default_factory=QuizState)
    assignment: AssignmentState = field(default_factory=AssignmentState)
    notes: NotesState = field(default_factory=NotesState)
    flashcards: FlashcardsState = field(default_factory=FlashcardsState)
    tutor: TutorState = field(default_factory=TutorState)
    feedback: FeedbackState = field(default_factory=FeedbackState)
    ui: UIState = field(default_factory=UIState)


def reset(state: AppState) -> None:
    """Full session reset: every feature back to its initial state."""
    fresh = AppState()
    for name in ("quiz", "assignment", "notes", "flashcards", "tutor", "feedback", "ui"):
        setattr(state, name, getattr(fresh, name))


# ui

def set_user_role(state: AppState, role: str) -> None:
    state.ui.user_role = role


def set_current_page(state: AppState, page: str) -> None:
    state.ui.current_page = page


def toggle_theme(state: AppState) -> None:
    state.ui.theme = DARK if state.ui.theme == LIGHT else LIGHT


def set_theme(state: AppState, theme: str) -> None:
    state.ui.theme = theme


def add_notification(state: AppState, message: str, kind: str = "info", duration: int = DEFAULT_NOTIFICATION_MS) -> dict:
    notification = {
        "id": next(_notification_ids),
        "type": kind,
        "message": message,
        "duration": duration,
        "timestamp": _now_iso(),
    }
    state.ui.notifications.append(notification)
    return notification


def remove_notification(state: AppState, notification_id: int) -> None:
    state.ui.notifications = [n for n in state.ui.notifications if n["id"] != notification_id]


def clear_notifications(state: AppState) -> None:
    state.ui.notifications = []


# quiz

def quiz_generated(state: AppState, quiz: dict) -> None:
    q = state.quiz
    q.current_quiz = quiz
    q.current_answers = {}
    q.result = None
    q.is_submitted = False
    q.loading = False


def set_quiz_answer(state: AppState, question_index: int, answer: Any) -> None:
    state.quiz.current_answers[question_index] = answer


def clear_quiz_answers(state: AppState) -> None:
    state.quiz.current_answers = {}


def submit_quiz(state: AppState) -> dict:
    """Grade the current quiz and log it at the front of the history.

    The sparse answer map is padded to one entry per question before
    grading. Raises `InvalidDefinition` if there is no gradable quiz.
    """
    q = state.quiz
    if q.current_quiz is None:
        raise InvalidDefinition("no quiz to submit")
    result = grading.grade_quiz(q.current_quiz, q.current_answers)
    q.result = result
    q.is_submitted = True
    q.history.insert(0, {"quiz": q.current_quiz, "result": result, "submittedAt": result["completedAt"]})
    return result


def clear_quiz(state: AppState) -> None:
    history = state.quiz.history
    state.quiz = QuizState(history=history)


# assignment

def assignment_generated(state: AppState, assignment: dict) -> None:
    a = state.assignment
    a.current_assignment = assignment
    a.current_answers = {}
    a.result = None
    a.is_submitted = False
    a.loading = False


def set_assignment_answer(state: AppState, question_key: str, answer: Any) -> None:
    """Record an answer under its `<sectionType>-<index>` key."""
    state.assignment.current_answers[question_key] = answer


def clear_assignment_answers(state: AppState) -> None:
    state.assignment.current_answers = {}


def submit_assignment(state: AppState) -> dict:
    a = state.assignment
    if a.current_assignment is None:
        raise InvalidDefinition("no assignment to submit")
    result = grading.grade_assignment(a.current_assignment, a.current_answers)
    a.result = result
    a.is_submitted = True
    a.history.insert(0, {"assignment": a.current_assignment, "result": result, "submittedAt": result["submittedAt"]})
    return result


def clear_assignment(state: AppState) -> None:
    history = state.assignment.history
    state.assignment = AssignmentState(history=history)


# notes

def notes_generated(state: AppState, notes: dict) -> None:
    n = state.notes
    n.current_notes = notes
    n.expanded_sections = [0]
    n.loading = False
    n.history.insert(0, {**notes, "generatedAt": _now_iso()})


def toggle_section(state: AppState, index: int) -> None:
    expanded = state.notes.expanded_sections
    if index in expanded:
        state.notes.expanded_sections = [i for i in expanded if i != index]
    else:
        expanded.append(index)


def expand_all_sections(state: AppState) -> None:
    notes = state.notes.current_notes
    if notes and notes.get("sections"):
        state.notes.expanded_sections = list(range(len(notes["sections"])))


def collapse_all_sections(state: AppState) -> None:
    state.notes.expanded_sections = []


def clear_notes(state: AppState) -> None:
    state.notes = NotesState(history=state.notes.history)


# flashcards

def _card_count(f: FlashcardsState) -> int:
    if not f.current_deck:
        return 0
    return len(f.current_deck.get("cards") or [])


def deck_generated(state: AppState, deck: dict) -> None:
    f = state.flashcards
    f.current_deck = deck
    f.current_card_index = 0
    f.is_flipped = False
    f.loading = False
    f.history.insert(0, {**deck, "generatedAt": _now_iso()})


def flip_card(state: AppState) -> None:
    state.flashcards.is_flipped = not state.flashcards.is_flipped


def next_card(state: AppState) -> None:
    f = state.flashcards
    if f.current_card_index < _card_count(f) - 1:
        f.current_card_index += 1
        f.is_flipped = False


def previous_card(state: AppState) -> None:
    f = state.flashcards
    if f.current_card_index > 0:
        f.current_card_index -= 1
        f.is_flipped = False


def go_to_card(state: AppState, index: int) -> None:
    f = state.flashcards
    if 0 <= index < _card_count(f):
        f.current_card_index = index
        f.is_flipped = False


def mark_card_known(state: AppState) -> None:
    stats = state.flashcards.study_stats
    stats.cards_studied += 1
    stats.correct_answers += 1


def mark_card_unknown(state: AppState) -> None:
    state.flashcards.study_stats.cards_studied += 1


def start_study_session(state: AppState) -> None:
    state.flashcards.study_stats = StudyStats(session_start_time=_now_iso())


def shuffle_deck(state: AppState, rng: Optional[random.Random] = None) -> None:
    f = state.flashcards
    if not f.current_deck or not f.current_deck.get("cards"):
        return
    cards = list(f.current_deck["cards"])
    (rng or random).shuffle(cards)
    f.current_deck = {**f.current_deck, "cards": cards}
    f.current_card_index = 0
    f.is_flipped = False


def clear_flashcards(state: AppState) -> None:
    state.flashcards = FlashcardsState(history=state.flashcards.history)


# tutor

def tutor_replied(state: AppState, question: str, reply: dict) -> None:
    t = state.tutor
    ts = _now_iso()
    t.chat_history.append({"type": "user", "message": question, "timestamp": ts})
    t.chat_history.append({
        "type": "tutor",
        "message": reply.get("response"),
        "examples": reply.get("examples"),
        "relatedTopics": reply.get("relatedTopics"),
        "practiceQuestions": reply.get("practiceQuestions"),
        "difficulty": reply.get("difficulty"),
        "image": reply.get("image"),
        "timestamp": ts,
    })
    t.current_question = ""
    t.is_typing = False
    t.loading = False


def tutor_failed(state: AppState, message: str) -> None:
    t = state.tutor
    t.error = message
    t.is_typing = False
    t.loading = False
    t.chat_history.append({
        "type": "error",
        "message": "Sorry, I encountered an error. Please try again.",
        "timestamp": _now_iso(),
    })


def clear_chat_history(state: AppState) -> None:
    state.tutor.chat_history = []


# feedback

def feedback_generated(state: AppState, report: dict) -> None:
    fb = state.feedback
    entry = {**report, "generatedAt": _now_iso()}
    fb.current_feedback = entry
    fb.loading = False
    fb.history.insert(0, entry)


def clear_feedback(state: AppState) -> None:
    state.feedback = FeedbackState(history=state.feedback.history)


# requests against the API

def _run(state: AppState, feature, call: Callable[[], dict], on_success: Callable[[dict], None], fallback: str) -> Optional[dict]:
    """Run one API call under the feature's busy flag.

    Returns the response body, or None after recording the failure on the
    feature and as a dismissable error notification. The busy flag is
    always released, so the feature can be retried.
    """
    if feature.loading:
        return None
    feature.loading = True
    feature.error = None
    try:
        body = call()
        on_success(body)
        return body
    except ApiError as e:
        feature.error = e.message or fallback
        add_notification(state, feature.error, kind="error")
        return None
    finally:
        feature.loading = False


def request_quiz(state: AppState, api: ApiClient, topic: str, num_questions: int, include_images: bool = False):
    return _run(state, state.quiz, lambda: api.generate_quiz(topic, num_questions, include_images),
                lambda body: quiz_generated(state, body), "Failed to generate quiz")


def request_notes(state: AppState, api: ApiClient, topic: str, grade_level: str, include_images: bool = False):
    return _run(state, state.notes, lambda: api.generate_notes(topic, grade_level, include_images),
                lambda body: notes_generated(state, body), "Failed to generate notes")


def request_flashcards(state: AppState, api: ApiClient, topic: str, include_images: bool = False):
    return _run(state, state.flashcards, lambda: api.generate_flashcards(topic, include_images),
                lambda body: deck_generated(state, body), "Failed to generate flashcards")


def request_assignment(state: AppState, api: ApiClient, topic: str, grade_level: str):
    return _run(state, state.assignment, lambda: api.generate_assignment(topic, grade_level),
                lambda body: assignment_generated(state, body), "Failed to generate assignment")


def request_feedback(state: AppState, api: ApiClient, student_data: dict):
    return _run(state, state.feedback, lambda: api.generate_feedback(student_data),
                lambda body: feedback_generated(state, body), "Failed to generate feedback")


def ask_tutor(state: AppState, api: ApiClient, question: str, grade_level: Optional[str] = None, include_images: bool = False):
    """Ask the tutor; a failure also leaves an error entry in the chat."""
    t = state.tutor
    if t.loading:
        return None
    t.is_typing = True
    try:
        body = _run(state, t, lambda: api.ask_tutor(question, grade_level, include_images),
                    lambda body: tutor_replied(state, question, body), "Failed to get tutor response")
    finally:
        t.is_typing = False
    if body is None and t.error:
        tutor_failed(state, t.error)
    return body
