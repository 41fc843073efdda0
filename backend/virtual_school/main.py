"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints used by the Virtual School
backend. Controllers are intentionally thin: they accept requests,
delegate to services, and return JSON responses. Every error body has
the shape `{"error": "<message>"}`.

Endpoints implemented:
- POST /api/generate-quiz
- POST /api/generate-notes
- POST /api/generate-flashcards
- POST /api/generate-assignment
- POST /api/tutor
- POST /api/feedback
- POST /api/generate-image
- POST /api/enhance-image
- POST /api/grade-quiz
- POST /api/grade-assignment
- GET /api/images/{filename}
- GET /api/health
"""

from datetime import datetime, timezone
from functools import lru_cache
import json
import logging
import time
import uuid

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import grading
from .config import settings
from .errors import GenerationError, InvalidDefinition, ValidationError
from .schemas import (
    AssignmentRequest,
    EnhanceImageRequest,
    FeedbackRequest,
    FlashcardsRequest,
    GradeAssignmentRequest,
    GradeQuizRequest,
    ImageRequest,
    NotesRequest,
    QuizRequest,
    TutorRequest,
)
from .services import ContentService, ImageService
from .utils.generator import GeminiGenerator
from .utils.image_store import ImageStore

IMAGE_CACHE_CONTROL = "public, max-age=31536000"
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "cross-origin",
    "Content-Security-Policy": "default-src 'self'; img-src 'self' data: *; object-src 'none'; frame-ancestors 'self'",
}

app = FastAPI(title="Virtual School API")
logger = logging.getLogger("virtual_school.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# dev: any origin; otherwise only FRONTEND_ORIGIN.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_ORIGIN],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

settings.IMAGES_DIR.mkdir(parents=True, exist_ok=True)
# Stored image paths look like /images/<file>; serve them directly as well.
app.mount("/images", StaticFiles(directory=settings.IMAGES_DIR), name="images")


@lru_cache(maxsize=1)
def get_generator() -> GeminiGenerator:
    return GeminiGenerator(
        api_key=settings.GEMINI_API_KEY,
        text_model=settings.TEXT_MODEL,
        image_model=settings.IMAGE_MODEL,
        timeout_seconds=settings.GENERATION_TIMEOUT_SECONDS,
    )


@lru_cache(maxsize=1)
def get_image_store() -> ImageStore:
    return ImageStore(settings.IMAGES_DIR)


def get_content_service(generator=Depends(get_generator), store: ImageStore = Depends(get_image_store)) -> ContentService:
    return ContentService(generator, store)


def get_image_service(generator=Depends(get_generator), store: ImageStore = Depends(get_image_store)) -> ImageService:
    return ImageService(generator, store)


def _error(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > settings.MAX_BODY_BYTES:
        return _error(413, "Request body too large", headers={"X-Request-ID": req_id})
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


def _empty_body_errors(request: Request):
    """Errors the route's body model reports for `{}`, or None.

    A POST without a body is judged as an empty object so the caller sees
    the same field message as for `{}`.
    """
    dependant = getattr(request.scope.get("route"), "dependant", None)
    for param in getattr(dependant, "body_params", None) or []:
        model = param.field_info.annotation
        if isinstance(model, type) and issubclass(model, BaseModel):
            try:
                model.model_validate({})
            except PydanticValidationError as e:
                return e.errors()
    return None


def _validation_message(request: Request, exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Request body must be valid JSON"
    if first.get("type") == "missing" and tuple(first.get("loc", ())) == ("body",):
        errors = _empty_body_errors(request) or errors
        first = errors[0]
    msg = str(first.get("msg", "Invalid request"))
    # Validators raise ValueError; pydantic prefixes their message.
    prefix = "Value error, "
    if msg.startswith(prefix):
        return msg[len(prefix):]
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    return f"{field}: {msg}" if field else msg


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _error(400, _validation_message(request, exc))


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(400, str(exc))


@app.exception_handler(InvalidDefinition)
async def invalid_definition_handler(request: Request, exc: InvalidDefinition):
    return _error(400, f"Invalid definition: {exc}")


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    # Cause is logged by the service; only the generic message is exposed.
    return _error(500, exc.public_message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # Unmatched path or method are both "no such endpoint".
    if exc.status_code == 405 or (exc.status_code == 404 and exc.detail == "Not Found"):
        return _error(404, "Endpoint not found")
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled error on %s: %s", request.url.path, exc)
    return _error(500, "Something went wrong!")


@app.post("/api/generate-quiz")
def generate_quiz(payload: QuizRequest, svc: ContentService = Depends(get_content_service)):
    """Generate a multiple-choice quiz, optionally with an illustration."""
    return svc.generate_quiz(payload.topic, payload.num_questions, payload.include_images)


@app.post("/api/generate-notes")
def generate_notes(payload: NotesRequest, svc: ContentService = Depends(get_content_service)):
    """Generate study notes for a topic at a grade level."""
    return svc.generate_notes(payload.topic, payload.grade_level, payload.include_images)


@app.post("/api/generate-flashcards")
def generate_flashcards(payload: FlashcardsRequest, svc: ContentService = Depends(get_content_service)):
    """Generate a flashcard deck.

    With `includeImages` the deck and up to three cards get their own
    illustrations; each image is optional in the response.
    """
    return svc.generate_flashcards(payload.topic, payload.include_images)


@app.post("/api/generate-assignment")
def generate_assignment(payload: AssignmentRequest, svc: ContentService = Depends(get_content_service)):
    return svc.generate_assignment(payload.topic, payload.grade_level)


@app.post("/api/tutor")
def tutor(payload: TutorRequest, svc: ContentService = Depends(get_content_service)):
    """Answer a learner question as an AI tutor."""
    return svc.tutor(payload.question, payload.grade_level, payload.include_images)


@app.post("/api/feedback")
def feedback(payload: FeedbackRequest, svc: ContentService = Depends(get_content_service)):
    """Produce a feedback report from arbitrary student performance data."""
    return svc.feedback(payload.student_data)


@app.post("/api/generate-image")
def generate_image(payload: ImageRequest, svc: ImageService = Depends(get_image_service)):
    return svc.generate_image(payload.prompt, payload.topic, payload.style)


@app.post("/api/enhance-image")
def enhance_image(payload: EnhanceImageRequest, svc: ImageService = Depends(get_image_service)):
    """Edit an uploaded base64 image following free-text instructions."""
    return svc.enhance_image(payload.image_data, payload.instructions, payload.mime_type)


@app.post("/api/grade-quiz")
def grade_quiz(payload: GradeQuizRequest):
    """Grade a quiz definition against submitted answers.

    `answers` may be a list ordered by question or a sparse
    `{index: answer}` map; unanswered questions count as incorrect.
    """
    return grading.grade_quiz(payload.quiz, payload.answers)


@app.post("/api/grade-assignment")
def grade_assignment(payload: GradeAssignmentRequest):
    """Grade an assignment; answers are keyed `<sectionType>-<index>`."""
    return grading.grade_assignment(payload.assignment, payload.answers)


@app.get("/api/images/{filename}")
def get_image(filename: str, store: ImageStore = Depends(get_image_store)):
    """Serve a stored image with a one-year cache lifetime."""
    path = store.resolve(filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return FileResponse(
        path,
        headers={"Cache-Control": IMAGE_CACHE_CONTROL, "Access-Control-Allow-Origin": "*"},
    )


@app.get("/api/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
