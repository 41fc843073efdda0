"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate the generator,
the response parsers and the image store. Services are intentionally
thin: they template a prompt, call the generator, validate what comes
back and optionally decorate the result with a generated image.

Image augmentation is best-effort. It runs sequentially after the main
content call and, on any failure, leaves the definition without an
`image` field instead of failing the request.
"""

import base64
import binascii
import io
import logging
from typing import Any, Dict, Optional

from PIL import Image

from .errors import GenerationError, ImageAugmentationFailure, ValidationError
from .utils import parsers, prompts
from .utils.image_store import ImageStore, image_filename, now_ms

logger = logging.getLogger("virtual_school.services")

MAX_CARD_IMAGES = 3


def augment_with_image(definition: Dict[str, Any], generator, store: ImageStore, prompt: str, filename: str) -> Dict[str, Any]:
    """Return `definition` with an `image` path, or unchanged on failure.

    The returned dict is a copy when an image was attached; the input is
    never mutated.
    """
    try:
        path = _generate_and_save(generator, store, prompt, filename)
    except ImageAugmentationFailure as e:
        logger.warning("image augmentation skipped filename=%s reason=%s", filename, e)
        return definition
    return {**definition, "image": path}


def _generate_and_save(generator, store: ImageStore, prompt: str, filename: str, image_bytes: Optional[bytes] = None, mime_type: str = "image/png") -> str:
    try:
        data = generator.generate_image(prompt, image_bytes=image_bytes, mime_type=mime_type)
    except GenerationError as e:
        raise ImageAugmentationFailure(str(e)) from e
    if not data:
        raise ImageAugmentationFailure("generator returned no inline image")
    try:
        return store.save(filename, data)
    except (OSError, ValueError) as e:
        raise ImageAugmentationFailure(f"could not store image: {e}") from e


class ContentService:
    """Generate quizzes, notes, flashcards, assignments, tutor replies and feedback."""

    def __init__(self, generator, store: ImageStore):
        self.generator = generator
        self.store = store

    def _generate(self, kind: str, prompt: str, public_message: str) -> Dict[str, Any]:
        try:
            text = self.generator.generate_text(prompt)
            return parsers.parse_definition(kind, text)
        except GenerationError as e:
            # Keep the detail in logs; clients only see the generic message.
            logger.error("generate %s failed: %s", kind, e)
            raise GenerationError(str(e), public_message=public_message) from e

    def _augment(self, definition: dict, prompt: str, filename: str) -> dict:
        return augment_with_image(definition, self.generator, self.store, prompt, filename)

    def generate_quiz(self, topic: str, num_questions: int, include_images: bool = False) -> Dict[str, Any]:
        quiz = self._generate(parsers.QUIZ, prompts.quiz_prompt(topic, num_questions), "Failed to generate quiz")
        if include_images:
            quiz = self._augment(quiz, prompts.quiz_image_prompt(topic), image_filename("quiz", topic))
        return quiz

    def generate_notes(self, topic: str, grade_level: str, include_images: bool = False) -> Dict[str, Any]:
        notes = self._generate(parsers.NOTES, prompts.notes_prompt(topic, grade_level), "Failed to generate notes")
        if include_images:
            notes = self._augment(notes, prompts.notes_image_prompt(topic, grade_level), image_filename("notes", topic))
        return notes

    def generate_flashcards(self, topic: str, include_images: bool = False) -> Dict[str, Any]:
        """Generate a deck; with images, also illustrate up to the first three cards.

        The deck image and each card image are attempted independently, so
        one failed attempt never prevents the others.
        """
        deck = self._generate(parsers.FLASHCARDS, prompts.flashcards_prompt(topic), "Failed to generate flashcards")
        if not include_images:
            return deck
        deck = self._augment(deck, prompts.flashcards_image_prompt(topic), image_filename("flashcards", topic))
        cards = list(deck["cards"])
        for i, card in enumerate(cards[:MAX_CARD_IMAGES]):
            prompt = prompts.flashcard_card_image_prompt(str(card.get("front", "")), topic)
            cards[i] = self._augment(card, prompt, image_filename(f"flashcard_{i}", topic))
        return {**deck, "cards": cards}

    def generate_assignment(self, topic: str, grade_level: str) -> Dict[str, Any]:
        return self._generate(parsers.ASSIGNMENT, prompts.assignment_prompt(topic, grade_level), "Failed to generate assignment")

    def tutor(self, question: str, grade_level: Optional[str] = None, include_images: bool = False) -> Dict[str, Any]:
        reply = self._generate(parsers.TUTOR, prompts.tutor_prompt(question, grade_level), "Failed to get tutor response")
        if include_images:
            reply = self._augment(reply, prompts.tutor_image_prompt(question, grade_level), f"tutor_{now_ms()}.png")
        logger.info("tutor reply ready image=%s", "yes" if "image" in reply else "no")
        return reply

    def feedback(self, student_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._generate(parsers.FEEDBACK, prompts.feedback_prompt(student_data), "Failed to generate feedback")


def decode_image_data(image_data: str) -> bytes:
    """Decode a base64 image (optionally a `data:` URL) and check it is an image.

    Raises `ValidationError` for bad base64 or bytes Pillow cannot identify.
    """
    payload = image_data.strip()
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("imageData must be base64 encoded")
    if not raw:
        raise ValidationError("imageData is empty")
    try:
        Image.open(io.BytesIO(raw)).verify()
    except Exception:
        raise ValidationError("imageData is not a supported image")
    return raw


class ImageService:
    """Standalone image generation and enhancement."""

    def __init__(self, generator, store: ImageStore):
        self.generator = generator
        self.store = store

    def _save_or_fail(self, prompt: str, filename: str, public_message: str, **kwargs) -> str:
        try:
            return _generate_and_save(self.generator, self.store, prompt, filename, **kwargs)
        except ImageAugmentationFailure as e:
            logger.error("%s: %s", public_message, e)
            raise GenerationError(str(e), public_message=public_message) from e

    def generate_image(self, prompt: str, topic: Optional[str] = None, style: str = "educational") -> Dict[str, Any]:
        enhanced = prompts.custom_image_prompt(prompt, topic, style)
        filename = f"custom_image_{now_ms()}.png"
        path = self._save_or_fail(enhanced, filename, "Failed to generate image")
        return {"success": True, "imagePath": path, "prompt": enhanced, "filename": filename}

    def enhance_image(self, image_data: str, instructions: str, mime_type: str = "image/png") -> Dict[str, Any]:
        raw = decode_image_data(image_data)
        filename = f"enhanced_image_{now_ms()}.png"
        path = self._save_or_fail(instructions, filename, "Failed to enhance image", image_bytes=raw, mime_type=mime_type)
        return {"success": True, "imagePath": path, "instructions": instructions, "filename": filename}
