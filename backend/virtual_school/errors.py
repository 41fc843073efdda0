"""Domain exceptions shared by services, grading and HTTP controllers.

Services raise these; `main` maps them onto `{"error": ...}` responses.
`ValidationError` and `InvalidDefinition` subclass `ValueError` so callers
that only care about "bad input" can catch the builtin.
"""


class ValidationError(ValueError):
    """Malformed or missing request fields (HTTP 400)."""


class InvalidDefinition(ValueError):
    """A quiz/assignment definition that cannot be graded."""


class GenerationError(RuntimeError):
    """Upstream generator failure or an unusable generator response.

    `public_message` is what the HTTP layer shows; the underlying cause is
    only logged.
    """

    def __init__(self, message: str, public_message: str = "Generation failed"):
        super().__init__(message)
        self.public_message = public_message


class ImageAugmentationFailure(RuntimeError):
    """Best-effort image generation did not produce an image. Never fatal."""
