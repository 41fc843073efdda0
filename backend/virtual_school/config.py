"""Application settings and validation."""

import os
from pathlib import Path


class Settings:
    ENV: str
    GEMINI_API_KEY: str
    TEXT_MODEL: str
    IMAGE_MODEL: str
    GENERATION_TIMEOUT_SECONDS: float
    IMAGES_DIR: Path
    MAX_BODY_BYTES: int
    ALLOW_DEV_CORS: bool
    FRONTEND_ORIGIN: str
    LOG_LEVEL: str
    PORT: int

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
        self.TEXT_MODEL = os.getenv("TEXT_MODEL", "gemini-1.5-flash")
        self.IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gemini-2.5-flash-image-preview")
        # Upstream models are slow; keep a multi-minute ceiling.
        self.GENERATION_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "300"))
        default_images = Path(__file__).resolve().parent.parent / "images"
        self.IMAGES_DIR = Path(os.getenv("IMAGES_DIR", str(default_images))).expanduser()
        self.MAX_BODY_BYTES = int(os.getenv("MAX_BODY_BYTES", str(10 * 1024 * 1024)))  # 10 MB default
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:5173")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.PORT = int(os.getenv("PORT", "5000"))
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.GEMINI_API_KEY:
            raise RuntimeError("GEMINI_API_KEY must be set in non-dev environments")
        if self.GENERATION_TIMEOUT_SECONDS <= 0:
            raise RuntimeError("GENERATION_TIMEOUT_SECONDS must be positive")


settings = Settings()
