"""Local disk store for generated images.

Images are written flat into one directory and referenced by the
server-relative path `/images/<filename>`. Only the basename of a stored
path is meaningful; clients fetch it from `/api/images/<basename>`.
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path, PurePosixPath
from typing import Optional

IMAGE_URL_PREFIX = "/images"

_WHITESPACE_RE = re.compile(r"\s+")
_LOGGER = logging.getLogger("virtual_school.images")


def now_ms() -> int:
    return int(time.time() * 1000)


def slugify_topic(topic: str) -> str:
    """Replace runs of whitespace with underscores; nothing else changes."""
    return _WHITESPACE_RE.sub("_", topic)


def image_filename(kind: str, topic: str, timestamp_ms: Optional[int] = None) -> str:
    """Return `<kind>_<slug>_<ms>.png` for a generated image."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return f"{kind}_{slugify_topic(topic)}_{timestamp_ms}.png"


def image_basename(stored_path: str) -> str:
    """Final path segment of a stored image path (directory is discarded)."""
    return PurePosixPath(stored_path.replace("\\", "/")).name


class ImageStore:
    """Persist image bytes under `root` and resolve them for serving."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, filename: str, data: bytes) -> str:
        """Write `data` as `filename` and return its server-relative path."""
        target = self._safe_path(filename)
        if target is None:
            raise ValueError(f"invalid image filename: {filename!r}")
        target.write_bytes(data)
        _LOGGER.info("image_saved filename=%s bytes=%d", filename, len(data))
        return f"{IMAGE_URL_PREFIX}/{filename}"

    def resolve(self, filename: str) -> Optional[Path]:
        """Return the file for `filename`, or None when absent or unsafe."""
        target = self._safe_path(filename)
        if target is None or not target.is_file():
            return None
        return target

    def _safe_path(self, filename: str) -> Optional[Path]:
        if not filename or len(filename) > 255:
            return None
        if "/" in filename or "\\" in filename or filename in (".", ".."):
            return None
        return self.root / filename
