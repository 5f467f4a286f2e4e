"""
File-level checks run before extraction: content hash, size, modification
time and a corruption verdict.

A file is reported corrupted when it is empty or, for raster images, when
Pillow's ``Image.verify()`` rejects it.  Other formats are only checked for
emptiness.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png"}
_CHUNK = 1 << 16


@dataclass(frozen=True)
class IntegrityReport:
    file_size: int
    is_corrupted: bool
    last_modified: str                  # ISO-8601, UTC
    content_hash: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "file_size": self.file_size,
            "is_corrupted": self.is_corrupted,
            "last_modified": self.last_modified,
            "content_hash": self.content_hash,
            "error": self.error,
        }


def compute_file_hash(path: PathLike) -> str:
    """SHA-256 of the file contents, lowercase hex."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def _image_error(path: Path) -> Optional[str]:
    try:
        with Image.open(path) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        return f"{type(exc).__name__}: {exc}"
    return None


def check_integrity(path: PathLike) -> IntegrityReport:
    """Inspect *path*.

    Raises:
        FileNotFoundError: if *path* does not exist.
    """
    p = Path(path)
    stat = p.stat()
    modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat()

    if stat.st_size == 0:
        return IntegrityReport(
            file_size=0,
            is_corrupted=True,
            last_modified=modified,
            content_hash=compute_file_hash(p),
            error="empty file",
        )

    error = _image_error(p) if p.suffix.lower() in IMAGE_SUFFIXES else None
    if error:
        logger.warning("Image failed verification: %s (%s)", p, error)

    return IntegrityReport(
        file_size=stat.st_size,
        is_corrupted=error is not None,
        last_modified=modified,
        content_hash=compute_file_hash(p),
        error=error,
    )
