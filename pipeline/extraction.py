"""
pipeline.extraction: Text extraction behind a single ``extract`` call.

The orchestrator only depends on the :class:`TextExtractor` protocol; OCR
internals are a black box.  :class:`OcrTextExtractor` is the default
adapter and picks a source per file:

1. **Plain text** (``text/plain``) is read as-is with full confidence.
2. **Sidecar transcription**: an image with a ``<name>.txt`` file beside
   it is read from that file (the common layout of labelled datasets).
3. **PaddleOCR**: otherwise images are preprocessed with OpenCV
   (grayscale, contrast normalisation, sharpening) and passed to
   PaddleOCR.  Confidence is the mean line confidence scaled to 0-100.
4. **PDF** is reported as unsupported.

Every result carries an ``engine`` tag (``"plain"``, ``"txt"``,
``"paddleocr"`` or ``"none"``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Protocol, Union

import cv2
import numpy as np
from PIL import Image

try:
    from paddleocr import PaddleOCR  # type: ignore
except Exception:
    PaddleOCR = None

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".txt": "text/plain",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

_SHARPEN_KERNEL = np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float32)


@dataclass(frozen=True)
class ExtractionResult:
    success: bool
    text: str = ""
    confidence: float = 0.0             # 0-100
    word_count: int = 0
    error: Optional[str] = None
    engine: str = "none"

    @classmethod
    def failure(cls, error: str, engine: str = "none") -> "ExtractionResult":
        return cls(success=False, error=error, engine=engine)

    @classmethod
    def from_text(cls, text: str, confidence: float, engine: str) -> "ExtractionResult":
        text = (text or "").strip()
        return cls(
            success=True,
            text=text,
            confidence=float(confidence),
            word_count=len(text.split()),
            engine=engine,
        )

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "confidence": self.confidence,
            "word_count": self.word_count,
            "error": self.error,
            "engine": self.engine,
        }


class TextExtractor(Protocol):
    def extract(self, file_path: PathLike, mime_type: Optional[str] = None) -> ExtractionResult: ...


def guess_mime_type(file_path: PathLike) -> str:
    """MIME type from the file extension (the upload layer's whitelist)."""
    return MIME_TYPES.get(Path(file_path).suffix.lower(), DEFAULT_MIME_TYPE)


def sidecar_txt_path(file_path: Path) -> Optional[Path]:
    """``<image>.txt`` beside the image, if present."""
    inferred = file_path.with_suffix(".txt")
    if inferred != file_path and inferred.exists():
        return inferred
    return None


def preprocess_for_ocr(rgb: np.ndarray) -> np.ndarray:
    """Grayscale, stretch contrast to 0-255, sharpen; returns BGR uint8."""
    gray = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
    norm = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX)
    sharp = cv2.filter2D(norm, -1, _SHARPEN_KERNEL)
    return cv2.cvtColor(sharp, cv2.COLOR_GRAY2BGR)


class OcrTextExtractor:
    """
    Default extractor.

    Args:
        use_sidecar: read ``<image>.txt`` when it exists instead of running OCR
        plain_confidence: confidence reported for text files and sidecars
        ocr_engine: object with PaddleOCR's ``ocr(img, cls=True)`` method;
            when omitted PaddleOCR is created lazily on first use
    """

    def __init__(
        self,
        use_sidecar: bool = True,
        plain_confidence: float = 100.0,
        ocr_engine: Optional[Any] = None,
    ):
        self.use_sidecar = use_sidecar
        self.plain_confidence = plain_confidence
        self._ocr = ocr_engine

    def _get_ocr(self) -> Optional[Any]:
        if self._ocr is None and PaddleOCR is not None:
            self._ocr = PaddleOCR(use_angle_cls=True, lang="en")
        return self._ocr

    def extract(self, file_path: PathLike, mime_type: Optional[str] = None) -> ExtractionResult:
        path = Path(file_path)
        mime = mime_type or guess_mime_type(path)
        try:
            if mime == "text/plain":
                return self._read_text(path, engine="plain")
            if mime == "application/pdf":
                return ExtractionResult.failure("PDF text extraction is not supported")
            if mime.startswith("image/"):
                return self._extract_image(path)
            return ExtractionResult.failure(f"Unsupported file type: {mime}")
        except Exception as exc:
            logger.warning("Text extraction failed for %s: %s", path, exc)
            return ExtractionResult.failure(f"{type(exc).__name__}: {exc}")

    def _read_text(self, path: Path, engine: str) -> ExtractionResult:
        text = path.read_text(encoding="utf-8", errors="replace")
        return ExtractionResult.from_text(text, self.plain_confidence, engine)

    def _extract_image(self, path: Path) -> ExtractionResult:
        if self.use_sidecar:
            txt = sidecar_txt_path(path)
            if txt is not None:
                return self._read_text(txt, engine="txt")

        ocr = self._get_ocr()
        if ocr is None:
            return ExtractionResult.failure("no OCR engine available (install paddleocr)")

        rgb = np.array(Image.open(path).convert("RGB"), dtype=np.uint8)
        res = ocr.ocr(preprocess_for_ocr(rgb), cls=True)

        lines: List[str] = []
        confs: List[float] = []
        # PaddleOCR output: list of pages, each a list of [box, (text, conf)]
        for page in res or []:
            for item in page or []:
                _, (text, conf) = item
                lines.append(str(text))
                confs.append(float(conf))

        if not lines:
            return ExtractionResult.failure("no text recognised", engine="paddleocr")
        confidence = float(np.mean(confs)) * 100.0
        return ExtractionResult.from_text("\n".join(lines), confidence, "paddleocr")
