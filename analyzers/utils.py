"""
analyzers.utils: Shared value types and helpers for the signal analyzers.

Provides:

* **AnalysisResult**: The immutable output of a single analyzer.
* **AnalysisContext**: Per-document inputs shared by every analyzer
  (declared type, metadata, template catalog, reference date).
* **Text helpers**: ``non_blank_lines``, ``words``.
* **Serialisation**: ``json_sanitize``, ``save_json``.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

if TYPE_CHECKING:
    from .templates import TemplateCatalog


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisResult:
    """Output of one analyzer for one document.

    Attributes
    ----------
    sub_score : float
        Analyzer score.  Structure, content and metadata scores are
        evidence of validity; fraud and statistical scores are penalties.
    flags : tuple of str
        Machine-readable tags in the order they were raised.
    details : dict
        Free-form supporting data kept for audit.
    """

    sub_score: float
    flags: Tuple[str, ...] = ()
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failed(cls, analyzer_name: str, error: str) -> "AnalysisResult":
        """Zero-score stand-in used when an analyzer raises."""
        return cls(
            sub_score=0.0,
            flags=(f"ANALYZER_FAILED:{analyzer_name}",),
            details={"error": error},
        )

    def to_dict(self) -> dict:
        return {
            "sub_score": self.sub_score,
            "flags": list(self.flags),
            "details": json_sanitize(self.details),
        }


@dataclass(frozen=True)
class AnalysisContext:
    """Inputs shared by all analyzers of one verification run."""

    document_type: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    catalog: Optional["TemplateCatalog"] = None
    reference_date: Optional[date] = None

    def today(self) -> date:
        return self.reference_date or date.today()

    def templates(self) -> "TemplateCatalog":
        if self.catalog is not None:
            return self.catalog
        from .templates import default_catalog
        return default_catalog()


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def non_blank_lines(text: str) -> List[str]:
    """Lines of *text* that contain something other than whitespace."""
    return [ln for ln in (text or "").split("\n") if ln.strip()]


def words(text: str) -> List[str]:
    return (text or "").split()


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def json_sanitize(obj: Any) -> Any:
    """Convert numpy types, dates, enums, paths and dataclasses to JSON-safe types."""
    if obj is None:
        return None
    if isinstance(obj, Enum):
        return json_sanitize(obj.value)
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if hasattr(obj, "to_dict"):
        return json_sanitize(obj.to_dict())
    if hasattr(obj, "__dataclass_fields__"):
        return {k: json_sanitize(v) for k, v in asdict(obj).items()}
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return json_sanitize(float(obj))
    if isinstance(obj, np.ndarray):
        return json_sanitize(obj.tolist())
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [json_sanitize(x) for x in obj]
    if isinstance(obj, Mapping):
        return {str(k): json_sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (int, float, str, bool)):
        # normalize NaN/inf
        if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
            return None
        return obj
    return str(obj)


def save_json(data: Any, out_path: Union[str, Path]) -> str:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(json_sanitize(data), f, ensure_ascii=False, indent=2)
    return str(out_path)
