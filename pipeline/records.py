"""Result types produced by the verification orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from analyzers import AggregateScore, AnalysisResult
from analyzers.utils import json_sanitize
from ledger import VerificationReceipt

from .extraction import ExtractionResult
from .integrity import IntegrityReport


@dataclass(frozen=True)
class VerificationRecord:
    """One completed verification run.  Never mutated; a re-run is a new record."""

    document_id: str
    is_authentic: bool
    confidence: int
    flags: Tuple[str, ...]
    analyzer_results: Mapping[str, AnalysisResult]
    verifier_id: Optional[str]
    notes: str
    timestamp: str                                  # ISO-8601, UTC
    score: AggregateScore
    extraction: ExtractionResult
    integrity: Optional[IntegrityReport] = None
    ledger_receipt: Optional[VerificationReceipt] = None
    states: Tuple[str, ...] = ()
    errors: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "analyzer_results", MappingProxyType(dict(self.analyzer_results)))
        object.__setattr__(self, "errors", MappingProxyType(dict(self.errors)))

    @property
    def recorded_on_ledger(self) -> bool:
        return self.ledger_receipt is not None

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "is_authentic": self.is_authentic,
            "confidence": self.confidence,
            "flags": list(self.flags),
            "analyzer_results": {k: v.to_dict() for k, v in self.analyzer_results.items()},
            "verifier_id": self.verifier_id,
            "notes": self.notes,
            "timestamp": self.timestamp,
            "score": self.score.to_dict(),
            "extraction": self.extraction.to_dict(),
            "integrity": self.integrity.to_dict() if self.integrity else None,
            "ledger": self.ledger_receipt.to_dict() if self.ledger_receipt else None,
            "states": list(self.states),
            "errors": json_sanitize(self.errors),
        }


@dataclass(frozen=True)
class BulkVerificationResult:
    succeeded: Tuple[VerificationRecord, ...] = ()
    failed: Tuple[Dict[str, Any], ...] = ()

    def to_dict(self) -> dict:
        succeeded: List[dict] = [r.to_dict() for r in self.succeeded]
        return {
            "succeeded": succeeded,
            "failed": [dict(f) for f in self.failed],
            "total": len(self.succeeded) + len(self.failed),
        }
