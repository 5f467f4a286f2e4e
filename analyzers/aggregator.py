"""
ScoreAggregator: Fuses the analyzer sub-scores into one confidence value.

=== Weighted penalty fusion ===

Starting from 100, each signal removes points:

    OCR confidence   (100 - ocr_confidence)          x 0.3
    Structure        (100 - structure_score)         x 0.4
    Content          (100 - max(0, content_score))   x 0.2
    Metadata         (100 - consistency_score)       x 0.1
    Fraud patterns   risk_score                      x 1.0
    Statistics       anomaly_score                   x 1.0
    File integrity   50 when the file is corrupted

    confidence   = round(clamp(total, 0, 100))      (halves round up)
    is_authentic = confidence >= 70

The threshold is fixed.  Aggregation is a pure function of its inputs: no
I/O and no randomness, so identical inputs always give identical verdicts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping

from .utils import AnalysisResult

AUTHENTICITY_THRESHOLD = 70

OCR_WEIGHT = 0.3
STRUCTURE_WEIGHT = 0.4
CONTENT_WEIGHT = 0.2
METADATA_WEIGHT = 0.1
FRAUD_WEIGHT = 1.0
STATISTICS_WEIGHT = 1.0
CORRUPTION_PENALTY = 50.0

_ZERO = AnalysisResult(sub_score=0.0)


@dataclass(frozen=True)
class AggregateScore:
    """Final score of one verification run."""

    confidence: int                     # [0, 100]
    is_authentic: bool
    raw_score: float                    # unclamped total, for audit
    impacts: Dict[str, float] = field(default_factory=dict)
    threshold: int = AUTHENTICITY_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "confidence": self.confidence,
            "is_authentic": self.is_authentic,
            "raw_score": round(self.raw_score, 4),
            "impacts": {k: round(v, 4) for k, v in self.impacts.items()},
            "threshold": self.threshold,
        }


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


class ScoreAggregator:
    """
    Combines analyzer results into an AggregateScore.

    Results are looked up by analyzer name (``structure``, ``content``,
    ``metadata``, ``fraud_patterns``, ``statistics``).  A missing result
    counts as a zero score.
    """

    def aggregate(
        self,
        ocr_confidence: float,
        results: Mapping[str, AnalysisResult],
        file_corrupted: bool = False,
    ) -> AggregateScore:
        structure = results.get("structure", _ZERO).sub_score
        content = results.get("content", _ZERO).sub_score
        metadata = results.get("metadata", _ZERO).sub_score
        risk = results.get("fraud_patterns", _ZERO).sub_score
        anomaly = results.get("statistics", _ZERO).sub_score

        impacts: Dict[str, float] = {
            "ocr": -(100.0 - float(ocr_confidence)) * OCR_WEIGHT,
            "structure": -(100.0 - structure) * STRUCTURE_WEIGHT,
            "content": -(100.0 - max(0.0, content)) * CONTENT_WEIGHT,
            "metadata": -(100.0 - metadata) * METADATA_WEIGHT,
            "fraud_patterns": -risk * FRAUD_WEIGHT,
            "statistics": -anomaly * STATISTICS_WEIGHT,
        }
        if file_corrupted:
            impacts["integrity"] = -CORRUPTION_PENALTY

        total = 100.0 + sum(impacts.values())
        confidence = round_half_up(min(100.0, max(0.0, total)))
        return AggregateScore(
            confidence=confidence,
            is_authentic=confidence >= AUTHENTICITY_THRESHOLD,
            raw_score=total,
            impacts=impacts,
        )
