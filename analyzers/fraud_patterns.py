"""
analyzers.fraud_patterns: Pattern-based fraud heuristics.

Applies the configured regex patterns in order.  Each pattern that matches
anywhere in the text adds its risk weight once (weights are additive and
not capped) and raises its flag.  A layout check adds
``INCONSISTENT_FORMATTING`` when the line lengths vary too much.

The resulting ``sub_score`` is a risk score: the aggregator subtracts it.
"""

from __future__ import annotations

from typing import Any, Dict, List

import numpy as np

from .utils import AnalysisContext, AnalysisResult, non_blank_lines

FORMATTING_RISK = 15
# a line deviates when |len - mean| > mean * LINE_DEVIATION_FACTOR
LINE_DEVIATION_FACTOR = 0.8
# ...and the document is flagged when more than this share of lines deviate
DEVIANT_LINE_SHARE = 0.3


def formatting_inconsistency(text: str) -> Dict[str, Any]:
    """Line-length spread of the non-blank lines of *text*."""
    lines = non_blank_lines(text)
    if not lines:
        return {"lines": 0, "mean_length": 0.0, "deviant_lines": 0, "inconsistent": False}

    lengths = np.array([len(ln) for ln in lines], dtype=np.float64)
    mean = float(lengths.mean())
    deviant = int(np.count_nonzero(np.abs(lengths - mean) > mean * LINE_DEVIATION_FACTOR))
    return {
        "lines": len(lines),
        "mean_length": round(mean, 2),
        "deviant_lines": deviant,
        "inconsistent": deviant > len(lines) * DEVIANT_LINE_SHARE,
    }


def analyze_fraud_patterns(text: str, context: AnalysisContext) -> AnalysisResult:
    text = text or ""
    risk = 0.0
    flags: List[str] = []
    suspicious: List[Dict[str, Any]] = []

    for fp in context.templates().fraud_patterns:
        matches = [m.group(0) for m in fp.pattern.finditer(text)]
        if not matches:
            continue
        risk += fp.risk
        flags.append(fp.flag)
        suspicious.append({
            "flag": fp.flag,
            "pattern": fp.pattern.pattern,
            "matches": len(matches),
            "examples": matches[:3],
            "risk": fp.risk,
        })

    layout = formatting_inconsistency(text)
    if layout["inconsistent"]:
        risk += FORMATTING_RISK
        flags.append("INCONSISTENT_FORMATTING")

    return AnalysisResult(
        sub_score=risk,
        flags=tuple(flags),
        details={
            "risk_score": risk,
            "suspicious_patterns": suspicious,
            "formatting": layout,
        },
    )
