"""
analyzers.content: Field validity checks on the extracted text.

Three checks feed the content score (which starts at 100):

* every ``M/D/Y`` date literal must be a real calendar date that is not in
  the future (−25 once if any fails);
* a ``Name:`` field must be present (−25 if absent);
* at least ten words must have been extracted.

Each failed check also records an issue, and every issue costs a further 10
points.  The score is not floored here; the aggregator clamps it.
"""

from __future__ import annotations

import re
from datetime import date
from typing import List, Optional

from .utils import AnalysisContext, AnalysisResult, words

_DATE_RE = re.compile(r"\d{1,2}[/-]\d{1,2}[/-]\d{2,4}")
_NAME_RE = re.compile(r"name\s*:?\s*([a-zA-Z\s]{2,50})", re.I)

MIN_WORDS = 10
DATE_PENALTY = 25
NAME_PENALTY = 25
ISSUE_PENALTY = 10


def parse_date_literal(literal: str) -> Optional[date]:
    """Parse ``M/D/Y`` or ``M-D-Y``; two-digit years pivot at 50."""
    parts = re.split(r"[/-]", literal.strip())
    if len(parts) != 3:
        return None
    try:
        month, day, year = (int(p) for p in parts)
    except ValueError:
        return None
    if len(parts[2]) == 2:
        year += 2000 if year < 50 else 1900
    try:
        return date(year, month, day)
    except ValueError:
        return None


def analyze_content(text: str, context: AnalysisContext) -> AnalysisResult:
    text = text or ""
    today = context.today()
    issues: List[str] = []

    dates = _DATE_RE.findall(text)
    valid_dates = True
    for literal in dates:
        parsed = parse_date_literal(literal)
        if parsed is None or parsed > today:
            valid_dates = False
            issues.append(f"Invalid date: {literal}")

    names = [m.strip() for m in _NAME_RE.findall(text)]
    valid_names = bool(names)
    if not valid_names:
        issues.append("No valid names found")

    word_count = len(words(text))
    if word_count < MIN_WORDS:
        issues.append("Insufficient content extracted")

    score = 100
    if not valid_dates:
        score -= DATE_PENALTY
    if not valid_names:
        score -= NAME_PENALTY
    score -= ISSUE_PENALTY * len(issues)

    return AnalysisResult(
        sub_score=float(score),
        flags=tuple(issues),
        details={
            "has_valid_dates": valid_dates,
            "has_valid_names": valid_names,
            "dates": dates,
            "names": names,
            "word_count": word_count,
            "issues": issues,
        },
    )
