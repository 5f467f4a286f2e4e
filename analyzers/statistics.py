"""
analyzers.statistics: Character and word distribution anomalies.

Generated or heavily edited documents tend to drift from natural English
text statistics.  Two checks contribute to a penalty score:

* ``ABNORMAL_CHAR_DISTRIBUTION`` (+15): mean absolute deviation between the
  observed letter frequencies and the reference table exceeds 3.0
  percentage points.
* ``UNUSUAL_WORD_LENGTH`` (+10): mean word length (letters only) is below
  3 or above 8.

Text with no letters at all raises neither flag.  The special-character
ratio and heavily repeated words are reported in the details only.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Dict, List, Optional

import numpy as np

from .utils import AnalysisContext, AnalysisResult, words

# Expected English letter frequencies, in percent.
EXPECTED_LETTER_FREQ: Dict[str, float] = {
    "e": 12.7, "t": 9.1, "a": 8.2, "o": 7.5, "i": 7.0, "n": 6.7,
    "s": 6.3, "h": 6.1, "r": 6.0, "d": 4.3, "l": 4.0, "c": 2.8,
}

MAX_CHAR_DEVIATION = 3.0
CHAR_DISTRIBUTION_PENALTY = 15
MIN_WORD_LENGTH = 3.0
MAX_WORD_LENGTH = 8.0
WORD_LENGTH_PENALTY = 10

_LETTERS = "abcdefghijklmnopqrstuvwxyz"
_NON_LETTER_RE = re.compile(r"[^a-zA-Z]")
_SPECIAL_CHAR_RE = re.compile(r"[^a-zA-Z0-9\s.,!?;:()\-]")
_REPEAT_THRESHOLD = 5


def letter_frequencies(text: str) -> Dict[str, float]:
    """Percentage share of each ASCII letter among all ASCII letters."""
    counts = Counter(ch for ch in (text or "").lower() if ch in _LETTERS)
    total = sum(counts.values())
    if total == 0:
        return {}
    return {ch: 100.0 * counts.get(ch, 0) / total for ch in _LETTERS}


def char_distribution_deviation(text: str) -> Optional[float]:
    """Mean absolute deviation from :data:`EXPECTED_LETTER_FREQ`, or None."""
    observed = letter_frequencies(text)
    if not observed:
        return None
    expected = np.array(list(EXPECTED_LETTER_FREQ.values()), dtype=np.float64)
    actual = np.array([observed[ch] for ch in EXPECTED_LETTER_FREQ], dtype=np.float64)
    return float(np.mean(np.abs(actual - expected)))


def mean_word_length(text: str) -> Optional[float]:
    lengths = [len(_NON_LETTER_RE.sub("", w)) for w in words(text)]
    lengths = [n for n in lengths if n > 0]
    if not lengths:
        return None
    return float(np.mean(lengths))


def _repeated_words(text: str) -> List[str]:
    counts = Counter(
        w for w in (_NON_LETTER_RE.sub("", tok.lower()) for tok in words(text)) if len(w) > 3
    )
    return sorted(w for w, n in counts.items() if n > _REPEAT_THRESHOLD)


def analyze_statistics(text: str, context: AnalysisContext) -> AnalysisResult:
    text = text or ""
    score = 0
    flags: List[str] = []
    anomalies: List[str] = []

    deviation = char_distribution_deviation(text)
    if deviation is not None and deviation > MAX_CHAR_DEVIATION:
        score += CHAR_DISTRIBUTION_PENALTY
        flags.append("ABNORMAL_CHAR_DISTRIBUTION")
        anomalies.append(f"Character frequency deviation: {deviation:.2f}")

    avg_len = mean_word_length(text)
    if avg_len is not None and (avg_len < MIN_WORD_LENGTH or avg_len > MAX_WORD_LENGTH):
        score += WORD_LENGTH_PENALTY
        flags.append("UNUSUAL_WORD_LENGTH")
        anomalies.append(f"Unusual average word length: {avg_len:.2f}")

    details: Dict[str, Any] = {
        "anomaly_score": score,
        "char_deviation": None if deviation is None else round(deviation, 4),
        "mean_word_length": None if avg_len is None else round(avg_len, 4),
        "special_char_ratio": (
            round(len(_SPECIAL_CHAR_RE.findall(text)) / len(text), 4) if text else 0.0
        ),
        "repeated_words": _repeated_words(text),
        "anomalies": anomalies,
    }
    return AnalysisResult(sub_score=float(score), flags=tuple(flags), details=details)
