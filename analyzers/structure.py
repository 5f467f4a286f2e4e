"""
analyzers.structure: Template compliance of the extracted text.

For the declared document type, each required field regex found in the text
earns 20 points, so a three-field template tops out at 60.  A document that
lacks more than half of the template's common phrases is flagged
``TEMPLATE_MISMATCH``.

Unknown document types are not an error: the result is a neutral zero score
with ``valid=False`` in the details.
"""

from __future__ import annotations

from typing import Dict, List

from .utils import AnalysisContext, AnalysisResult

FIELD_POINTS = 20
VALID_STRUCTURE_SCORE = 60


def analyze_structure(text: str, context: AnalysisContext) -> AnalysisResult:
    """Score how well *text* matches the template of the declared type.

    Parameters
    ----------
    text : str
        Extracted document text.  Empty text leaves every field missing.
    context : AnalysisContext
        Supplies ``document_type`` and the template catalog.

    Returns
    -------
    AnalysisResult
        ``sub_score`` is the structure score; details carry
        ``found_fields``, ``missing_fields`` and ``missing_phrases``.
    """
    template = context.templates().template_for(context.document_type)
    if template is None:
        return AnalysisResult(
            sub_score=0.0,
            details={"valid": False, "reason": "Unknown document type"},
        )

    text = text or ""
    found_fields: Dict[str, bool] = {}
    score = 0
    for name, pattern in template.required_fields:
        found = bool(pattern.search(text))
        found_fields[name] = found
        if found:
            score += FIELD_POINTS

    lowered = text.lower()
    missing_phrases: List[str] = [
        p for p in template.common_phrases if p.lower() not in lowered
    ]

    flags: List[str] = []
    if missing_phrases and len(missing_phrases) > len(template.common_phrases) * 0.5:
        flags.append("TEMPLATE_MISMATCH")

    return AnalysisResult(
        sub_score=float(score),
        flags=tuple(flags),
        details={
            "valid": score >= VALID_STRUCTURE_SCORE,
            "document_type": template.document_type,
            "found_fields": found_fields,
            "missing_fields": [n for n, ok in found_fields.items() if not ok],
            "missing_phrases": missing_phrases,
        },
    )
