"""
analyzers.metadata: Consistency between supplied metadata and the text.

Only confirming evidence is scored:

* the expected recipient name appears in the text: +40
* at least one keyword of the declared metadata type appears: +30

Missing metadata gives a score of 0, never a negative one.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from .utils import AnalysisContext, AnalysisResult

NAME_POINTS = 40
TYPE_POINTS = 30


def expected_recipient_name(metadata: Mapping[str, Any]) -> Optional[str]:
    """Recipient name from ``recipient_name`` or a nested ``recipientInfo``."""
    name = metadata.get("recipient_name")
    if not name:
        info = metadata.get("recipientInfo") or metadata.get("recipient_info") or {}
        if isinstance(info, Mapping):
            name = info.get("name")
    name = str(name).strip() if name else ""
    return name or None


def declared_metadata_type(metadata: Mapping[str, Any]) -> Optional[str]:
    doc_type = metadata.get("documentType") or metadata.get("document_type")
    return str(doc_type).strip().lower() if doc_type else None


def analyze_metadata(text: str, context: AnalysisContext) -> AnalysisResult:
    metadata = context.metadata or {}
    lowered = (text or "").lower()
    score = 0
    flags: List[str] = []

    name = expected_recipient_name(metadata)
    name_match = bool(name) and name.lower() in lowered
    if name_match:
        score += NAME_POINTS
        flags.append("NAME_MATCH")

    doc_type = declared_metadata_type(metadata)
    keywords = context.templates().keywords_for(doc_type)
    found_keywords = [k for k in keywords if k in lowered]
    type_match = bool(found_keywords)
    if type_match:
        score += TYPE_POINTS
        flags.append("TYPE_MATCH")

    return AnalysisResult(
        sub_score=float(score),
        flags=tuple(flags),
        details={
            "name_match": name_match,
            "type_match": type_match,
            "expected_name": name,
            "metadata_type": doc_type,
            "found_keywords": found_keywords,
        },
    )
