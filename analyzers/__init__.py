"""
analyzers: Independent signal analyzers for document authenticity.

Each analyzer is a stateless function ``(text, AnalysisContext) ->
AnalysisResult`` over the text extracted from one document.  Analyzers do
not depend on one another, so the orchestration layer may run them in any
order or in parallel; only the aggregator combines their outputs.

Modules
-------
structure       Template compliance: required fields and common phrases of
                the declared document type.
content         Date validity, presence of a name field, minimum length.
metadata        Supplied metadata (recipient name, declared type) confirmed
                by the text.
fraud_patterns  Regex fraud heuristics (watermarks, redactions, editing
                traces) and line-length formatting spread.
statistics      Letter-frequency and word-length anomalies.
aggregator      Weighted fusion of all sub-scores into a 0-100 confidence.
templates       Document type catalogue and YAML-backed templates.
utils           AnalysisResult / AnalysisContext and JSON helpers.

Usage
-----
    from analyzers import ANALYZERS, AnalysisContext, ScoreAggregator

    ctx = AnalysisContext(document_type="birth_certificate", metadata=meta)
    results = {name: fn(text, ctx) for name, fn in ANALYZERS.items()}
    score = ScoreAggregator().aggregate(ocr_confidence=91.0, results=results)
"""

from typing import Callable, Dict

from .aggregator import AUTHENTICITY_THRESHOLD, AggregateScore, ScoreAggregator
from .content import analyze_content
from .fraud_patterns import analyze_fraud_patterns
from .metadata import analyze_metadata
from .statistics import analyze_statistics
from .structure import analyze_structure
from .templates import (
    ConfigError,
    DocumentType,
    TemplateCatalog,
    default_catalog,
    load_template_catalog,
    suggest_document_type,
)
from .utils import AnalysisContext, AnalysisResult

Analyzer = Callable[[str, AnalysisContext], AnalysisResult]

# Registry used by the orchestrator; names are the keys the aggregator reads.
ANALYZERS: Dict[str, Analyzer] = {
    "structure": analyze_structure,
    "content": analyze_content,
    "metadata": analyze_metadata,
    "fraud_patterns": analyze_fraud_patterns,
    "statistics": analyze_statistics,
}

__all__ = [
    "ANALYZERS",
    "AUTHENTICITY_THRESHOLD",
    "AggregateScore",
    "AnalysisContext",
    "AnalysisResult",
    "Analyzer",
    "ConfigError",
    "DocumentType",
    "ScoreAggregator",
    "TemplateCatalog",
    "default_catalog",
    "load_template_catalog",
    "suggest_document_type",
]
