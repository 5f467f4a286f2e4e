"""
VerificationOrchestrator: runs one document through the verification
pipeline and records the outcome.

Flow
----
  RECEIVED       load the document record, refuse re-verification unless
                 forced, run the file integrity check
  EXTRACTING     text extraction through the injected TextExtractor
  ANALYZING      all analyzers in parallel on a thread pool
  AGGREGATING    weighted fusion into confidence / is_authentic
  LEDGER_APPEND  best-effort DocumentVerified transaction
  DONE           record saved to the document store history

Any step may end in FAILED.  Only RECEIVED and EXTRACTING failures abort the
run: a raising analyzer is replaced by a zero result flagged
``ANALYZER_FAILED:<name>``, and a ledger failure leaves the record intact
with the ``LEDGER_UNRECORDED`` flag.

Usage
-----
    from pipeline import VerificationOrchestrator, InMemoryDocumentStore

    orch = VerificationOrchestrator(store, ledger_service=LedgerService(ledger))
    record = orch.verify("doc-1", verifier_id="u42")
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from analyzers import ANALYZERS, Analyzer, AnalysisContext, AnalysisResult, ScoreAggregator
from analyzers.templates import TemplateCatalog
from ledger import LedgerError, LedgerService

from .config import VerificationSettings
from .documents import DocumentRecord, DocumentStatus, DocumentStore
from .errors import (
    AlreadyVerifiedError,
    AnalyzerFailure,
    ExtractionError,
    NotFoundError,
    VerificationError,
)
from .extraction import ExtractionResult, OcrTextExtractor, TextExtractor, guess_mime_type
from .integrity import IntegrityReport, check_integrity
from .records import BulkVerificationResult, VerificationRecord

logger = logging.getLogger(__name__)

LEDGER_UNRECORDED = "LEDGER_UNRECORDED"
FILE_CORRUPTED = "FILE_CORRUPTED"


class VerificationState(str, Enum):
    RECEIVED = "RECEIVED"
    EXTRACTING = "EXTRACTING"
    ANALYZING = "ANALYZING"
    AGGREGATING = "AGGREGATING"
    LEDGER_APPEND = "LEDGER_APPEND"
    DONE = "DONE"
    FAILED = "FAILED"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _call_analyzer(name: str, fn: Analyzer, text: str, context: AnalysisContext) -> AnalysisResult:
    try:
        result = fn(text, context)
    except Exception as exc:
        raise AnalyzerFailure(name, f"{type(exc).__name__}: {exc}") from exc
    if not isinstance(result, AnalysisResult):
        raise AnalyzerFailure(name, f"returned {type(result).__name__}, expected AnalysisResult")
    return result


def merge_flags(*groups: Sequence[str]) -> Tuple[str, ...]:
    """Ordered union of flag groups, first occurrence wins."""
    seen: Dict[str, None] = {}
    for group in groups:
        for flag in group:
            seen.setdefault(flag, None)
    return tuple(seen)


class VerificationOrchestrator:
    """
    Verification pipeline over injected collaborators.

    Args:
        documents: store providing ``get`` / ``save_verification`` / ``history``
        extractor: TextExtractor (default: OcrTextExtractor)
        ledger_service: where verification events are recorded; None skips
            the ledger step entirely
        analyzers: name -> analyzer function (default: all five)
        aggregator: ScoreAggregator
        catalog: template catalog handed to analyzers (default: process-wide)
        integrity_checker: ``path -> IntegrityReport``
        max_workers: analyzer thread-pool size
        bulk_limit: max ids per bulk request
        mining_timeout: per-append sealing budget in seconds
        default_verifier_id: used when a call passes no verifier
        reference_date: "today" for date checks (default: the real date)
        clock: returns the record timestamp (default: now, UTC)
    """

    def __init__(
        self,
        documents: DocumentStore,
        extractor: Optional[TextExtractor] = None,
        ledger_service: Optional[LedgerService] = None,
        analyzers: Optional[Mapping[str, Analyzer]] = None,
        aggregator: Optional[ScoreAggregator] = None,
        catalog: Optional[TemplateCatalog] = None,
        integrity_checker: Callable[[Any], IntegrityReport] = check_integrity,
        max_workers: int = 5,
        bulk_limit: int = 50,
        mining_timeout: Optional[float] = None,
        default_verifier_id: Optional[str] = None,
        reference_date: Optional[date] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.documents = documents
        self.extractor = extractor or OcrTextExtractor()
        self.ledger_service = ledger_service
        self.analyzers: Dict[str, Analyzer] = dict(analyzers if analyzers is not None else ANALYZERS)
        self.aggregator = aggregator or ScoreAggregator()
        self.catalog = catalog
        self.integrity_checker = integrity_checker
        self.max_workers = max(1, int(max_workers))
        self.bulk_limit = int(bulk_limit)
        self.mining_timeout = mining_timeout
        self.default_verifier_id = default_verifier_id
        self.reference_date = reference_date
        self._clock = clock or _utc_now

    @classmethod
    def from_settings(
        cls,
        settings: VerificationSettings,
        documents: DocumentStore,
        **kwargs: Any,
    ) -> "VerificationOrchestrator":
        kwargs.setdefault("max_workers", settings.max_workers)
        kwargs.setdefault("bulk_limit", settings.bulk_limit)
        kwargs.setdefault("mining_timeout", settings.mining_timeout_s)
        kwargs.setdefault("default_verifier_id", settings.default_verifier_id)
        return cls(documents, **kwargs)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def verify(
        self,
        document_id: str,
        verifier_id: Optional[str] = None,
        notes: str = "",
        force_re_verify: bool = False,
    ) -> VerificationRecord:
        """Verify one document.

        Raises:
            NotFoundError: unknown document id or missing file.
            AlreadyVerifiedError: document already verified and not forced.
            ExtractionError: no text could be extracted.
        """
        document_id = str(document_id)
        verifier_id = verifier_id or self.default_verifier_id
        states: List[VerificationState] = [VerificationState.RECEIVED]
        try:
            return self._run(document_id, verifier_id, notes, force_re_verify, states)
        except VerificationError as exc:
            states.append(VerificationState.FAILED)
            logger.warning(
                "Verification of %s failed after %s: %s",
                document_id, states[-2].value, exc,
            )
            raise

    def bulk_verify(
        self,
        document_ids: Sequence[str],
        verifier_id: Optional[str] = None,
        notes: str = "",
    ) -> BulkVerificationResult:
        """Verify several documents independently, re-verifying verified ones.

        A failing document is reported in ``failed`` and never stops the batch.

        Raises:
            ValueError: if the batch is empty or larger than ``bulk_limit``.
        """
        ids = [str(d) for d in document_ids or ()]
        if not ids:
            raise ValueError("document_ids must not be empty")
        if len(ids) > self.bulk_limit:
            raise ValueError(f"at most {self.bulk_limit} documents per bulk request, got {len(ids)}")

        succeeded: List[VerificationRecord] = []
        failed: List[Dict[str, Any]] = []
        for doc_id in ids:
            try:
                succeeded.append(self.verify(doc_id, verifier_id, notes, force_re_verify=True))
            except Exception as exc:
                error = str(exc) if isinstance(exc, VerificationError) else f"{type(exc).__name__}: {exc}"
                failed.append({
                    "document_id": doc_id,
                    "error": error,
                    "is_authentic": False,
                    "confidence": 0,
                })

        logger.info("Bulk verification: %d succeeded, %d failed", len(succeeded), len(failed))
        return BulkVerificationResult(succeeded=tuple(succeeded), failed=tuple(failed))

    def history(self, document_id: str) -> List[VerificationRecord]:
        return self.documents.history(str(document_id))

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _run(
        self,
        document_id: str,
        verifier_id: Optional[str],
        notes: str,
        force_re_verify: bool,
        states: List[VerificationState],
    ) -> VerificationRecord:
        errors: Dict[str, str] = {}

        # RECEIVED
        doc = self.documents.get(document_id)
        if doc is None:
            raise NotFoundError(f"Document not found: {document_id}")
        if doc.status == DocumentStatus.VERIFIED and not force_re_verify:
            raise AlreadyVerifiedError(f"Document already verified: {document_id}")
        path = Path(doc.file_path)
        if not path.is_file():
            raise NotFoundError(f"Document file not found: {path}")
        integrity = self._check_integrity(path, errors)

        # EXTRACTING
        states.append(VerificationState.EXTRACTING)
        extraction = self._extract(doc, path)

        # ANALYZING
        states.append(VerificationState.ANALYZING)
        context = AnalysisContext(
            document_type=doc.declared_type,
            metadata=dict(doc.metadata or {}),
            catalog=self.catalog,
            reference_date=self.reference_date,
        )
        results = self._run_analyzers(extraction.text, context, errors)

        # AGGREGATING
        states.append(VerificationState.AGGREGATING)
        corrupted = bool(integrity and integrity.is_corrupted)
        score = self.aggregator.aggregate(extraction.confidence, results, file_corrupted=corrupted)
        flags = merge_flags(
            *(r.flags for r in results.values()),
            (FILE_CORRUPTED,) if corrupted else (),
        )

        # LEDGER_APPEND
        receipt = None
        if self.ledger_service is not None:
            states.append(VerificationState.LEDGER_APPEND)
            try:
                receipt = self.ledger_service.verify_on_ledger(
                    document_id, verifier_id, score.is_authentic, score.confidence,
                    timeout=self.mining_timeout,
                )
            except LedgerError as exc:
                errors["ledger"] = f"{type(exc).__name__}: {exc}"
                logger.warning("Ledger append failed for %s: %s", document_id, exc)
                flags = merge_flags(flags, (LEDGER_UNRECORDED,))

        # DONE
        states.append(VerificationState.DONE)
        record = VerificationRecord(
            document_id=document_id,
            is_authentic=score.is_authentic,
            confidence=score.confidence,
            flags=flags,
            analyzer_results=results,
            verifier_id=verifier_id,
            notes=notes or "",
            timestamp=self._clock().isoformat(),
            score=score,
            extraction=extraction,
            integrity=integrity,
            ledger_receipt=receipt,
            states=tuple(s.value for s in states),
            errors=errors,
        )
        self.documents.save_verification(record)
        logger.info(
            "Verified %s: confidence=%d authentic=%s flags=%s",
            document_id, record.confidence, record.is_authentic, ",".join(record.flags) or "-",
        )
        return record

    def _check_integrity(self, path: Path, errors: Dict[str, str]) -> Optional[IntegrityReport]:
        try:
            return self.integrity_checker(path)
        except FileNotFoundError as exc:
            raise NotFoundError(f"Document file not found: {path}") from exc
        except Exception as exc:
            errors["integrity"] = f"{type(exc).__name__}: {exc}"
            logger.warning("Integrity check failed for %s: %s", path, exc)
            return None

    def _extract(self, doc: DocumentRecord, path: Path) -> ExtractionResult:
        try:
            extraction = self.extractor.extract(path, guess_mime_type(path))
        except Exception as exc:
            raise ExtractionError(f"Text extraction failed: {type(exc).__name__}: {exc}") from exc
        if not extraction.success:
            raise ExtractionError(f"Text extraction failed: {extraction.error or 'unknown error'}")
        return extraction

    def _run_analyzers(
        self,
        text: str,
        context: AnalysisContext,
        errors: Dict[str, str],
    ) -> Dict[str, AnalysisResult]:
        if not self.analyzers:
            return {}
        workers = min(self.max_workers, len(self.analyzers))
        results: Dict[str, AnalysisResult] = {}
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="analyzer") as pool:
            futures = {
                name: pool.submit(_call_analyzer, name, fn, text, context)
                for name, fn in self.analyzers.items()
            }
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except AnalyzerFailure as exc:
                    errors[name] = exc.message
                    logger.warning("Analyzer %s failed: %s", name, exc.message)
                    results[name] = AnalysisResult.failed(name, exc.message)
        return results
