"""Tests for the VerificationOrchestrator."""

import itertools
import json
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from analyzers import AnalysisResult
from ledger import Ledger, LedgerAppendError, LedgerService, TrivialSealer
from pipeline import (
    AlreadyVerifiedError,
    DocumentRecord,
    DocumentStatus,
    ExtractionError,
    ExtractionResult,
    InMemoryDocumentStore,
    IntegrityReport,
    NotFoundError,
    VerificationOrchestrator,
    VerificationSettings,
)

SAMPLE_TEXT = "SAMPLE DOCUMENT Name: John Doe Date of Birth: 01/15/1995"


class FakeExtractor:
    """Reads the file as text and reports a fixed OCR confidence."""

    def __init__(self, confidence=100.0, fail=None):
        self.confidence = confidence
        self.fail = fail
        self.calls = 0

    def extract(self, file_path, mime_type=None):
        self.calls += 1
        if self.fail:
            return ExtractionResult.failure(self.fail)
        text = Path(file_path).read_text(encoding="utf-8")
        return ExtractionResult.from_text(text, self.confidence, engine="fake")


class FailingLedgerService:
    def verify_on_ledger(self, *args, **kwargs):
        raise LedgerAppendError("nonce search exceeded 0.010s")


def fixed(score, *flags):
    return lambda text, ctx: AnalysisResult(float(score), tuple(flags))


def perfect_analyzers():
    return {
        "structure": fixed(100),
        "content": fixed(100),
        "metadata": fixed(100),
        "fraud_patterns": fixed(0),
        "statistics": fixed(0),
    }


def make_service():
    counter = itertools.count(1_700_000_000_000)
    return LedgerService(Ledger(sealer=TrivialSealer(), clock=lambda: next(counter)))


def add_doc(store, tmp_path, doc_id, text="Name: Jane Smith", **kwargs):
    path = tmp_path / f"{doc_id}.txt"
    path.write_text(text, encoding="utf-8")
    return store.add(DocumentRecord(id=doc_id, file_path=path, **kwargs))


def make_orch(store, **kwargs):
    kwargs.setdefault("extractor", FakeExtractor())
    kwargs.setdefault("reference_date", date(2024, 6, 1))
    kwargs.setdefault("clock", lambda: datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))
    return VerificationOrchestrator(store, **kwargs)


# ---------------------------------------------------------------------------
# happy paths
# ---------------------------------------------------------------------------

def test_authentic_document_is_recorded(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")
    svc = make_service()
    orch = make_orch(store, ledger_service=svc, analyzers=perfect_analyzers())

    record = orch.verify("doc-1", verifier_id="u1", notes="first pass")

    assert record.confidence == 100
    assert record.is_authentic is True
    assert record.states == (
        "RECEIVED", "EXTRACTING", "ANALYZING", "AGGREGATING", "LEDGER_APPEND", "DONE",
    )
    assert record.ledger_receipt is not None
    assert record.timestamp == "2024-06-01T12:00:00+00:00"
    assert store.get("doc-1").status == DocumentStatus.VERIFIED
    assert store.get("doc-1").content_hash == record.integrity.content_hash

    events = svc.history("doc-1")["verifications"]
    assert len(events) == 1
    assert events[0]["confidence"] == 100
    assert events[0]["verifierId"] == "u1"


def test_sample_document_is_rejected_with_real_analyzers(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1", text=SAMPLE_TEXT, declared_type="academic_transcript")
    svc = make_service()
    orch = make_orch(store, extractor=FakeExtractor(confidence=85), ledger_service=svc)

    record = orch.verify("doc-1", verifier_id="u1")

    assert record.is_authentic is False
    assert record.confidence <= 22
    assert "COPY_WATERMARK" in record.flags
    assert "TEMPLATE_MISMATCH" in record.flags
    assert record.analyzer_results["structure"].sub_score == 20
    assert store.get("doc-1").status == DocumentStatus.REJECTED
    assert svc.history("doc-1")["verifications"][0]["isAuthentic"] is False


def test_flags_are_ordered_and_deduplicated(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")
    analyzers = perfect_analyzers()
    analyzers["structure"] = fixed(100, "A", "B")
    analyzers["content"] = fixed(100, "B", "C")
    record = make_orch(store, analyzers=analyzers).verify("doc-1")
    assert record.flags == ("A", "B", "C")


def test_verification_is_deterministic(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1", text=SAMPLE_TEXT, declared_type="academic_transcript")
    orch = make_orch(store)
    first = orch.verify("doc-1")
    second = orch.verify("doc-1", force_re_verify=True)
    assert (first.confidence, first.flags) == (second.confidence, second.flags)
    assert first.analyzer_results == second.analyzer_results


def test_without_ledger_service_skips_ledger_step(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")
    record = make_orch(store, analyzers=perfect_analyzers()).verify("doc-1")
    assert "LEDGER_APPEND" not in record.states
    assert record.ledger_receipt is None
    assert "LEDGER_UNRECORDED" not in record.flags


def test_record_is_json_serialisable(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1", text=SAMPLE_TEXT, declared_type="birth_certificate")
    record = make_orch(store, ledger_service=make_service()).verify("doc-1")
    data = json.loads(json.dumps(record.to_dict()))
    assert data["document_id"] == "doc-1"
    assert set(data["analyzer_results"]) == {
        "structure", "content", "metadata", "fraud_patterns", "statistics",
    }
    assert data["ledger"]["blockIndex"] == 1


# ---------------------------------------------------------------------------
# failures
# ---------------------------------------------------------------------------

def test_unknown_document_raises_not_found(tmp_path):
    orch = make_orch(InMemoryDocumentStore())
    with pytest.raises(NotFoundError):
        orch.verify("missing")


def test_missing_file_raises_not_found(tmp_path):
    store = InMemoryDocumentStore()
    store.add(DocumentRecord(id="doc-1", file_path=tmp_path / "gone.txt"))
    with pytest.raises(NotFoundError):
        make_orch(store).verify("doc-1")


def test_already_verified_requires_force(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")
    orch = make_orch(store, analyzers=perfect_analyzers())
    first = orch.verify("doc-1")

    with pytest.raises(AlreadyVerifiedError):
        orch.verify("doc-1")

    second = orch.verify("doc-1", force_re_verify=True)
    history = orch.history("doc-1")
    assert history == [first, second]


def test_rejected_document_can_be_verified_again(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")
    analyzers = perfect_analyzers()
    analyzers["fraud_patterns"] = fixed(80, "EDITING_TRACES")
    orch = make_orch(store, analyzers=analyzers)
    orch.verify("doc-1")
    assert store.get("doc-1").status == DocumentStatus.REJECTED
    orch.verify("doc-1")
    assert len(orch.history("doc-1")) == 2


def test_extraction_failure_aborts(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")
    svc = make_service()
    orch = make_orch(store, extractor=FakeExtractor(fail="PDF text extraction is not supported"), ledger_service=svc)

    with pytest.raises(ExtractionError, match="PDF"):
        orch.verify("doc-1")
    assert orch.history("doc-1") == []
    assert store.get("doc-1").status == DocumentStatus.PENDING
    assert len(svc.ledger) == 1


def test_raising_analyzer_becomes_zero_result(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")

    def broken(text, ctx):
        raise RuntimeError("boom")

    analyzers = perfect_analyzers()
    analyzers["metadata"] = broken
    record = make_orch(store, analyzers=analyzers).verify("doc-1")

    assert "ANALYZER_FAILED:metadata" in record.flags
    assert record.analyzer_results["metadata"].sub_score == 0
    assert record.errors["metadata"] == "RuntimeError: boom"
    # metadata weight is 0.1
    assert record.confidence == 90


def test_record_mappings_are_read_only(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")

    def broken(text, ctx):
        raise RuntimeError("boom")

    analyzers = perfect_analyzers()
    analyzers["content"] = broken
    record = make_orch(store, analyzers=analyzers).verify("doc-1")

    with pytest.raises(TypeError):
        record.errors["content"] = "rewritten"
    with pytest.raises(TypeError):
        record.analyzer_results["content"] = AnalysisResult(100.0)
    assert record.to_dict()["errors"] == {"content": "RuntimeError: boom"}
    assert store.history("doc-1")[0].errors["content"] == "RuntimeError: boom"


def test_ledger_failure_keeps_record(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")
    orch = make_orch(store, ledger_service=FailingLedgerService(), analyzers=perfect_analyzers())

    record = orch.verify("doc-1")

    assert record.confidence == 100
    assert record.is_authentic is True
    assert record.flags == ("LEDGER_UNRECORDED",)
    assert record.ledger_receipt is None
    assert "LedgerAppendError" in record.errors["ledger"]
    assert record.states[-1] == "DONE"
    assert orch.history("doc-1") == [record]


def test_corrupted_file_penalty(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")

    def corrupted(path):
        return IntegrityReport(file_size=10, is_corrupted=True, last_modified="2024-01-01T00:00:00+00:00")

    record = make_orch(store, analyzers=perfect_analyzers(), integrity_checker=corrupted).verify("doc-1")
    assert record.confidence == 50
    assert record.is_authentic is False
    assert "FILE_CORRUPTED" in record.flags


# ---------------------------------------------------------------------------
# bulk
# ---------------------------------------------------------------------------

def test_bulk_verify_partial_failure(tmp_path):
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")
    add_doc(store, tmp_path, "doc-2")
    orch = make_orch(store, analyzers=perfect_analyzers())
    orch.verify("doc-2")

    result = orch.bulk_verify(["doc-1", "missing", "doc-2"], verifier_id="u1")

    assert [r.document_id for r in result.succeeded] == ["doc-1", "doc-2"]
    assert len(result.failed) == 1
    failed = result.failed[0]
    assert failed["document_id"] == "missing"
    assert failed["is_authentic"] is False
    assert failed["confidence"] == 0
    assert "not found" in failed["error"]
    assert len(orch.history("doc-2")) == 2
    assert result.to_dict()["total"] == 3


def test_bulk_verify_limits(tmp_path):
    orch = make_orch(InMemoryDocumentStore(), bulk_limit=50)
    with pytest.raises(ValueError):
        orch.bulk_verify([])
    with pytest.raises(ValueError):
        orch.bulk_verify([f"doc-{i}" for i in range(51)])


def test_from_settings(tmp_path):
    settings = VerificationSettings(max_workers=2, bulk_limit=3, default_verifier_id="auditor")
    store = InMemoryDocumentStore()
    add_doc(store, tmp_path, "doc-1")
    orch = VerificationOrchestrator.from_settings(
        settings, store, extractor=FakeExtractor(), analyzers=perfect_analyzers(),
    )
    assert orch.max_workers == 2
    assert orch.bulk_limit == 3
    assert orch.verify("doc-1").verifier_id == "auditor"
