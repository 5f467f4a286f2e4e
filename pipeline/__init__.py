from .config import VerificationSettings, build_ledger, load_settings
from .documents import DocumentRecord, DocumentStatus, DocumentStore, InMemoryDocumentStore
from .errors import (
    AlreadyVerifiedError,
    AnalyzerFailure,
    ExtractionError,
    NotFoundError,
    VerificationError,
)
from .extraction import ExtractionResult, OcrTextExtractor, TextExtractor, guess_mime_type
from .integrity import IntegrityReport, check_integrity, compute_file_hash
from .orchestrator import VerificationOrchestrator, VerificationState
from .records import BulkVerificationResult, VerificationRecord

__all__ = [
    "AlreadyVerifiedError",
    "AnalyzerFailure",
    "BulkVerificationResult",
    "DocumentRecord",
    "DocumentStatus",
    "DocumentStore",
    "ExtractionError",
    "ExtractionResult",
    "InMemoryDocumentStore",
    "IntegrityReport",
    "NotFoundError",
    "OcrTextExtractor",
    "TextExtractor",
    "VerificationError",
    "VerificationOrchestrator",
    "VerificationRecord",
    "VerificationSettings",
    "VerificationState",
    "build_ledger",
    "check_integrity",
    "compute_file_hash",
    "guess_mime_type",
    "load_settings",
]
