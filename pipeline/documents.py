"""
Document records and the storage collaborator the orchestrator talks to.

The relational store of the web application is out of scope; the
orchestrator only needs ``get``, ``save_verification`` and ``history``.
:class:`InMemoryDocumentStore` implements them for the CLI and the tests.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Union

if TYPE_CHECKING:
    from .records import VerificationRecord


class DocumentStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


@dataclass(frozen=True)
class DocumentRecord:
    id: str
    file_path: Union[str, Path]
    declared_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    content_hash: Optional[str] = None
    status: DocumentStatus = DocumentStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "file_path": str(self.file_path),
            "declared_type": self.declared_type,
            "metadata": dict(self.metadata),
            "content_hash": self.content_hash,
            "status": self.status.value,
        }


class DocumentStore(Protocol):
    def get(self, document_id: str) -> Optional[DocumentRecord]: ...

    def save_verification(self, record: "VerificationRecord") -> None: ...

    def history(self, document_id: str) -> List["VerificationRecord"]: ...


class InMemoryDocumentStore:
    """Thread-safe dict-backed store.  Verification history is append-only."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: Dict[str, DocumentRecord] = {}
        self._history: Dict[str, List["VerificationRecord"]] = {}

    def add(self, document: DocumentRecord) -> DocumentRecord:
        with self._lock:
            self._documents[document.id] = document
            self._history.setdefault(document.id, [])
        return document

    def get(self, document_id: str) -> Optional[DocumentRecord]:
        return self._documents.get(str(document_id))

    def save_verification(self, record: "VerificationRecord") -> None:
        with self._lock:
            doc = self._documents.get(record.document_id)
            if doc is None:
                raise KeyError(record.document_id)
            status = DocumentStatus.VERIFIED if record.is_authentic else DocumentStatus.REJECTED
            content_hash = doc.content_hash
            if record.integrity is not None and record.integrity.content_hash:
                content_hash = record.integrity.content_hash
            self._documents[doc.id] = replace(doc, status=status, content_hash=content_hash)
            self._history.setdefault(doc.id, []).append(record)

    def history(self, document_id: str) -> List["VerificationRecord"]:
        with self._lock:
            return list(self._history.get(str(document_id), []))

    def __len__(self) -> int:
        return len(self._documents)
