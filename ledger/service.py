"""
LedgerService: the ledger operations exposed to the HTTP layer.

Each registration or verification is sealed into its own block straight
away.  Results are returned as plain dicts (camelCase keys, the shape the
API responses use), receipts as small dataclasses.
"""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .chain import Ledger
from .errors import ChainIntegrityViolation
from .transactions import DocumentRegistered, DocumentVerified, verification_hash


@dataclass(frozen=True)
class RegistrationReceipt:
    block_hash: str
    block_index: int
    transaction_id: str

    def to_dict(self) -> dict:
        return {
            "blockHash": self.block_hash,
            "blockIndex": self.block_index,
            "transactionId": self.transaction_id,
        }


@dataclass(frozen=True)
class VerificationReceipt:
    block_hash: str
    block_index: int
    verification_hash: str

    def to_dict(self) -> dict:
        return {
            "blockHash": self.block_hash,
            "blockIndex": self.block_index,
            "verificationHash": self.verification_hash,
        }


class LedgerService:
    """Facade over a :class:`Ledger` instance owned by the caller."""

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def register_document(
        self,
        document_id: str,
        content_hash: str,
        issuer_id: Optional[str] = None,
        recipient_id: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> RegistrationReceipt:
        tx = DocumentRegistered(
            document_id=str(document_id),
            content_hash=content_hash,
            issuer_id=issuer_id,
            recipient_id=recipient_id,
            timestamp=self.ledger.now(),
            metadata=metadata or {},
        )
        block = self.ledger.append([tx], timeout=timeout, cancel=cancel)
        return RegistrationReceipt(
            block_hash=block.hash,
            block_index=block.index,
            transaction_id=secrets.token_hex(16),
        )

    def verify_on_ledger(
        self,
        document_id: str,
        verifier_id: Optional[str],
        is_authentic: bool,
        confidence: int,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> VerificationReceipt:
        tx = DocumentVerified(
            document_id=str(document_id),
            verifier_id=verifier_id,
            is_authentic=bool(is_authentic),
            confidence=int(confidence),
            timestamp=self.ledger.now(),
            verification_hash=verification_hash(
                str(document_id), verifier_id, bool(is_authentic), int(confidence),
            ),
        )
        block = self.ledger.append([tx], timeout=timeout, cancel=cancel)
        return VerificationReceipt(
            block_hash=block.hash,
            block_index=block.index,
            verification_hash=tx.verification_hash,
        )

    def lookup(self, content_hash: str) -> Dict[str, Any]:
        info = self.ledger.find_by_content_hash(content_hash)
        if info is None:
            return {"found": False}
        return info.to_dict()

    def history(self, document_id: str) -> Dict[str, Any]:
        return {
            "documentId": str(document_id),
            "verifications": [e.to_dict() for e in self.ledger.history_for(str(document_id))],
        }

    def validate_chain(self, strict: bool = False) -> Dict[str, Any]:
        """Validate the whole chain.

        With ``strict=True`` a failing chain raises ChainIntegrityViolation
        instead of being reported.
        """
        result = self.ledger.validate()
        if strict and not result.valid:
            raise ChainIntegrityViolation(result.error or "invalid chain", result.failure_block_index)
        return result.to_dict()

    def stats(self) -> Dict[str, Any]:
        return self.ledger.stats().to_dict()
