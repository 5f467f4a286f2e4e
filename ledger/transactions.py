"""
Ledger transactions: a tagged union of the two events the ledger records.

``DocumentRegistered`` is written when an issuer uploads a document;
``DocumentVerified`` when a verification run completes.  Both are frozen
dataclasses; once sealed into a block they must not change, because their
canonical encoding is part of the block hash.  Registration metadata is
therefore held as a deep read-only copy and must be JSON-native.

The ``TYPE`` tag of each variant is its wire name in the canonical
encoding and must never be renamed.
"""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


def freeze_metadata(value: Any, where: str = "metadata") -> Any:
    """Deep, read-only copy of JSON-native *value*.

    Mappings become ``MappingProxyType`` and lists become tuples.  Anything
    the canonical encoding cannot represent exactly (non-string keys, NaN,
    dates, custom objects) raises ValueError.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f"{where}: non-finite float is not allowed")
        return value
    if isinstance(value, Mapping):
        frozen = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise ValueError(f"{where}: keys must be strings, got {type(key).__name__}")
            frozen[key] = freeze_metadata(item, f"{where}.{key}")
        return MappingProxyType(frozen)
    if isinstance(value, (list, tuple)):
        return tuple(freeze_metadata(item, f"{where}[{i}]") for i, item in enumerate(value))
    raise ValueError(f"{where}: {type(value).__name__} is not JSON-native")


def thaw_metadata(value: Any) -> Any:
    """Plain, independently mutable copy of a frozen metadata value."""
    if isinstance(value, Mapping):
        return {key: thaw_metadata(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw_metadata(item) for item in value]
    return value


@dataclass(frozen=True)
class DocumentRegistered:
    TYPE = "DOCUMENT_UPLOAD"

    document_id: str
    content_hash: str
    issuer_id: Optional[str]
    recipient_id: Optional[str]
    timestamp: int                          # epoch milliseconds
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.metadata or {}, Mapping):
            raise ValueError("metadata must be a mapping")
        # the caller keeps no reference into what gets hashed
        object.__setattr__(self, "metadata", freeze_metadata(self.metadata or {}))

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "documentId": self.document_id,
            "documentHash": self.content_hash,
            "issuerId": self.issuer_id,
            "individualId": self.recipient_id,
            "timestamp": self.timestamp,
            "metadata": thaw_metadata(self.metadata),
        }


@dataclass(frozen=True)
class DocumentVerified:
    TYPE = "DOCUMENT_VERIFICATION"

    document_id: str
    verifier_id: Optional[str]
    is_authentic: bool
    confidence: int
    timestamp: int                          # epoch milliseconds
    verification_hash: str

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "documentId": self.document_id,
            "verifierId": self.verifier_id,
            "isAuthentic": self.is_authentic,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
            "verificationHash": self.verification_hash,
        }


Transaction = Union[DocumentRegistered, DocumentVerified]


def transaction_to_dict(tx: Transaction) -> dict:
    if isinstance(tx, (DocumentRegistered, DocumentVerified)):
        return tx.to_dict()
    raise TypeError(f"not a ledger transaction: {type(tx).__name__}")


def transaction_from_dict(data: Mapping[str, Any]) -> Transaction:
    """Inverse of :func:`transaction_to_dict`."""
    kind = data.get("type")
    if kind == DocumentRegistered.TYPE:
        return DocumentRegistered(
            document_id=data["documentId"],
            content_hash=data["documentHash"],
            issuer_id=data.get("issuerId"),
            recipient_id=data.get("individualId"),
            timestamp=int(data["timestamp"]),
            metadata=data.get("metadata") or {},
        )
    if kind == DocumentVerified.TYPE:
        return DocumentVerified(
            document_id=data["documentId"],
            verifier_id=data.get("verifierId"),
            is_authentic=bool(data["isAuthentic"]),
            confidence=int(data["confidence"]),
            timestamp=int(data["timestamp"]),
            verification_hash=data["verificationHash"],
        )
    raise ValueError(f"unknown transaction type: {kind!r}")


def verification_hash(
    document_id: str,
    verifier_id: Optional[str],
    is_authentic: bool,
    confidence: int,
) -> str:
    """SHA-256 fingerprint of a verification outcome."""
    payload = json.dumps(
        {
            "documentId": document_id,
            "verifierId": verifier_id,
            "isAuthentic": is_authentic,
            "confidence": confidence,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
