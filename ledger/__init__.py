"""
ledger: Append-only, hash-chained audit trail of document events.

Modules
-------
transactions  DocumentRegistered / DocumentVerified and their wire encoding.
block         Block dataclass, canonical encoding and hash function.
sealing       Nonce strategies (proof of work, trivial).
chain         The Ledger itself: append, queries, validation, export.
service       LedgerService facade returning API-shaped dicts and receipts.
errors        LedgerError hierarchy.

Usage
-----
    from ledger import Ledger, LedgerService, ProofOfWorkSealer

    service = LedgerService(Ledger(sealer=ProofOfWorkSealer(difficulty=2)))
    receipt = service.register_document("doc-1", content_hash, issuer_id="u1")
    service.lookup(content_hash)
"""

from .block import SERIALIZATION_VERSION, Block, calculate_hash, genesis_block
from .chain import (
    ChainValidation,
    Ledger,
    LedgerStats,
    RegistrationInfo,
    VerificationEvent,
)
from .errors import (
    ChainIntegrityViolation,
    LedgerAppendError,
    LedgerError,
    SealingTimeout,
)
from .sealing import ProofOfWorkSealer, SealingStrategy, TrivialSealer, build_sealer
from .service import LedgerService, RegistrationReceipt, VerificationReceipt
from .transactions import (
    DocumentRegistered,
    DocumentVerified,
    Transaction,
    verification_hash,
)

__all__ = [
    "SERIALIZATION_VERSION",
    "Block",
    "ChainIntegrityViolation",
    "ChainValidation",
    "DocumentRegistered",
    "DocumentVerified",
    "Ledger",
    "LedgerAppendError",
    "LedgerError",
    "LedgerService",
    "LedgerStats",
    "ProofOfWorkSealer",
    "RegistrationInfo",
    "RegistrationReceipt",
    "SealingStrategy",
    "SealingTimeout",
    "Transaction",
    "TrivialSealer",
    "VerificationEvent",
    "VerificationReceipt",
    "build_sealer",
    "calculate_hash",
    "genesis_block",
    "verification_hash",
]
