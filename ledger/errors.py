"""Ledger exception hierarchy."""

from __future__ import annotations

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger errors."""


class LedgerAppendError(LedgerError):
    """Raised when a block could not be sealed or appended."""


class SealingTimeout(LedgerAppendError):
    """Raised when the nonce search exceeds its budget or is cancelled."""


class ChainIntegrityViolation(LedgerError):
    """Raised by strict chain validation when a block fails its checks."""

    def __init__(self, message: str, block_index: Optional[int] = None):
        super().__init__(message)
        self.block_index = block_index
