"""
Ledger: append-only, hash-chained sequence of blocks.

Concurrency model
-----------------
* Writers are serialized by one lock held from reading the tail hash to
  publishing the new block, so no other append can interleave between the
  two.  The nonce search runs inside that window.
* The chain is an immutable tuple that is swapped, never mutated.  Readers
  take the current tuple without locking and therefore always see whole
  blocks only.

Chain invariant: for every ``i > 0``, ``blocks[i].previous_hash ==
blocks[i-1].hash`` and ``blocks[i].hash`` recomputes from its contents.  The
genesis block is exempt from validation.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .block import Block, calculate_hash, genesis_block
from .errors import ChainIntegrityViolation, LedgerAppendError
from .sealing import ProofOfWorkSealer, SealingStrategy
from .transactions import (
    DocumentRegistered,
    DocumentVerified,
    Transaction,
    thaw_metadata,
    transaction_from_dict,
)

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Query results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RegistrationInfo:
    block_index: int
    block_hash: str
    timestamp: int
    document_id: str
    issuer_id: Optional[str]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "found": True,
            "blockIndex": self.block_index,
            "blockHash": self.block_hash,
            "timestamp": self.timestamp,
            "documentId": self.document_id,
            "issuerId": self.issuer_id,
            "metadata": thaw_metadata(self.metadata),
        }


@dataclass(frozen=True)
class VerificationEvent:
    block_index: int
    block_hash: str
    verifier_id: Optional[str]
    is_authentic: bool
    confidence: int
    timestamp: int
    verification_hash: str

    def to_dict(self) -> dict:
        return {
            "blockIndex": self.block_index,
            "blockHash": self.block_hash,
            "verifierId": self.verifier_id,
            "isAuthentic": self.is_authentic,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
            "verificationHash": self.verification_hash,
        }


@dataclass(frozen=True)
class ChainValidation:
    valid: bool
    failure_block_index: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        out: Dict[str, Any] = {"valid": self.valid}
        if not self.valid:
            out["failureBlockIndex"] = self.failure_block_index
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class LedgerStats:
    total_blocks: int
    total_transactions: int
    registrations: int
    verifications: int
    chain_valid: bool

    def to_dict(self) -> dict:
        return {
            "totalBlocks": self.total_blocks,
            "totalTransactions": self.total_transactions,
            "documentUploads": self.registrations,
            "verifications": self.verifications,
            "chainValid": self.chain_valid,
        }


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class Ledger:
    """
    Single-writer audit chain.

    Args:
        sealer: nonce strategy (default: proof of work, difficulty 2)
        clock: returns the current time in epoch milliseconds
        mining_timeout: default per-append sealing budget in seconds
    """

    def __init__(
        self,
        sealer: Optional[SealingStrategy] = None,
        clock: Optional[Callable[[], int]] = None,
        mining_timeout: Optional[float] = None,
    ):
        self.sealer = sealer or ProofOfWorkSealer(difficulty=2)
        self.mining_timeout = mining_timeout
        self._clock = clock or _now_ms
        self._write_lock = threading.Lock()
        self._blocks: Tuple[Block, ...] = (genesis_block(self._clock()),)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def blocks(self) -> Tuple[Block, ...]:
        """Snapshot of the chain at the time of the call."""
        return self._blocks

    @property
    def tail(self) -> Block:
        return self._blocks[-1]

    def __len__(self) -> int:
        return len(self._blocks)

    def now(self) -> int:
        """Current time on the ledger clock, epoch milliseconds."""
        return self._clock()

    # ------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------

    def append(
        self,
        transactions: Sequence[Transaction],
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Block:
        """Seal *transactions* into a new block and publish it.

        Raises:
            ValueError: if *transactions* is empty.
            LedgerAppendError: if sealing fails, times out or is cancelled.
        """
        txs = tuple(transactions)
        if not txs:
            raise ValueError("a block needs at least one transaction")
        if timeout is None:
            timeout = self.mining_timeout

        with self._write_lock:
            previous = self._blocks[-1]
            timestamp = self._clock()
            try:
                nonce, block_hash = self.sealer.seal(
                    timestamp, txs, previous.hash, timeout=timeout, cancel=cancel,
                )
            except LedgerAppendError:
                raise
            except Exception as exc:
                raise LedgerAppendError(f"{type(exc).__name__}: {exc}") from exc

            block = Block(
                index=previous.index + 1,
                timestamp=timestamp,
                transactions=txs,
                previous_hash=previous.hash,
                nonce=nonce,
                hash=block_hash,
            )
            self._blocks = self._blocks + (block,)

        logger.info("Block mined: index=%d hash=%s nonce=%d", block.index, block.hash, nonce)
        return block

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_content_hash(self, content_hash: str) -> Optional[RegistrationInfo]:
        """First registration of *content_hash* in chain order, or None."""
        for block in self._blocks[1:]:
            for tx in block.transactions:
                if isinstance(tx, DocumentRegistered) and tx.content_hash == content_hash:
                    return RegistrationInfo(
                        block_index=block.index,
                        block_hash=block.hash,
                        timestamp=tx.timestamp,
                        document_id=tx.document_id,
                        issuer_id=tx.issuer_id,
                        metadata=thaw_metadata(tx.metadata),
                    )
        return None

    def history_for(self, document_id: str) -> List[VerificationEvent]:
        """Verification events of *document_id*, oldest first."""
        events: List[VerificationEvent] = []
        for block in self._blocks[1:]:
            for tx in block.transactions:
                if isinstance(tx, DocumentVerified) and tx.document_id == document_id:
                    events.append(VerificationEvent(
                        block_index=block.index,
                        block_hash=block.hash,
                        verifier_id=tx.verifier_id,
                        is_authentic=tx.is_authentic,
                        confidence=tx.confidence,
                        timestamp=tx.timestamp,
                        verification_hash=tx.verification_hash,
                    ))
        return events

    def validate(self) -> ChainValidation:
        """Recompute every non-genesis hash and check the links.

        Returns the first failing block index; never raises.
        """
        return _validate_blocks(self._blocks)

    def stats(self) -> LedgerStats:
        blocks = self._blocks
        registrations = verifications = total = 0
        for block in blocks:
            total += len(block.transactions)
            for tx in block.transactions:
                if isinstance(tx, DocumentRegistered):
                    registrations += 1
                elif isinstance(tx, DocumentVerified):
                    verifications += 1
        return LedgerStats(
            total_blocks=len(blocks),
            total_transactions=total,
            registrations=registrations,
            verifications=verifications,
            chain_valid=_validate_blocks(blocks).valid,
        )

    # ------------------------------------------------------------------
    # Export / restore
    # ------------------------------------------------------------------

    def export(self) -> List[dict]:
        return [b.to_dict() for b in self._blocks]

    @classmethod
    def restore(
        cls,
        blocks: Iterable[Mapping[str, Any]],
        sealer: Optional[SealingStrategy] = None,
        clock: Optional[Callable[[], int]] = None,
        mining_timeout: Optional[float] = None,
    ) -> "Ledger":
        """Rebuild a ledger from :meth:`export` output.

        Raises:
            ChainIntegrityViolation: if the restored chain does not validate, or a
                non-genesis block hash does not satisfy *sealer*.
        """
        restored = tuple(
            Block(
                index=int(raw["index"]),
                timestamp=int(raw["timestamp"]),
                transactions=tuple(transaction_from_dict(t) for t in raw.get("transactions") or ()),
                previous_hash=str(raw["previousHash"]),
                nonce=int(raw["nonce"]),
                hash=str(raw["hash"]),
            )
            for raw in blocks
        )
        if not restored:
            raise ChainIntegrityViolation("cannot restore an empty chain", block_index=0)

        result = _validate_blocks(restored)
        if not result.valid:
            raise ChainIntegrityViolation(result.error or "invalid chain", result.failure_block_index)

        ledger = cls(sealer=sealer, clock=clock, mining_timeout=mining_timeout)
        # a re-hashed chain links and recomputes fine; only the seal shows the work
        for block in restored[1:]:
            if not ledger.sealer.is_sealed(block.hash):
                raise ChainIntegrityViolation(
                    f"Block {block.index} is not sealed for {ledger.sealer.name}", block.index,
                )
        ledger._blocks = restored
        return ledger


def _validate_blocks(blocks: Sequence[Block]) -> ChainValidation:
    for i in range(1, len(blocks)):
        current = blocks[i]
        previous = blocks[i - 1]

        expected = calculate_hash(
            current.timestamp, current.transactions, current.previous_hash, current.nonce,
        )
        if current.hash != expected:
            return ChainValidation(False, i, f"Invalid hash at block {i}")

        if current.previous_hash != previous.hash:
            return ChainValidation(False, i, f"Invalid previous hash at block {i}")

    return ChainValidation(True)
