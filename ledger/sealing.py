"""
Sealing strategies: how a block's nonce is chosen.

The chain-linking invariant does not depend on the sealing cost, so the
strategy is pluggable:

* :class:`ProofOfWorkSealer` searches nonces from 0 upward until the hex
  hash starts with ``difficulty`` zeros.  The search is CPU-bound and
  unbounded in the worst case, so it honours a timeout and a cancel event.
* :class:`TrivialSealer` always uses nonce 0 (tests, low-latency paths).
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from .block import calculate_hash, canonical_transactions, hash_encoded
from .errors import SealingTimeout
from .transactions import Transaction

# Deadline/cancel are polled once per this many nonces.
_POLL_EVERY = 1024


class SealingStrategy(ABC):
    """Chooses the nonce (and thereby the hash) of a new block."""

    name: str = "abstract"

    @abstractmethod
    def seal(
        self,
        timestamp: int,
        transactions: Sequence[Transaction],
        previous_hash: str,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Tuple[int, str]:
        """Return ``(nonce, hash)`` for the block contents."""
        ...

    def is_sealed(self, block_hash: str) -> bool:
        return True


class TrivialSealer(SealingStrategy):
    name = "trivial"

    def seal(self, timestamp, transactions, previous_hash, timeout=None, cancel=None):
        return 0, calculate_hash(timestamp, transactions, previous_hash, 0)


class ProofOfWorkSealer(SealingStrategy):
    name = "proof_of_work"

    def __init__(self, difficulty: int = 2):
        if difficulty < 0:
            raise ValueError("difficulty must be >= 0")
        self.difficulty = difficulty
        self._target = "0" * difficulty

    def is_sealed(self, block_hash: str) -> bool:
        return block_hash.startswith(self._target)

    def seal(self, timestamp, transactions, previous_hash, timeout=None, cancel=None):
        deadline = time.monotonic() + timeout if timeout is not None else None
        encoded = canonical_transactions(transactions)
        nonce = 0
        while True:
            block_hash = hash_encoded(timestamp, encoded, previous_hash, nonce)
            if block_hash.startswith(self._target):
                return nonce, block_hash
            nonce += 1
            if nonce % _POLL_EVERY == 0:
                if cancel is not None and cancel.is_set():
                    raise SealingTimeout(f"nonce search cancelled after {nonce} attempts")
                if deadline is not None and time.monotonic() >= deadline:
                    raise SealingTimeout(
                        f"nonce search exceeded {timeout:.3f}s after {nonce} attempts "
                        f"(difficulty={self.difficulty})"
                    )


def build_sealer(kind: str = "proof_of_work", difficulty: int = 2) -> SealingStrategy:
    kind = (kind or "proof_of_work").strip().lower()
    if kind == ProofOfWorkSealer.name:
        return ProofOfWorkSealer(difficulty)
    if kind == TrivialSealer.name:
        return TrivialSealer()
    raise ValueError(f"Unsupported sealer: {kind!r}")
