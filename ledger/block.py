"""
Block structure and hashing.

A block hash is

    sha256( str(timestamp) + canonical(transactions) + previous_hash + str(nonce) )

where ``canonical`` is the JSON encoding of the transaction list with sorted
keys and compact separators.  Changing the encoding invalidates every
existing block hash, so it is pinned by :data:`SERIALIZATION_VERSION`.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Sequence, Tuple

from .transactions import Transaction, transaction_to_dict

SERIALIZATION_VERSION = 1
GENESIS_PREVIOUS_HASH = "0"


def canonical_transactions(transactions: Sequence[Transaction]) -> str:
    # metadata is JSON-native by construction, so no default= fallback
    return json.dumps(
        [transaction_to_dict(tx) for tx in transactions],
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def hash_encoded(timestamp: int, encoded_transactions: str, previous_hash: str, nonce: int) -> str:
    """Block hash from an already canonicalised transaction list."""
    payload = f"{timestamp}{encoded_transactions}{previous_hash}{nonce}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def calculate_hash(
    timestamp: int,
    transactions: Sequence[Transaction],
    previous_hash: str,
    nonce: int,
) -> str:
    return hash_encoded(timestamp, canonical_transactions(transactions), previous_hash, nonce)


@dataclass(frozen=True)
class Block:
    """One sealed group of transactions."""

    index: int
    timestamp: int                          # epoch milliseconds
    transactions: Tuple[Transaction, ...]
    previous_hash: str
    nonce: int
    hash: str

    def recompute_hash(self) -> str:
        return calculate_hash(self.timestamp, self.transactions, self.previous_hash, self.nonce)

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "transactions": [transaction_to_dict(tx) for tx in self.transactions],
            "previousHash": self.previous_hash,
            "nonce": self.nonce,
            "hash": self.hash,
        }


def genesis_block(timestamp: int) -> Block:
    """The fixed first block: no transactions, previous hash "0", nonce 0."""
    return Block(
        index=0,
        timestamp=timestamp,
        transactions=(),
        previous_hash=GENESIS_PREVIOUS_HASH,
        nonce=0,
        hash=calculate_hash(timestamp, (), GENESIS_PREVIOUS_HASH, 0),
    )
