"""State hash chain — state identifiers and the rolling state hash.

The fundamental rule: state_hash[N+1] == H(state_hash[N] || blinding_mask[N]).
The chain is anchored at H(token_id || MINT_SUFFIX).
"""

from __future__ import annotations

from typing import Iterable, Iterator

from .crypto import hash_bytes
from .predicate import LockingCondition, fingerprint

MINT_SUFFIX = b"MINT_SUFFIX"


def derive_state_id(condition: LockingCondition, state_hash: bytes) -> bytes:
    """H(fingerprint(condition) || state_hash), the key the service records."""
    return hash_bytes(fingerprint(condition), state_hash)


def derive_next_state_hash(state_hash: bytes, blinding_mask: bytes) -> bytes:
    return hash_bytes(state_hash, blinding_mask)


def derive_mint_state_hash(token_id: bytes) -> bytes:
    return hash_bytes(token_id, MINT_SUFFIX)


def replay_state_hashes(token_id: bytes, blinding_masks: Iterable[bytes]) -> Iterator[bytes]:
    """Yield the anchor hash followed by each state hash the masks produce."""
    state_hash = derive_mint_state_hash(token_id)
    yield state_hash
    for mask in blinding_masks:
        state_hash = derive_next_state_hash(state_hash, mask)
        yield state_hash
