"""Merkle tree over service records (StateId -> transaction hash).

Hashing uses domain separation:

  leaf = H(0x00 || state_id || transaction_hash)
  node = H(0x01 || left || right)

Leaves are ordered by StateId. On a level with an odd number of nodes the
last node is carried up unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .crypto import hash_bytes

LEFT = "left"
RIGHT = "right"


def leaf_hash(state_id: bytes, transaction_hash: bytes) -> bytes:
    return hash_bytes(b"\x00", state_id, transaction_hash)


def node_hash(left: bytes, right: bytes) -> bytes:
    return hash_bytes(b"\x01", left, right)


@dataclass(frozen=True)
class PathStep:
    side: str  # side of the sibling: "left" or "right"
    hash: bytes

    def to_dict(self) -> dict[str, Any]:
        return {"side": self.side, "hash": self.hash.hex()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PathStep":
        return cls(side=data["side"], hash=bytes.fromhex(data["hash"]))


def _next_level(level: list[bytes]) -> list[bytes]:
    nxt = [node_hash(level[i], level[i + 1]) for i in range(0, len(level) - 1, 2)]
    if len(level) % 2 == 1:
        nxt.append(level[-1])
    return nxt


def merkle_root(leaves: list[bytes]) -> bytes:
    """Root of a list of leaf hashes. The empty tree has root H(0x00)."""
    if not leaves:
        return hash_bytes(b"\x00")
    level = list(leaves)
    while len(level) > 1:
        level = _next_level(level)
    return level[0]


def merkle_path(leaves: list[bytes], index: int) -> tuple[PathStep, ...]:
    """Sibling path from ``leaves[index]`` up to the root."""
    if index < 0 or index >= len(leaves):
        raise ValueError("leaf index out of range")

    level = list(leaves)
    pos = index
    path: list[PathStep] = []
    while len(level) > 1:
        sibling = pos ^ 1
        if sibling < len(level):
            side = LEFT if sibling < pos else RIGHT
            path.append(PathStep(side=side, hash=level[sibling]))
        level = _next_level(level)
        pos //= 2
    return tuple(path)


def root_from_path(leaf: bytes, path: tuple[PathStep, ...]) -> bytes | None:
    """Fold a path onto a leaf. Returns None for a malformed path."""
    cur = leaf
    for step in path:
        if step.side == LEFT:
            cur = node_hash(step.hash, cur)
        elif step.side == RIGHT:
            cur = node_hash(cur, step.hash)
        else:
            return None
    return cur
