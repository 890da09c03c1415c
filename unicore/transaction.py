"""Transactions and certified transactions — the units of token history."""

from __future__ import annotations

import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .crypto import from_hex, hash_record, to_hex
from .predicate import LockingCondition, Witness, condition_from_dict, condition_to_dict
from .unicity import InclusionProof, transaction_message

MIN_BLINDING_MASK_SIZE = 16


def new_blinding_mask() -> bytes:
    """Fresh 256-bit blinding mask. Drawn by the recipient, never reused."""
    return secrets.token_bytes(32)


@dataclass(frozen=True)
class MintData:
    """Genesis parameters of a token.

    ``coin_data`` may be given as a mapping; it is stored as a tuple of
    ``(coin_id, amount)`` pairs sorted by coin id so the record stays hashable.
    """

    token_id: bytes
    token_type: bytes
    token_data: bytes = b""
    coin_data: tuple[tuple[str, int], ...] | None = None
    reason: bytes | None = None

    def __post_init__(self) -> None:
        if self.coin_data is None:
            return
        items = self.coin_data.items() if isinstance(self.coin_data, Mapping) else self.coin_data
        coins = tuple(sorted((str(coin_id), int(amount)) for coin_id, amount in items))
        for coin_id, amount in coins:
            if amount < 0:
                raise ValueError(f"Coin amount must be non-negative, got {amount} for {coin_id}")
        object.__setattr__(self, "coin_data", coins)

    def to_dict(self) -> dict[str, Any]:
        return {
            "token_id": self.token_id.hex(),
            "token_type": self.token_type.hex(),
            "token_data": self.token_data.hex(),
            "coin_data": dict(self.coin_data) if self.coin_data is not None else None,
            "reason": to_hex(self.reason),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MintData":
        return cls(
            token_id=bytes.fromhex(data["token_id"]),
            token_type=bytes.fromhex(data["token_type"]),
            token_data=bytes.fromhex(data.get("token_data", "")),
            coin_data=data.get("coin_data"),
            reason=from_hex(data.get("reason")),
        )


@dataclass(frozen=True)
class TransactionData:
    """What the spender commits to: the next owner and the chain step."""

    recipient_condition: LockingCondition
    blinding_mask: bytes
    recipient_auxiliary_data: bytes | None = None
    mint_data: MintData | None = None

    def __post_init__(self) -> None:
        if len(self.blinding_mask) < MIN_BLINDING_MASK_SIZE:
            raise ValueError(
                f"Blinding mask must be at least {MIN_BLINDING_MASK_SIZE} bytes, "
                f"got {len(self.blinding_mask)}"
            )

    @property
    def hash(self) -> bytes:
        """H(encode(data))."""
        return hash_record(self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipient_condition": condition_to_dict(self.recipient_condition),
            "blinding_mask": self.blinding_mask.hex(),
            "recipient_auxiliary_data": to_hex(self.recipient_auxiliary_data),
            "mint_data": self.mint_data.to_dict() if self.mint_data is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionData":
        mint = data.get("mint_data")
        return cls(
            recipient_condition=condition_from_dict(data["recipient_condition"]),
            blinding_mask=bytes.fromhex(data["blinding_mask"]),
            recipient_auxiliary_data=from_hex(data.get("recipient_auxiliary_data")),
            mint_data=MintData.from_dict(mint) if mint is not None else None,
        )


@dataclass(frozen=True)
class Transaction:
    current_state_hash: bytes
    data: TransactionData

    @property
    def hash(self) -> bytes:
        return self.data.hash

    @property
    def message(self) -> bytes:
        """The message a witness must sign for this transaction."""
        return transaction_message(self.current_state_hash, self.hash)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_state_hash": self.current_state_hash.hex(),
            "data": self.data.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        return cls(
            current_state_hash=bytes.fromhex(data["current_state_hash"]),
            data=TransactionData.from_dict(data["data"]),
        )


@dataclass(frozen=True)
class CertifiedTransaction:
    """A transaction made authoritative by a service inclusion proof."""

    transaction: Transaction
    witness: Witness
    transaction_hash: bytes
    inclusion_proof: InclusionProof | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction": self.transaction.to_dict(),
            "witness": self.witness.to_dict(),
            "transaction_hash": self.transaction_hash.hex(),
            "inclusion_proof": self.inclusion_proof.to_dict() if self.inclusion_proof else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CertifiedTransaction":
        proof = data.get("inclusion_proof")
        return cls(
            transaction=Transaction.from_dict(data["transaction"]),
            witness=Witness.from_dict(data["witness"]),
            transaction_hash=bytes.fromhex(data["transaction_hash"]),
            inclusion_proof=InclusionProof.from_dict(proof) if proof is not None else None,
        )
