"""TokenState — the spendable state a token is currently locked in."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .chain import derive_next_state_hash, derive_state_id
from .crypto import from_hex, to_hex
from .predicate import LockingCondition, condition_from_dict, condition_to_dict

if TYPE_CHECKING:
    from .transaction import TransactionData


@dataclass(frozen=True)
class TokenState:
    """A locking condition bound to a position in the state hash chain."""

    locking_condition: LockingCondition
    state_hash: bytes
    auxiliary_data: bytes | None = None

    @property
    def state_id(self) -> bytes:
        return derive_state_id(self.locking_condition, self.state_hash)

    def advance(self, data: "TransactionData") -> "TokenState":
        """The state that results from spending this one with ``data``."""
        return TokenState(
            locking_condition=data.recipient_condition,
            state_hash=derive_next_state_hash(self.state_hash, data.blinding_mask),
            auxiliary_data=data.recipient_auxiliary_data,
        )

    def assign(self, data: "TransactionData") -> "TokenState":
        """The first owned state of a token minted with ``data``.

        Genesis hands the anchor hash to the recipient without applying the
        blinding mask. The StateId still changes with the condition.
        """
        return TokenState(
            locking_condition=data.recipient_condition,
            state_hash=self.state_hash,
            auxiliary_data=data.recipient_auxiliary_data,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "locking_condition": condition_to_dict(self.locking_condition),
            "state_hash": self.state_hash.hex(),
            "auxiliary_data": to_hex(self.auxiliary_data),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenState":
        return cls(
            locking_condition=condition_from_dict(data["locking_condition"]),
            state_hash=bytes.fromhex(data["state_hash"]),
            auxiliary_data=from_hex(data.get("auxiliary_data")),
        )
