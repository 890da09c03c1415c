"""Locking conditions — the spending rules that gate a token state.

A locking condition is one of a closed set of variants, each tagged by a
``ConditionKind``. Every variant has exactly one evaluation rule and one
fingerprint rule::

    KeyOwnership(public_key)        Verify(public_key, message, witness.signature)
    Multisig(public_keys, k)        at least k positional signatures verify
    Timelock(public_key, t)         time >= t and the signature verifies
    Burn(reason)                    never satisfied

Evaluation is a pure function of its arguments. It never raises for a
malformed witness; it returns False.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, ClassVar, Union

from .crypto import hash_bytes, hash_record
from .signature import public_key_for, verify_signature

MINTER_SECRET = b"UNICORE_MINTER_SECRET"


class ConditionKind(str, Enum):
    KEY = "key"
    MULTISIG = "multisig"
    TIMELOCK = "timelock"
    BURN = "burn"


@dataclass(frozen=True)
class Witness:
    """Data supplied by a spender to satisfy a locking condition."""

    signatures: tuple[bytes, ...] = ()

    @property
    def signature(self) -> bytes:
        return self.signatures[0] if self.signatures else b""

    def to_dict(self) -> dict[str, Any]:
        return {"signatures": [s.hex() for s in self.signatures]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Witness":
        return cls(signatures=tuple(bytes.fromhex(s) for s in data.get("signatures", [])))


class _Condition:
    kind: ClassVar[ConditionKind]

    def fingerprint(self) -> bytes:
        return fingerprint(self)

    def evaluate(
        self,
        witness: Witness,
        message: bytes,
        time: int,
        auxiliary_data: bytes | None = None,
    ) -> bool:
        return evaluate(self, time, message, witness, auxiliary_data)

    def to_dict(self) -> dict[str, Any]:
        return condition_to_dict(self)


@dataclass(frozen=True)
class KeyOwnership(_Condition):
    public_key: bytes

    kind: ClassVar[ConditionKind] = ConditionKind.KEY


@dataclass(frozen=True)
class Multisig(_Condition):
    public_keys: tuple[bytes, ...]
    threshold: int

    kind: ClassVar[ConditionKind] = ConditionKind.MULTISIG

    def __post_init__(self) -> None:
        if not 1 <= self.threshold <= len(self.public_keys):
            raise ValueError(
                f"Threshold must be between 1 and {len(self.public_keys)}, "
                f"got {self.threshold}"
            )
        if len(set(self.public_keys)) != len(self.public_keys):
            raise ValueError("Multisig public keys must be distinct")


@dataclass(frozen=True)
class Timelock(_Condition):
    public_key: bytes
    unlock_time: int

    kind: ClassVar[ConditionKind] = ConditionKind.TIMELOCK


@dataclass(frozen=True)
class Burn(_Condition):
    reason: bytes = b""

    kind: ClassVar[ConditionKind] = ConditionKind.BURN


LockingCondition = Union[KeyOwnership, Multisig, Timelock, Burn]


def _evaluate_key(condition, time, message, witness, auxiliary_data):
    return verify_signature(condition.public_key, message, witness.signature)


def _evaluate_multisig(condition, time, message, witness, auxiliary_data):
    if len(witness.signatures) != len(condition.public_keys):
        return False
    valid = sum(
        1
        for public_key, signature in zip(condition.public_keys, witness.signatures)
        if signature and verify_signature(public_key, message, signature)
    )
    return valid >= condition.threshold


def _evaluate_timelock(condition, time, message, witness, auxiliary_data):
    if time < condition.unlock_time:
        return False
    return verify_signature(condition.public_key, message, witness.signature)


def _evaluate_burn(condition, time, message, witness, auxiliary_data):
    return False


_EVALUATORS: dict[ConditionKind, Callable[..., bool]] = {
    ConditionKind.KEY: _evaluate_key,
    ConditionKind.MULTISIG: _evaluate_multisig,
    ConditionKind.TIMELOCK: _evaluate_timelock,
    ConditionKind.BURN: _evaluate_burn,
}


def evaluate(
    condition: LockingCondition,
    system_time: int,
    message: bytes,
    witness: Witness,
    auxiliary_data: bytes | None = None,
) -> bool:
    """Evaluate ``condition`` for ``witness`` over ``message`` at ``system_time``."""
    evaluator = _EVALUATORS.get(condition.kind)
    if evaluator is None:
        return False
    return evaluator(condition, system_time, message, witness, auxiliary_data)


def condition_to_dict(condition: LockingCondition) -> dict[str, Any]:
    """Serialize a condition to its tagged dictionary form."""
    if isinstance(condition, KeyOwnership):
        body: dict[str, Any] = {"public_key": condition.public_key.hex()}
    elif isinstance(condition, Multisig):
        body = {
            "public_keys": [k.hex() for k in condition.public_keys],
            "threshold": condition.threshold,
        }
    elif isinstance(condition, Timelock):
        body = {
            "public_key": condition.public_key.hex(),
            "unlock_time": condition.unlock_time,
        }
    elif isinstance(condition, Burn):
        body = {"reason": condition.reason.hex()}
    else:
        raise TypeError(f"Unknown locking condition: {type(condition).__name__}")
    return {"kind": condition.kind.value, **body}


def condition_from_dict(data: dict[str, Any]) -> LockingCondition:
    """Deserialize a condition from its tagged dictionary form."""
    kind = ConditionKind(data["kind"])
    if kind is ConditionKind.KEY:
        return KeyOwnership(public_key=bytes.fromhex(data["public_key"]))
    if kind is ConditionKind.MULTISIG:
        return Multisig(
            public_keys=tuple(bytes.fromhex(k) for k in data["public_keys"]),
            threshold=data["threshold"],
        )
    if kind is ConditionKind.TIMELOCK:
        return Timelock(
            public_key=bytes.fromhex(data["public_key"]),
            unlock_time=data["unlock_time"],
        )
    return Burn(reason=bytes.fromhex(data.get("reason", "")))


def fingerprint(condition: LockingCondition) -> bytes:
    """H(encode(condition)) — the condition's contribution to a StateId."""
    return hash_record(condition_to_dict(condition))


def minter_private_key() -> bytes:
    """The well-known signing key of the mint condition.

    It is public on purpose: re-minting is prevented by the one-time
    registration of the mint StateId, not by secrecy of this key.
    """
    return hash_bytes(MINTER_SECRET)


@lru_cache(maxsize=1)
def mint_condition() -> KeyOwnership:
    """The fixed, public condition every genesis transaction spends."""
    return KeyOwnership(public_key=public_key_for(minter_private_key()))
