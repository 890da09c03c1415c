"""Unicity Service contract — commitment submission and inclusion proofs.

The service keeps one append-only map, StateId -> transaction hash, with at
most one entry per StateId. That uniqueness is what prevents double
spending. It is a trust assumption of the core: proofs show that a
registration happened, they cannot show that no other registration for the
same StateId exists.

Proofs are self-contained: a Merkle path from the registration leaf to a
round root, and a certificate over that root signed by the service key.
Anyone holding the service public key can check them offline.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from .chain import derive_state_id
from .crypto import hash_bytes
from .errors import ErrorCode
from .merkle import PathStep, leaf_hash, merkle_path, merkle_root, root_from_path
from .predicate import (
    LockingCondition,
    Witness,
    condition_from_dict,
    condition_to_dict,
    evaluate,
    fingerprint,
)
from .signature import generate_keypair, public_key_for, sign_message, verify_signature

logger = logging.getLogger(__name__)


def transaction_message(state_hash: bytes, transaction_hash: bytes) -> bytes:
    """H(state_hash || transaction_hash), the message a witness signs."""
    return hash_bytes(state_hash, transaction_hash)


@dataclass(frozen=True)
class RoundCertificate:
    """Service signature over the Merkle root of one round."""

    round_number: int
    root: bytes
    timestamp: int
    signature: bytes = b""

    @property
    def signing_payload(self) -> bytes:
        return hash_bytes(
            self.root,
            self.round_number.to_bytes(8, "big"),
            self.timestamp.to_bytes(8, "big"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "round_number": self.round_number,
            "root": self.root.hex(),
            "timestamp": self.timestamp,
            "signature": self.signature.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RoundCertificate":
        return cls(
            round_number=data["round_number"],
            root=bytes.fromhex(data["root"]),
            timestamp=data["timestamp"],
            signature=bytes.fromhex(data["signature"]),
        )


@dataclass(frozen=True)
class InclusionProof:
    path: tuple[PathStep, ...]
    certificate: RoundCertificate

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": [step.to_dict() for step in self.path],
            "certificate": self.certificate.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InclusionProof":
        return cls(
            path=tuple(PathStep.from_dict(s) for s in data.get("path", [])),
            certificate=RoundCertificate.from_dict(data["certificate"]),
        )


@dataclass(frozen=True)
class SubmitRequest:
    condition: LockingCondition
    current_state_hash: bytes
    transaction_hash: bytes
    witness: Witness

    @property
    def state_id(self) -> bytes:
        return derive_state_id(self.condition, self.current_state_hash)

    def to_dict(self) -> dict[str, Any]:
        """Wire form of the request."""
        return {
            "lockingConditionFingerprint": fingerprint(self.condition).hex(),
            "lockingCondition": condition_to_dict(self.condition),
            "currentStateHash": self.current_state_hash.hex(),
            "transactionHash": self.transaction_hash.hex(),
            "witness": self.witness.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubmitRequest":
        return cls(
            condition=condition_from_dict(data["lockingCondition"]),
            current_state_hash=bytes.fromhex(data["currentStateHash"]),
            transaction_hash=bytes.fromhex(data["transactionHash"]),
            witness=Witness.from_dict(data["witness"]),
        )


@dataclass(frozen=True)
class SubmitResponse:
    accepted: bool
    inclusion_proof: InclusionProof | None = None
    error: ErrorCode | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.accepted,
            "inclusionProof": self.inclusion_proof.to_dict() if self.inclusion_proof else None,
            "error": self.error.value if self.error is not None else None,
        }


class UnicityService(ABC):
    """The two operations the core may perform against the service."""

    @abstractmethod
    def submit_request(self, request: SubmitRequest) -> SubmitResponse:
        """Register StateId -> transaction hash exactly once."""

    @abstractmethod
    def get_inclusion_proof(self, state_id: bytes) -> InclusionProof | None:
        """Proof for a registered StateId, or None if it is unspent."""


class ProofVerifier:
    """Offline inclusion-proof checks against a trusted service key."""

    def __init__(self, trust_key: bytes) -> None:
        self.trust_key = trust_key

    def verify_inclusion_proof(
        self,
        state_id: bytes,
        transaction_hash: bytes,
        proof: InclusionProof | None,
    ) -> bool:
        if proof is None:
            return False
        root = root_from_path(leaf_hash(state_id, transaction_hash), proof.path)
        if root is None or root != proof.certificate.root:
            return False
        certificate = proof.certificate
        return verify_signature(self.trust_key, certificate.signing_payload, certificate.signature)

    @staticmethod
    def extract_time(proof: InclusionProof | None) -> int:
        """Registration time carried by the proof (0 when absent)."""
        if proof is None:
            return 0
        return proof.certificate.timestamp


class LocalUnicityService(UnicityService):
    """In-process model of the Unicity Service.

    Every accepted commitment closes a round: the records are re-rooted and
    the new root is certified with the service key. A proof is always issued
    against the round that registered the StateId, so its timestamp is the
    registration time no matter when the proof is queried.
    """

    def __init__(
        self,
        private_key: bytes | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if private_key is None:
            private_key, _ = generate_keypair()
        self._private_key = private_key
        self.public_key = public_key_for(private_key)
        self._clock = clock or (lambda: int(time.time()))
        # state_id -> (transaction hash, registering round)
        self._records: dict[bytes, tuple[bytes, int]] = {}
        self._certificates: dict[int, RoundCertificate] = {}
        self._lock = threading.Lock()
        self._certificate = self._certify(0, merkle_root([]))

    @property
    def round_number(self) -> int:
        return self._certificate.round_number

    def __len__(self) -> int:
        return len(self._records)

    def verifier(self) -> ProofVerifier:
        return ProofVerifier(self.public_key)

    def _certify(self, round_number: int, root: bytes) -> RoundCertificate:
        unsigned = RoundCertificate(round_number=round_number, root=root, timestamp=self._clock())
        signature = sign_message(self._private_key, unsigned.signing_payload)
        certificate = RoundCertificate(
            round_number=unsigned.round_number,
            root=unsigned.root,
            timestamp=unsigned.timestamp,
            signature=signature,
        )
        self._certificates[round_number] = certificate
        return certificate

    def _leaves(self, round_number: int) -> tuple[list[bytes], list[bytes]]:
        """Sorted StateIds and leaves of the tree certified in ``round_number``."""
        state_ids = sorted(
            s for s, (_, registered) in self._records.items() if registered <= round_number
        )
        return state_ids, [leaf_hash(s, self._records[s][0]) for s in state_ids]

    def _proof_for(self, state_id: bytes) -> InclusionProof:
        round_number = self._records[state_id][1]
        state_ids, leaves = self._leaves(round_number)
        path = merkle_path(leaves, state_ids.index(state_id))
        return InclusionProof(path=path, certificate=self._certificates[round_number])

    def submit_request(self, request: SubmitRequest) -> SubmitResponse:
        state_id = request.state_id
        with self._lock:
            if state_id in self._records:
                logger.warning("Rejected double spend of state %s", state_id.hex()[:16])
                return SubmitResponse(accepted=False, error=ErrorCode.DOUBLE_SPEND)

            message = transaction_message(request.current_state_hash, request.transaction_hash)
            if not evaluate(request.condition, self._clock(), message, request.witness):
                logger.warning("Rejected unsatisfied condition for state %s", state_id.hex()[:16])
                return SubmitResponse(accepted=False, error=ErrorCode.CONDITION_UNSATISFIED)

            round_number = self.round_number + 1
            self._records[state_id] = (request.transaction_hash, round_number)
            _, leaves = self._leaves(round_number)
            self._certificate = self._certify(round_number, merkle_root(leaves))
            logger.info("Registered state %s in round %d", state_id.hex()[:16], round_number)
            return SubmitResponse(accepted=True, inclusion_proof=self._proof_for(state_id))

    def get_inclusion_proof(self, state_id: bytes) -> InclusionProof | None:
        with self._lock:
            if state_id not in self._records:
                return None
            return self._proof_for(state_id)


def submit_with_timeout(
    service: UnicityService,
    request: SubmitRequest,
    timeout: float | None,
) -> SubmitResponse:
    """Submit a request, reporting a TIMEOUT rejection if it takes too long.

    No retry is attempted.
    """
    if timeout is None:
        return service.submit_request(request)

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    try:
        future = executor.submit(service.submit_request, request)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.warning("Submission timed out after %.2fs", timeout)
            return SubmitResponse(accepted=False, error=ErrorCode.TIMEOUT)
    finally:
        executor.shutdown(wait=False)
