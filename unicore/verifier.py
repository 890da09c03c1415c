"""Verification of certified transactions and full token histories.

A certified transaction is checked against the state it claims to spend:

    1. transaction.current_state_hash == expected.state_hash     STALE_STATE
    2. transaction_hash == H(encode(transaction.data))            HASH_MISMATCH
    3. condition satisfied by the witness at proof time          CONDITION_UNSATISFIED
    4. inclusion proof for (StateId, transaction_hash) is valid   PROOF_INVALID

A token is a strict chain of custody: genesis, then each history entry in
order, each checked against the state produced by the one before. The first
failing link rejects the token. Nothing here mutates its inputs, so the
same token always verifies the same way.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from .chain import derive_mint_state_hash
from .config import UnicoreConfig
from .errors import ErrorCode
from .predicate import evaluate, mint_condition
from .state import TokenState
from .token import Token
from .transaction import CertifiedTransaction, MintData
from .unicity import ProofVerifier, transaction_message

logger = logging.getLogger(__name__)

MintJustifier = Callable[[MintData], bool]


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a verification. Truthy only when valid.

    ``index`` is the position in ``token.history`` of the failing entry, or
    None when genesis (or a lone transaction) failed.
    """

    code: ErrorCode | None = None
    index: int | None = None
    cause: ErrorCode | None = None
    message: str = ""

    @property
    def valid(self) -> bool:
        return self.code is None

    def __bool__(self) -> bool:
        return self.valid

    @classmethod
    def ok(cls) -> "VerificationResult":
        return cls()

    @classmethod
    def fail(
        cls,
        code: ErrorCode,
        message: str = "",
        index: int | None = None,
        cause: ErrorCode | None = None,
    ) -> "VerificationResult":
        return cls(code=code, index=index, cause=cause, message=message)

    def at(self, index: int) -> "VerificationResult":
        return VerificationResult(code=self.code, index=index, cause=self.cause, message=self.message)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "code": self.code.value if self.code is not None else None,
            "index": self.index,
            "cause": self.cause.value if self.cause is not None else None,
            "message": self.message,
        }


def _accept_any_mint(mint_data: MintData) -> bool:
    return True


class TokenVerifier:
    """Verifies transactions and tokens against one service trust key."""

    def __init__(
        self,
        proofs: ProofVerifier,
        justify_mint: MintJustifier | None = None,
    ) -> None:
        self.proofs = proofs
        self.justify_mint = justify_mint or _accept_any_mint

    def verify_certified_transaction(
        self,
        certified: CertifiedTransaction,
        expected_state: TokenState,
    ) -> VerificationResult:
        """Check ``certified`` as the spend of ``expected_state``."""
        transaction = certified.transaction

        if transaction.current_state_hash != expected_state.state_hash:
            return VerificationResult.fail(
                ErrorCode.STALE_STATE, "transaction does not spend the expected state"
            )

        if certified.transaction_hash != transaction.data.hash:
            return VerificationResult.fail(
                ErrorCode.HASH_MISMATCH, "declared transaction hash does not match its data"
            )

        message = transaction_message(expected_state.state_hash, certified.transaction_hash)
        system_time = self.proofs.extract_time(certified.inclusion_proof)
        if not evaluate(
            expected_state.locking_condition,
            system_time,
            message,
            certified.witness,
            expected_state.auxiliary_data,
        ):
            return VerificationResult.fail(
                ErrorCode.CONDITION_UNSATISFIED, "witness does not satisfy the locking condition"
            )

        if not self.proofs.verify_inclusion_proof(
            expected_state.state_id, certified.transaction_hash, certified.inclusion_proof
        ):
            return VerificationResult.fail(
                ErrorCode.PROOF_INVALID, "no valid registration of this state spend"
            )

        return VerificationResult.ok()

    def verify_mint_transaction(self, certified: CertifiedTransaction) -> VerificationResult:
        """Check a genesis transaction against the public mint anchor state."""
        mint_data = certified.transaction.data.mint_data
        if mint_data is None:
            return VerificationResult.fail(ErrorCode.MINT_INVALID, "genesis carries no mint data")

        anchor = TokenState(
            locking_condition=mint_condition(),
            state_hash=derive_mint_state_hash(mint_data.token_id),
        )
        result = self.verify_certified_transaction(certified, anchor)
        if not result:
            return VerificationResult.fail(
                ErrorCode.MINT_INVALID, f"genesis: {result.message}", cause=result.code
            )

        if not self.justify_mint(mint_data):
            return VerificationResult.fail(
                ErrorCode.MINT_INVALID, "mint justification rejected"
            )

        return VerificationResult.ok()

    def verify_token(
        self,
        token: Token,
        cancel: threading.Event | None = None,
    ) -> VerificationResult:
        """Verify genesis and every history entry, in order.

        When ``cancel`` is set the fold stops before the next entry and the
        token is reported as CANCELLED at that entry.
        """
        if cancel is not None and cancel.is_set():
            return VerificationResult.fail(ErrorCode.CANCELLED, "verification cancelled")

        result = self.verify_mint_transaction(token.genesis)
        if not result:
            logger.debug("Token rejected at genesis: %s", result.message)
            return result

        mint_data = token.genesis.transaction.data.mint_data
        state = TokenState(
            locking_condition=mint_condition(),
            state_hash=derive_mint_state_hash(mint_data.token_id),
        ).assign(token.genesis.transaction.data)

        for index, certified in enumerate(token.history):
            if cancel is not None and cancel.is_set():
                logger.debug("Token verification cancelled at history[%d]", index)
                return VerificationResult.fail(
                    ErrorCode.CANCELLED, "verification cancelled", index=index
                )
            result = self.verify_certified_transaction(certified, state)
            if not result:
                logger.debug("Token rejected at history[%d]: %s", index, result.message)
                return result.at(index)
            state = state.advance(certified.transaction.data)

        if state != token.current_state:
            logger.debug("Token rejected: replayed state differs from current state")
            return VerificationResult.fail(
                ErrorCode.STATE_MISMATCH, "replayed history does not reproduce the current state"
            )

        return VerificationResult.ok()


def verify_tokens(
    verifier: TokenVerifier,
    tokens: Iterable[Token],
    timeout: float | None = None,
    config: UnicoreConfig | None = None,
    cancel: threading.Event | None = None,
) -> list[VerificationResult]:
    """Verify independent tokens concurrently, preserving input order.

    Each token's own history is still folded sequentially. A token that does
    not finish within ``timeout`` seconds (measured per token, from when its
    result is awaited) is reported as TIMEOUT. Setting ``cancel`` stops every
    fold at its next entry; those tokens are reported as CANCELLED.
    """
    config = config or UnicoreConfig()
    tokens = list(tokens)
    results: list[VerificationResult] = []
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=config.max_workers)
    try:
        futures = [executor.submit(verifier.verify_token, token, cancel) for token in tokens]
        for future in futures:
            try:
                results.append(future.result(timeout=timeout))
            except concurrent.futures.TimeoutError:
                future.cancel()
                results.append(
                    VerificationResult.fail(ErrorCode.TIMEOUT, "verification timed out")
                )
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
    return results
