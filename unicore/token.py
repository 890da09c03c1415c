"""Token — a genesis plus an ordered history of certified transactions.

Tokens are values. ``Token.apply`` returns a new token; nothing is mutated.

Typical flow::

    service = LocalUnicityService()
    token = mint_token(service, mint_data, KeyOwnership(alice_pub), mask_a)

    tx = create_transaction(token.current_state, KeyOwnership(bob_pub), mask_b)
    certified = certify(service, token.current_state, tx, sign_transaction(tx, alice_key))
    token = token.apply(certified)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterator

from .chain import derive_mint_state_hash
from .errors import DoubleSpendError, ErrorCode, SubmissionError
from .predicate import LockingCondition, Witness, mint_condition, minter_private_key
from .signature import sign_message
from .state import TokenState
from .transaction import CertifiedTransaction, MintData, Transaction, TransactionData
from .unicity import SubmitRequest, UnicityService, submit_with_timeout

logger = logging.getLogger(__name__)

TOKEN_VERSION = "2.0"


@dataclass(frozen=True)
class Token:
    version: str
    current_state: TokenState
    genesis: CertifiedTransaction
    history: tuple[CertifiedTransaction, ...] = ()

    @property
    def token_id(self) -> bytes | None:
        mint = self.genesis.transaction.data.mint_data
        return mint.token_id if mint is not None else None

    @property
    def length(self) -> int:
        """Number of transfers after genesis."""
        return len(self.history)

    def apply(self, certified: CertifiedTransaction) -> "Token":
        """Return a new token with ``certified`` appended and the state advanced.

        No verification is done here; run the verifier on the result.
        """
        return replace(
            self,
            current_state=self.current_state.advance(certified.transaction.data),
            history=self.history + (certified,),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "current_state": self.current_state.to_dict(),
            "genesis": self.genesis.to_dict(),
            "history": [c.to_dict() for c in self.history],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Token":
        return cls(
            version=data.get("version", TOKEN_VERSION),
            current_state=TokenState.from_dict(data["current_state"]),
            genesis=CertifiedTransaction.from_dict(data["genesis"]),
            history=tuple(CertifiedTransaction.from_dict(c) for c in data.get("history", [])),
        )

    def __len__(self) -> int:
        return self.length

    def __iter__(self) -> Iterator[CertifiedTransaction]:
        yield self.genesis
        yield from self.history


def mint_state(token_id: bytes) -> TokenState:
    """The anchor state a genesis transaction spends."""
    return TokenState(
        locking_condition=mint_condition(),
        state_hash=derive_mint_state_hash(token_id),
    )


def create_transaction(
    state: TokenState,
    recipient: LockingCondition,
    blinding_mask: bytes,
    recipient_auxiliary_data: bytes | None = None,
    mint_data: MintData | None = None,
) -> Transaction:
    """Build a transaction spending ``state`` to ``recipient``."""
    data = TransactionData(
        recipient_condition=recipient,
        blinding_mask=blinding_mask,
        recipient_auxiliary_data=recipient_auxiliary_data,
        mint_data=mint_data,
    )
    return Transaction(current_state_hash=state.state_hash, data=data)


def sign_transaction(transaction: Transaction, *private_keys: bytes) -> Witness:
    """Sign ``transaction.message`` with each key, in order.

    An empty key leaves an empty slot, for multisig signers who abstain.
    """
    message = transaction.message
    return Witness(
        signatures=tuple(sign_message(key, message) if key else b"" for key in private_keys)
    )


def certify(
    service: UnicityService,
    state: TokenState,
    transaction: Transaction,
    witness: Witness,
    timeout: float | None = None,
) -> CertifiedTransaction:
    """Register ``transaction`` with the service and attach the proof.

    Raises:
        DoubleSpendError: If ``state`` was already spent.
        SubmissionError: For any other rejection, including timeouts.
    """
    request = SubmitRequest(
        condition=state.locking_condition,
        current_state_hash=transaction.current_state_hash,
        transaction_hash=transaction.hash,
        witness=witness,
    )
    response = submit_with_timeout(service, request, timeout)
    if not response.accepted:
        if response.error is ErrorCode.DOUBLE_SPEND:
            raise DoubleSpendError(f"State {request.state_id.hex()} is already spent")
        raise SubmissionError(
            f"Service rejected transaction {transaction.hash.hex()}: "
            f"{response.error.value if response.error else 'unknown error'}",
            code=response.error,
        )
    return CertifiedTransaction(
        transaction=transaction,
        witness=witness,
        transaction_hash=transaction.hash,
        inclusion_proof=response.inclusion_proof,
    )


def mint_token(
    service: UnicityService,
    mint_data: MintData,
    recipient: LockingCondition,
    blinding_mask: bytes,
    recipient_auxiliary_data: bytes | None = None,
    timeout: float | None = None,
    version: str = TOKEN_VERSION,
) -> Token:
    """Create a token by registering its genesis transaction."""
    anchor = mint_state(mint_data.token_id)
    transaction = create_transaction(
        anchor, recipient, blinding_mask, recipient_auxiliary_data, mint_data=mint_data
    )
    witness = sign_transaction(transaction, minter_private_key())
    genesis = certify(service, anchor, transaction, witness, timeout=timeout)
    logger.info("Minted token %s", mint_data.token_id.hex())
    return Token(
        version=version,
        current_state=anchor.assign(transaction.data),
        genesis=genesis,
    )
