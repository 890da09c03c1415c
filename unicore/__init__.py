"""unicore — state-transition verification for Unicity-style off-chain tokens."""

from .address import direct_address, is_address_of, parse_direct_address
from .chain import (
    MINT_SUFFIX,
    derive_mint_state_hash,
    derive_next_state_hash,
    derive_state_id,
    replay_state_hashes,
)
from .config import UnicoreConfig
from .crypto import encode, hash_bytes, hash_record
from .errors import (
    AddressError,
    ConfigError,
    DoubleSpendError,
    ErrorCode,
    SubmissionError,
    UnicityError,
)
from .predicate import (
    Burn,
    ConditionKind,
    KeyOwnership,
    Multisig,
    Timelock,
    Witness,
    evaluate,
    fingerprint,
    mint_condition,
)
from .signature import generate_keypair, sign_message, verify_signature
from .state import TokenState
from .token import Token, certify, create_transaction, mint_token, sign_transaction
from .transaction import (
    CertifiedTransaction,
    MintData,
    Transaction,
    TransactionData,
    new_blinding_mask,
)
from .unicity import (
    InclusionProof,
    LocalUnicityService,
    ProofVerifier,
    SubmitRequest,
    SubmitResponse,
    UnicityService,
)
from .verifier import TokenVerifier, VerificationResult, verify_tokens

__version__ = "1.0.0"

__all__ = [
    "MINT_SUFFIX",
    "AddressError",
    "Burn",
    "CertifiedTransaction",
    "ConditionKind",
    "ConfigError",
    "DoubleSpendError",
    "ErrorCode",
    "InclusionProof",
    "KeyOwnership",
    "LocalUnicityService",
    "MintData",
    "Multisig",
    "ProofVerifier",
    "SubmissionError",
    "SubmitRequest",
    "SubmitResponse",
    "Timelock",
    "Token",
    "TokenState",
    "TokenVerifier",
    "Transaction",
    "TransactionData",
    "UnicityError",
    "UnicityService",
    "UnicoreConfig",
    "VerificationResult",
    "Witness",
    "certify",
    "create_transaction",
    "derive_mint_state_hash",
    "derive_next_state_hash",
    "derive_state_id",
    "direct_address",
    "encode",
    "evaluate",
    "fingerprint",
    "generate_keypair",
    "hash_bytes",
    "hash_record",
    "is_address_of",
    "mint_condition",
    "mint_token",
    "new_blinding_mask",
    "parse_direct_address",
    "replay_state_hashes",
    "sign_message",
    "sign_transaction",
    "verify_signature",
    "verify_tokens",
]
