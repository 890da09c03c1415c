"""Error codes and exceptions.

Verification never raises for bad tokens; it reports an ``ErrorCode`` in a
``VerificationResult``. Exceptions are used at the edges: service
submissions that were refused, unparsable addresses, and bad configuration.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    STALE_STATE = "STALE_STATE"
    HASH_MISMATCH = "HASH_MISMATCH"
    CONDITION_UNSATISFIED = "CONDITION_UNSATISFIED"
    PROOF_INVALID = "PROOF_INVALID"
    DOUBLE_SPEND = "DOUBLE_SPEND"
    MINT_INVALID = "MINT_INVALID"
    STATE_MISMATCH = "STATE_MISMATCH"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"


class UnicityError(Exception):
    """Base class for all unicore errors."""

    default_code: ErrorCode | None = None

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": type(self).__name__,
            "code": self.code.value if self.code is not None else None,
            "message": self.message,
        }


class SubmissionError(UnicityError):
    """The Unicity Service did not accept a commitment."""


class DoubleSpendError(SubmissionError):
    """The StateId was already registered with the service."""

    default_code = ErrorCode.DOUBLE_SPEND


class AddressError(UnicityError, ValueError):
    """An address string could not be parsed."""


class ConfigError(UnicityError):
    """Invalid configuration value."""
