"""Direct addresses — a display form of a locking condition's fingerprint.

    DIRECT://<hex(fingerprint)><hex(H(fingerprint)[0:4])>

The address is a convenience for humans and wallets. A checksum mismatch
is a local parse failure, never a protocol violation.
"""

from __future__ import annotations

from .crypto import HASH_SIZE, hash_bytes
from .errors import AddressError
from .predicate import LockingCondition, fingerprint

DIRECT_PREFIX = "DIRECT://"
CHECKSUM_SIZE = 4


def _checksum(digest: bytes) -> bytes:
    return hash_bytes(digest)[:CHECKSUM_SIZE]


def address_from_fingerprint(digest: bytes) -> str:
    return DIRECT_PREFIX + digest.hex() + _checksum(digest).hex()


def direct_address(condition: LockingCondition) -> str:
    return address_from_fingerprint(fingerprint(condition))


def parse_direct_address(address: str) -> bytes:
    """Return the fingerprint encoded in ``address``.

    Raises:
        AddressError: On a wrong prefix, bad hex, wrong length or checksum.
    """
    if not address.startswith(DIRECT_PREFIX):
        raise AddressError(f"Not a direct address: {address!r}")
    body = address[len(DIRECT_PREFIX):]
    try:
        raw = bytes.fromhex(body)
    except ValueError:
        raise AddressError(f"Address is not valid hex: {address!r}") from None
    if len(raw) != HASH_SIZE + CHECKSUM_SIZE:
        raise AddressError(f"Address has wrong length: {len(raw)} bytes")
    digest, checksum = raw[:HASH_SIZE], raw[HASH_SIZE:]
    if _checksum(digest) != checksum:
        raise AddressError("Address checksum mismatch")
    return digest


def is_address_of(address: str, condition: LockingCondition) -> bool:
    """True if ``address`` parses and names ``condition``."""
    try:
        return parse_direct_address(address) == fingerprint(condition)
    except AddressError:
        return False
