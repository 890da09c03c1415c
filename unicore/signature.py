"""Ed25519 signatures for transaction witnesses.

Keys are raw 32-byte seeds and 32-byte public keys; signatures are raw
64 bytes. PyNaCl (libsodium) is used when installed, otherwise the
``cryptography`` package. Both produce identical, interchangeable output.
"""

from __future__ import annotations

from functools import lru_cache

NACL = "nacl"
CRYPTOGRAPHY = "cryptography"


@lru_cache(maxsize=None)
def backend_name() -> str:
    """Name of the Ed25519 implementation in use."""
    try:
        import nacl.signing  # noqa: F401
        return NACL
    except ImportError:
        pass
    try:
        from cryptography.hazmat.primitives.asymmetric import ed25519  # noqa: F401
        return CRYPTOGRAPHY
    except ImportError:
        raise ImportError(
            "Ed25519 signatures require 'PyNaCl' or 'cryptography'. "
            "Install with: pip install PyNaCl"
        ) from None


def _raw_public(private_key) -> bytes:
    from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

    return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def generate_keypair() -> tuple[bytes, bytes]:
    """Generate an Ed25519 keypair as (private_key, public_key)."""
    if backend_name() == NACL:
        from nacl.signing import SigningKey

        signing_key = SigningKey.generate()
        return bytes(signing_key), bytes(signing_key.verify_key)

    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
    from cryptography.hazmat.primitives.serialization import (
        Encoding,
        NoEncryption,
        PrivateFormat,
    )

    key = Ed25519PrivateKey.generate()
    seed = key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
    return seed, _raw_public(key)


def public_key_for(private_key: bytes) -> bytes:
    """Derive the public key of a 32-byte private key (seed)."""
    if backend_name() == NACL:
        from nacl.signing import SigningKey

        return bytes(SigningKey(private_key).verify_key)

    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

    return _raw_public(Ed25519PrivateKey.from_private_bytes(private_key))


def sign_message(private_key: bytes, message: bytes) -> bytes:
    """Sign ``message`` and return the raw 64-byte signature."""
    if backend_name() == NACL:
        from nacl.signing import SigningKey

        return SigningKey(private_key).sign(message).signature

    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

    return Ed25519PrivateKey.from_private_bytes(private_key).sign(message)


def verify_signature(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Verify an Ed25519 signature. Malformed keys or signatures give False."""
    if not public_key or not signature:
        return False

    if backend_name() == NACL:
        from nacl.exceptions import BadSignatureError
        from nacl.signing import VerifyKey

        try:
            VerifyKey(public_key).verify(message, signature)
        except (BadSignatureError, ValueError, TypeError):
            return False
        return True

    from cryptography.exceptions import InvalidSignature
    from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)
    except (InvalidSignature, ValueError):
        return False
    return True
