"""Hash function and canonical encoding for unicore records."""

from __future__ import annotations

import hashlib
import json
from typing import Any

HASH_SIZE = 32


def hash_bytes(*parts: bytes) -> bytes:
    """H(parts[0] || parts[1] || ...) with SHA-256."""
    h = hashlib.sha256()
    for part in parts:
        h.update(part)
    return h.digest()


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def encode(record: dict) -> bytes:
    """Encode a record to canonical bytes.

    Uses canonical JSON (sorted keys, compact separators) for determinism.
    Byte strings are rendered as lowercase hex. Optional fields are always
    present, as ``null`` when unset.
    """
    canonical = json.dumps(_jsonable(record), sort_keys=True, separators=(",", ":"))
    return canonical.encode("utf-8")


def hash_record(record: dict) -> bytes:
    """H(encode(record))."""
    return hash_bytes(encode(record))


def to_hex(value: bytes | None) -> str | None:
    return value.hex() if value is not None else None


def from_hex(value: str | None) -> bytes | None:
    return bytes.fromhex(value) if value is not None else None
