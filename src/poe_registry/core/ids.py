"""Canonical ID, timestamp and proof-encoding helpers.

All modules import from here instead of defining local _uuid()/_now() copies.

Encoding Rule
-------------
Proofs are raw ``bytes`` inside the registry.  At the edges (CLI, JSON
event log, log lines) they are rendered as ``0x``-prefixed lowercase hex.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from pathlib import Path

_CHUNK = 1 << 16


def new_id() -> str:
    """Generate a new UUID v4 string.  Use for all internal entity IDs."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def proof_to_hex(proof: bytes) -> str:
    """Render *proof* as ``0x``-prefixed hex."""
    return "0x" + proof.hex()


def proof_from_hex(text: str) -> bytes:
    """Parse a hex proof, with or without the ``0x`` prefix.

    Raises ``ValueError`` on malformed input.
    """
    raw = text.strip()
    if raw[:2].lower() == "0x":
        raw = raw[2:]
    return bytes.fromhex(raw)


def fingerprint_file(path: str | Path, *, digest_size: int = 32) -> bytes:
    """Return the BLAKE2b digest of a file's contents.

    Parameters
    ----------
    path:
        File to fingerprint.  Read in chunks.
    digest_size:
        Digest length in bytes (default 32).
    """
    h = hashlib.blake2b(digest_size=digest_size)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.digest()
