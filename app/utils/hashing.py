"""Helpers for logging identifiers without exposing them."""

from __future__ import annotations

import hashlib


def hash_identity(identity: str) -> str:
    """Return a short, stable SHA-256 fingerprint of ``identity``.

    Examples:
        >>> len(hash_identity("203.0.113.5"))
        16
    """
    return hashlib.sha256(identity.encode()).hexdigest()[:16]
