"""Location normalization and cache-key derivation."""

from __future__ import annotations

import hashlib
import re

_WHITESPACE = re.compile(r"\s+")


def normalize_location(text: str) -> str:
    """Trim, collapse whitespace runs to one space, lowercase."""
    return _WHITESPACE.sub(" ", (text or "").strip()).lower()


def derive_key(text: str) -> str:
    """
    SHA-256 hex digest of the normalized location text.

    "Chicago,  IL" and " chicago, il" share a key. No validation happens here: an empty or
    nonsense string still produces a deterministic key and the provider decides whether it
    is routable.
    """
    return hashlib.sha256(normalize_location(text).encode("utf-8")).hexdigest()


__all__ = ["derive_key", "normalize_location"]
