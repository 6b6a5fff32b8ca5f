"""
Hashing primitives for template cache addressing.

Current scope:
- Deterministic, collision-resistant hashing of template address strings

Explicit non-scope:
- Address parsing or validation (see templates.address)
- Filesystem access
"""

import hashlib


def compute_address_hash(address: str) -> str:
    """
    Compute the cache key for a template address.

    The full address string is hashed, scheme included, so that the same
    object reached through two different schemes occupies two entries.

    Returns:
        Lower-case SHA-256 hex digest (64 characters).
    """
    if not isinstance(address, str):
        raise TypeError(
            "compute_address_hash expects a string address, "
            f"got {type(address).__name__}"
        )

    return hashlib.sha256(address.encode("utf-8")).hexdigest()
