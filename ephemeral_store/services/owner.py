"""
Owner Canonicalization

Owner identifiers never reach storage in raw form. Every identifier is
reduced to a sha256 hex digest; identifiers that already look like one are
reused as-is so clients holding a canonical key can address their entries
directly.
"""

import hashlib
import re
from typing import Union

CANONICAL_KEY_PATTERN = re.compile(r"[0-9a-fA-F]{64}")


def is_canonical(identifier: str) -> bool:
    """True when the identifier is already a 64-char hex digest."""
    return bool(CANONICAL_KEY_PATTERN.fullmatch(identifier))


def canonicalize(raw_identifier: Union[bytes, str]) -> str:
    """
    Derive the owner key for a caller-supplied identifier.

    Args:
        raw_identifier: Any string or byte sequence

    Returns:
        64-character hex string (lowercase unless passed through)
    """
    if isinstance(raw_identifier, bytes):
        try:
            text = raw_identifier.decode("ascii")
        except UnicodeDecodeError:
            return hashlib.sha256(raw_identifier).hexdigest()
        if is_canonical(text):
            return text
        return hashlib.sha256(raw_identifier).hexdigest()

    if is_canonical(raw_identifier):
        return raw_identifier
    return hashlib.sha256(raw_identifier.encode("utf-8")).hexdigest()


def fingerprint(payload: bytes, owner_key: str) -> str:
    """Content key for saves without an explicit object id."""
    return hashlib.sha256(payload + owner_key.encode("ascii")).hexdigest()
