"""
Entry Validator
Shape checks on category tags, object ids and payloads, run before any write
"""

import re

from ephemeral_store.services.exceptions import (
    EmptyPayload,
    InvalidCategory,
    InvalidExternalId,
    PayloadTooLarge,
)

CATEGORY_MAX_LENGTH = 20
CATEGORY_PATTERN = re.compile(r"[A-Za-z0-9_]+")

EXTERNAL_ID_MAX_LENGTH = 128
EXTERNAL_ID_PATTERN = re.compile(r"[A-Za-z0-9_.\-]+")


def validate_category(category: str) -> str:
    """
    Check a category tag.

    Args:
        category: Caller-chosen namespace, e.g. "note"

    Returns:
        The category unchanged

    Raises:
        InvalidCategory: Empty, longer than 20 chars, or not [A-Za-z0-9_]
    """
    if not category or len(category) > CATEGORY_MAX_LENGTH:
        raise InvalidCategory(
            f"Type must be a string between 1 and {CATEGORY_MAX_LENGTH} characters"
        )
    if not CATEGORY_PATTERN.fullmatch(category):
        raise InvalidCategory("Type must contain only letters, numbers, and underscores")
    return category


def validate_external_id(external_id: str) -> str:
    """Object ids become primary keys, keep them short and URL-safe."""
    if not external_id or len(external_id) > EXTERNAL_ID_MAX_LENGTH:
        raise InvalidExternalId(
            f"Object id must be between 1 and {EXTERNAL_ID_MAX_LENGTH} characters"
        )
    if not EXTERNAL_ID_PATTERN.fullmatch(external_id):
        raise InvalidExternalId(
            "Object id must contain only letters, numbers, dots, dashes and underscores"
        )
    return external_id


def validate_payload(payload: bytes) -> bytes:
    if not payload:
        raise EmptyPayload("No data provided")
    return payload


def validate_payload_size(payload: bytes, max_bytes: int) -> bytes:
    if len(payload) > max_bytes:
        raise PayloadTooLarge(
            f"Payload of {len(payload)} bytes exceeds limit of {max_bytes} bytes"
        )
    return payload
