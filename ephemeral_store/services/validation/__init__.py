"""
Validation Services
Input checks applied before anything reaches storage
"""

from ephemeral_store.services.validation.entry_validator import (
    validate_category,
    validate_external_id,
    validate_payload,
    validate_payload_size,
)

__all__ = [
    "validate_category",
    "validate_external_id",
    "validate_payload",
    "validate_payload_size",
]
