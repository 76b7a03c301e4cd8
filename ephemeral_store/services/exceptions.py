"""
Service Exceptions
Errors raised by the storage core and mapped to HTTP responses in main.py
"""


class EphemeralStoreError(Exception):
    """Base class for all storage core errors."""
    status_code = 500


class InvalidCategory(EphemeralStoreError):
    """Raised when a category tag is empty, too long or has illegal characters."""
    status_code = 400


class InvalidExternalId(EphemeralStoreError):
    """Raised when a caller-supplied object id cannot be used as a key."""
    status_code = 400


class EmptyPayload(EphemeralStoreError):
    """Raised when a save carries no bytes."""
    status_code = 400


class PayloadTooLarge(EphemeralStoreError):
    """Raised when a payload exceeds the configured size limit."""
    status_code = 413


class NotFound(EphemeralStoreError):
    """Raised when an entry is absent or past its TTL."""
    status_code = 404


class StorageUnavailable(EphemeralStoreError):
    """Raised when the database cannot be reached or a write fails."""
    status_code = 500


class ObjectIdTaken(EphemeralStoreError):
    """Raised when a save reuses a live object id held by another owner."""
    status_code = 409
