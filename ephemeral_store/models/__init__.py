"""
Database Models
"""

from ephemeral_store.models.stored_entry import StoredEntry

__all__ = [
    "StoredEntry",
]
