"""
StoredEntry Model
Opaque payloads saved per owner and category, visible until their TTL runs out
"""

from sqlalchemy import BigInteger, Column, Index, LargeBinary, String
from ephemeral_store.database import Base


class StoredEntry(Base):
    """
    A single saved payload.

    The primary key is the caller-facing object id. Saving again under the
    same key replaces payload, owner, category and created_at in place.
    Rows past their TTL stay in the table until the expiry sweep removes them,
    read paths filter them out by created_at.
    """
    __tablename__ = "stored_entries"

    # Primary Key (also the external object id)
    key = Column(String(128), primary_key=True)

    # Canonical owner key (sha256 hex), never the raw identifier
    owner_key = Column(String(64), nullable=False)

    category = Column(String(20), nullable=False)

    payload = Column(LargeBinary, nullable=False)

    # Epoch milliseconds of the latest write
    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index('ix_stored_entries_owner_category', 'owner_key', 'category'),
        Index('ix_stored_entries_created_at', 'created_at'),
    )

    @property
    def external_id(self) -> str:
        return self.key

    @property
    def size_bytes(self) -> int:
        return len(self.payload)

    def __repr__(self):
        return f"<StoredEntry(key='{self.key}', category='{self.category}', created_at={self.created_at})>"
