"""
Entry Service
Save, list and fetch flows on top of the entry store

Save:  canonicalize owner -> validate -> upsert
List:  canonicalize owner -> validate category -> TTL-filtered page
Fetch: TTL-filtered point lookup by object id
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Union
import math
import structlog

from ephemeral_store.config import settings
from ephemeral_store.models.stored_entry import StoredEntry
from ephemeral_store.services.entry_store import (
    EntryStore,
    EntrySummary,
    UpsertAck,
    current_millis,
)
from ephemeral_store.services.owner import canonicalize, fingerprint
from ephemeral_store.services.validation import (
    validate_category,
    validate_external_id,
    validate_payload,
    validate_payload_size,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SavedEntry:
    """Result of a save, as reported back to the client."""
    external_id: str
    owner_key: str
    category: str
    size_bytes: int
    created_at: int
    expires_at: int


@dataclass(frozen=True)
class EntryPage:
    owner_key: str
    category: str
    items: List[EntrySummary]
    page: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def normalize_page(page: Optional[Union[int, str]]) -> int:
    """Missing, unparsable or non-positive pages fall back to page 1"""
    try:
        value = int(page)
    except (TypeError, ValueError):
        return 1
    return value if value >= 1 else 1


class EntryService:
    """Request-level operations shared by the HTTP routers and tests."""

    def __init__(
        self,
        store: EntryStore,
        page_size: Optional[int] = None,
        max_payload_bytes: Optional[int] = None,
        clock: Callable[[], int] = current_millis,
    ):
        self.store = store
        self.page_size = page_size or settings.page_size
        self.max_payload_bytes = max_payload_bytes or settings.max_payload_bytes
        self.clock = clock

    def save(
        self,
        owner_id: Union[bytes, str],
        category: str,
        payload: bytes,
        external_id: Optional[str] = None,
    ) -> SavedEntry:
        """
        Store a payload for an owner.

        All validation runs before the write. Without an explicit object id
        the key is a fingerprint of payload and owner, so repeating the same
        save refreshes the existing entry instead of adding a new one.

        Raises:
            InvalidCategory, InvalidExternalId, EmptyPayload, PayloadTooLarge
            ObjectIdTaken, StorageUnavailable
        """
        category = validate_category(category)
        payload = validate_payload(payload)
        payload = validate_payload_size(payload, self.max_payload_bytes)
        if external_id is not None:
            external_id = validate_external_id(external_id)

        owner_key = canonicalize(owner_id)
        key = external_id or fingerprint(payload, owner_key)

        ack: UpsertAck = self.store.upsert(
            key=key,
            owner_key=owner_key,
            category=category,
            payload=payload,
            now=self.clock(),
        )
        return SavedEntry(
            external_id=ack.key,
            owner_key=owner_key,
            category=category,
            size_bytes=ack.size_bytes,
            created_at=ack.created_at,
            expires_at=ack.expires_at,
        )

    def list_entries(
        self,
        owner_id: Union[bytes, str],
        category: str,
        page: Optional[Union[int, str]] = 1,
    ) -> EntryPage:
        category = validate_category(category)
        owner_key = canonicalize(owner_id)
        page = normalize_page(page)

        items, total_count = self.store.list_by_owner_and_category(
            owner_key=owner_key,
            category=category,
            page=page,
            page_size=self.page_size,
            now=self.clock(),
        )
        logger.debug("entries_listed", category=category, page=page, total=total_count)

        return EntryPage(
            owner_key=owner_key,
            category=category,
            items=items,
            page=page,
            page_size=self.page_size,
            total_count=total_count,
        )

    def fetch(self, external_id: str) -> StoredEntry:
        """Raises NotFound for missing and expired entries alike"""
        return self.store.get_by_external_id(external_id, now=self.clock())
