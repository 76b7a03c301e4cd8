"""
Entry Store
SQLAlchemy-backed storage engine for owner-scoped payloads with TTL visibility
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
import time
import structlog
from sqlalchemy import distinct, func, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from ephemeral_store.config import settings
from ephemeral_store.models.stored_entry import StoredEntry
from ephemeral_store.services.exceptions import NotFound, ObjectIdTaken, StorageUnavailable

logger = structlog.get_logger(__name__)


def current_millis() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class UpsertAck:
    key: str
    size_bytes: int
    created_at: int
    expires_at: int


@dataclass(frozen=True)
class EntrySummary:
    external_id: str
    category: str
    size_bytes: int
    created_at: int
    expires_at: int


@dataclass(frozen=True)
class StorageStats:
    entry_count: int
    distinct_owner_count: int
    total_byte_size: Optional[int]  # None when the table is empty


class EntryStore:
    """
    Storage engine over the stored_entries table.

    Every operation opens its own session and either commits fully or rolls
    back. Reads hide rows older than the TTL whether or not the sweep has
    deleted them yet. Database errors are raised as StorageUnavailable and
    never retried here.
    """

    def __init__(self, session_factory: sessionmaker, ttl_ms: Optional[int] = None):
        """
        Initialize entry store.

        Args:
            session_factory: SQLAlchemy sessionmaker (not session - creates independent transactions)
            ttl_ms: Visibility window in milliseconds. Defaults to settings.ttl_ms.
        """
        self.session_factory = session_factory
        self.ttl_ms = ttl_ms if ttl_ms is not None else settings.ttl_ms
        self.logger = logger.bind(service="entry_store")

    def _upsert_statement(self, session: Session, values: dict, cutoff: int):
        dialect = session.get_bind().dialect.name
        if dialect == "sqlite":
            insert = sqlite_insert
        elif dialect == "postgresql":
            insert = pg_insert
        else:
            return None

        stmt = insert(StoredEntry).values(**values)
        # Only the owner may replace a live row; expired rows are free to reuse
        return stmt.on_conflict_do_update(
            index_elements=[StoredEntry.key],
            set_={
                "owner_key": stmt.excluded.owner_key,
                "category": stmt.excluded.category,
                "payload": stmt.excluded.payload,
                "created_at": stmt.excluded.created_at,
            },
            where=or_(
                StoredEntry.owner_key == stmt.excluded.owner_key,
                StoredEntry.created_at < cutoff,
            ),
        )

    def _merge(self, session: Session, values: dict, cutoff: int) -> int:
        """Fallback for dialects without ON CONFLICT, returns rows written."""
        existing = session.get(StoredEntry, values["key"], with_for_update=True)
        if (
            existing is not None
            and existing.owner_key != values["owner_key"]
            and existing.created_at >= cutoff
        ):
            return 0
        session.merge(StoredEntry(**values))
        return 1

    def upsert(
        self,
        key: str,
        owner_key: str,
        category: str,
        payload: bytes,
        now: int,
    ) -> UpsertAck:
        """
        Insert an entry or replace the one stored under the same key.

        The replacement resets created_at to now, restarting the TTL window.
        A live entry can only be replaced by its own owner.

        Args:
            key: Primary key / object id
            owner_key: Canonical owner key
            category: Validated category tag
            payload: Non-empty payload bytes
            now: Write time in epoch milliseconds

        Returns:
            UpsertAck with size and expiry of the stored entry

        Raises:
            ObjectIdTaken: A live entry under this key belongs to another owner
            StorageUnavailable: Database unreachable or write failed
        """
        values = {
            "key": key,
            "owner_key": owner_key,
            "category": category,
            "payload": payload,
            "created_at": now,
        }
        cutoff = now - self.ttl_ms

        session: Session = self.session_factory()
        try:
            stmt = self._upsert_statement(session, values, cutoff)
            if stmt is not None:
                written = session.execute(stmt).rowcount
            else:
                written = self._merge(session, values, cutoff)

            if written == 0:
                session.rollback()
                self.logger.warning("entry_upsert_rejected", key=key, category=category)
                raise ObjectIdTaken("Object id is already in use")

            session.commit()

            self.logger.info(
                "entry_upserted",
                key=key,
                category=category,
                size_bytes=len(payload)
            )
            return UpsertAck(
                key=key,
                size_bytes=len(payload),
                created_at=now,
                expires_at=now + self.ttl_ms,
            )

        except SQLAlchemyError as e:
            self.logger.error("entry_upsert_failed", key=key, error=str(e))
            session.rollback()
            raise StorageUnavailable("Failed to store object") from e
        finally:
            session.close()

    def get_by_external_id(self, external_id: str, now: int) -> StoredEntry:
        """
        Fetch a live entry by its object id.

        Raises:
            NotFound: No such entry, or it is past its TTL
            StorageUnavailable: Database unreachable
        """
        session: Session = self.session_factory()
        try:
            entry = session.query(StoredEntry).filter(
                StoredEntry.key == external_id,
                StoredEntry.created_at >= now - self.ttl_ms
            ).first()

        except SQLAlchemyError as e:
            self.logger.error("entry_fetch_failed", key=external_id, error=str(e))
            raise StorageUnavailable("Failed to fetch object") from e
        finally:
            session.close()

        if entry is None:
            raise NotFound("Object not found or expired")
        return entry

    def list_by_owner_and_category(
        self,
        owner_key: str,
        category: str,
        page: int,
        page_size: int,
        now: int,
    ) -> Tuple[List[EntrySummary], int]:
        """
        List live entries of one owner and category, newest first.

        Args:
            owner_key: Canonical owner key
            category: Category tag
            page: 1-based page number
            page_size: Entries per page
            now: Reference time in epoch milliseconds

        Returns:
            (summaries for the requested page, total live entries)
            The page is empty when it lies beyond the last entry.
        """
        offset = (page - 1) * page_size
        cutoff = now - self.ttl_ms

        session: Session = self.session_factory()
        try:
            filters = (
                StoredEntry.owner_key == owner_key,
                StoredEntry.category == category,
                StoredEntry.created_at >= cutoff,
            )

            total_count = session.query(func.count(StoredEntry.key)).filter(*filters).scalar() or 0

            # Past the last entry; also keeps huge offsets away from the driver
            if offset >= total_count:
                return [], total_count

            rows = session.query(
                StoredEntry.key,
                StoredEntry.category,
                func.length(StoredEntry.payload).label("size_bytes"),
                StoredEntry.created_at,
            ).filter(*filters).order_by(
                StoredEntry.created_at.desc()
            ).offset(offset).limit(page_size).all()

        except SQLAlchemyError as e:
            self.logger.error("entry_list_failed", category=category, error=str(e))
            raise StorageUnavailable("Failed to fetch objects") from e
        finally:
            session.close()

        items = [
            EntrySummary(
                external_id=row.key,
                category=row.category,
                size_bytes=row.size_bytes,
                created_at=row.created_at,
                expires_at=row.created_at + self.ttl_ms,
            )
            for row in rows
        ]
        return items, total_count

    def aggregate_stats(self) -> StorageStats:
        """Full-table counts and byte volume, expired rows included."""
        session: Session = self.session_factory()
        try:
            entry_count, owner_count, total_size = session.query(
                func.count(StoredEntry.key),
                func.count(distinct(StoredEntry.owner_key)),
                func.sum(func.length(StoredEntry.payload)),
            ).one()

        except SQLAlchemyError as e:
            self.logger.error("entry_stats_failed", error=str(e))
            raise StorageUnavailable("Failed to read stats") from e
        finally:
            session.close()

        return StorageStats(
            entry_count=entry_count or 0,
            distinct_owner_count=owner_count or 0,
            total_byte_size=int(total_size) if total_size is not None else None,
        )

    def delete_older_than(self, cutoff: int) -> int:
        """
        Physically delete every entry with created_at < cutoff.

        Called by the expiry sweeper only.

        Returns:
            Number of entries deleted
        """
        session: Session = self.session_factory()
        try:
            deleted_count = session.query(StoredEntry).filter(
                StoredEntry.created_at < cutoff
            ).delete(synchronize_session=False)

            session.commit()
            return deleted_count

        except SQLAlchemyError as e:
            self.logger.error("entry_delete_failed", cutoff=cutoff, error=str(e))
            session.rollback()
            raise StorageUnavailable("Failed to delete expired objects") from e
        finally:
            session.close()
