"""
Tests for EntryStore

Tests cover:
- Upsert replaces in place and refreshes created_at
- Live object ids stay with their owner
- Concurrent same-key upserts
- TTL visibility on point lookups and listings
- Pagination and ordering
- Aggregate stats
- Physical deletion by cutoff
- Database errors surfaced as StorageUnavailable
"""

import threading

import pytest
from unittest.mock import Mock
from sqlalchemy.exc import OperationalError

from ephemeral_store.models import StoredEntry
from ephemeral_store.services.exceptions import NotFound, ObjectIdTaken, StorageUnavailable
from ephemeral_store.services.owner import canonicalize

T0 = 1_700_000_000_000
ALICE = canonicalize("alice")
BOB = canonicalize("bob")


def count_rows(session_factory) -> int:
    session = session_factory()
    try:
        return session.query(StoredEntry).count()
    finally:
        session.close()


class TestUpsert:
    """Tests for upsert semantics."""

    def test_insert_returns_ack(self, store):
        ack = store.upsert("k1", ALICE, "note", b"hello", now=T0)

        assert ack.key == "k1"
        assert ack.size_bytes == 5
        assert ack.created_at == T0
        assert ack.expires_at == T0 + store.ttl_ms

    def test_same_key_twice_leaves_one_row_with_latest_payload(self, store, session_factory):
        store.upsert("k1", ALICE, "note", b"first", now=T0)
        store.upsert("k1", ALICE, "note", b"second version", now=T0 + 5000)

        assert count_rows(session_factory) == 1
        entry = store.get_by_external_id("k1", now=T0 + 5000)
        assert entry.payload == b"second version"
        assert entry.created_at == T0 + 5000

    def test_upsert_revives_expired_entry(self, store):
        """Replacing an entry restarts its TTL window"""
        store.upsert("k1", ALICE, "note", b"old", now=T0)
        later = T0 + store.ttl_ms + 1

        with pytest.raises(NotFound):
            store.get_by_external_id("k1", now=later)

        store.upsert("k1", ALICE, "note", b"new", now=later)
        assert store.get_by_external_id("k1", now=later).payload == b"new"

    def test_upsert_can_move_entry_to_other_category(self, store):
        store.upsert("k1", ALICE, "note", b"x", now=T0)
        store.upsert("k1", ALICE, "todo", b"x", now=T0 + 1)

        notes, note_total = store.list_by_owner_and_category(ALICE, "note", 1, 10, now=T0 + 1)
        todos, todo_total = store.list_by_owner_and_category(ALICE, "todo", 1, 10, now=T0 + 1)
        assert (note_total, todo_total) == (0, 1)
        assert notes == []
        assert todos[0].external_id == "k1"


class TestUpsertOwnership:
    """A live object id stays with the owner that stored it."""

    def test_other_owner_cannot_take_over_live_key(self, store, session_factory):
        store.upsert("shared-id", ALICE, "note", b"alice data", now=T0)

        with pytest.raises(ObjectIdTaken):
            store.upsert("shared-id", BOB, "todo", b"bob data", now=T0 + 1)

        entry = store.get_by_external_id("shared-id", now=T0 + 1)
        assert entry.owner_key == ALICE
        assert entry.category == "note"
        assert entry.payload == b"alice data"
        assert entry.created_at == T0
        assert count_rows(session_factory) == 1

    def test_rejected_write_keeps_original_listing(self, store):
        store.upsert("shared-id", ALICE, "note", b"alice data", now=T0)

        with pytest.raises(ObjectIdTaken):
            store.upsert("shared-id", BOB, "note", b"bob data", now=T0 + 1)

        alice_items, alice_total = store.list_by_owner_and_category(ALICE, "note", 1, 10, now=T0 + 1)
        bob_items, bob_total = store.list_by_owner_and_category(BOB, "note", 1, 10, now=T0 + 1)
        assert alice_total == 1
        assert alice_items[0].external_id == "shared-id"
        assert (bob_items, bob_total) == ([], 0)

    def test_expired_key_can_be_reused_by_other_owner(self, store):
        store.upsert("shared-id", ALICE, "note", b"alice data", now=T0)
        later = T0 + store.ttl_ms + 1

        store.upsert("shared-id", BOB, "todo", b"bob data", now=later)

        entry = store.get_by_external_id("shared-id", now=later)
        assert entry.owner_key == BOB
        assert entry.payload == b"bob data"


class TestConcurrentUpsert:
    """Same-key writers from several threads serialize into one whole row."""

    WRITERS = 8

    def test_one_complete_row_survives(self, store, session_factory):
        barrier = threading.Barrier(self.WRITERS)
        errors = []

        def write(index):
            barrier.wait()
            try:
                store.upsert("same", ALICE, "note", f"writer-{index}".encode() * (index + 1), now=T0 + index)
            except Exception as e:  # collected and asserted below
                errors.append(e)

        threads = [threading.Thread(target=write, args=(i,)) for i in range(self.WRITERS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert count_rows(session_factory) == 1

        entry = store.get_by_external_id("same", now=T0 + self.WRITERS)
        writer = entry.created_at - T0
        assert 0 <= writer < self.WRITERS
        assert entry.payload == f"writer-{writer}".encode() * (writer + 1)


class TestGetByExternalId:
    """Tests for TTL-filtered point lookups."""

    def test_missing_key_not_found(self, store):
        with pytest.raises(NotFound):
            store.get_by_external_id("nope", now=T0)

    def test_visible_at_exact_ttl_boundary(self, store):
        store.upsert("k1", ALICE, "note", b"x", now=T0)
        assert store.get_by_external_id("k1", now=T0 + store.ttl_ms).key == "k1"

    def test_invisible_one_ms_past_ttl(self, store, session_factory):
        """Expired rows are hidden even though they still exist"""
        store.upsert("k1", ALICE, "note", b"x", now=T0)

        with pytest.raises(NotFound):
            store.get_by_external_id("k1", now=T0 + store.ttl_ms + 1)
        assert count_rows(session_factory) == 1

    def test_entry_is_readable_after_session_closed(self, store):
        store.upsert("k1", ALICE, "note", b"payload", now=T0)
        entry = store.get_by_external_id("k1", now=T0)

        assert entry.external_id == "k1"
        assert entry.owner_key == ALICE
        assert entry.size_bytes == 7


class TestListByOwnerAndCategory:
    """Tests for paginated listing."""

    def test_newest_first(self, store):
        for i in range(3):
            store.upsert(f"k{i}", ALICE, "note", b"x" * (i + 1), now=T0 + i)

        items, total = store.list_by_owner_and_category(ALICE, "note", 1, 10, now=T0 + 10)

        assert total == 3
        assert [item.external_id for item in items] == ["k2", "k1", "k0"]
        assert [item.size_bytes for item in items] == [3, 2, 1]
        assert items[0].expires_at == items[0].created_at + store.ttl_ms

    def test_scoped_to_owner_and_category(self, store):
        store.upsert("a-note", ALICE, "note", b"x", now=T0)
        store.upsert("a-todo", ALICE, "todo", b"x", now=T0)
        store.upsert("b-note", BOB, "note", b"x", now=T0)

        items, total = store.list_by_owner_and_category(ALICE, "note", 1, 10, now=T0)

        assert total == 1
        assert [item.external_id for item in items] == ["a-note"]

    def test_pages_split_results(self, store):
        for i in range(25):
            store.upsert(f"k{i:02d}", ALICE, "note", b"x", now=T0 + i)

        page1, total = store.list_by_owner_and_category(ALICE, "note", 1, 10, now=T0 + 100)
        page3, _ = store.list_by_owner_and_category(ALICE, "note", 3, 10, now=T0 + 100)

        assert total == 25
        assert len(page1) == 10
        assert page1[0].external_id == "k24"
        assert [item.external_id for item in page3] == ["k04", "k03", "k02", "k01", "k00"]

    def test_page_beyond_end_is_empty(self, store):
        store.upsert("k1", ALICE, "note", b"x", now=T0)

        items, total = store.list_by_owner_and_category(ALICE, "note", 5, 10, now=T0)

        assert items == []
        assert total == 1

    def test_page_past_64_bit_offset_is_empty(self, store):
        store.upsert("k1", ALICE, "note", b"x", now=T0)

        items, total = store.list_by_owner_and_category(
            ALICE, "note", 99999999999999999999, 10, now=T0
        )

        assert items == []
        assert total == 1

    def test_expired_entries_excluded_from_items_and_count(self, store):
        store.upsert("old", ALICE, "note", b"x", now=T0)
        store.upsert("new", ALICE, "note", b"x", now=T0 + 2)
        now = T0 + store.ttl_ms + 1

        items, total = store.list_by_owner_and_category(ALICE, "note", 1, 10, now=now)

        assert total == 1
        assert [item.external_id for item in items] == ["new"]


class TestAggregateStats:
    """Tests for full-table aggregates."""

    def test_empty_table(self, store):
        stats = store.aggregate_stats()

        assert stats.entry_count == 0
        assert stats.distinct_owner_count == 0
        assert stats.total_byte_size is None

    def test_counts_and_bytes(self, store):
        store.upsert("k1", ALICE, "note", b"hello", now=T0)
        store.upsert("k2", ALICE, "todo", b"abc", now=T0)
        store.upsert("k3", BOB, "note", b"xy", now=T0)

        stats = store.aggregate_stats()

        assert stats.entry_count == 3
        assert stats.distinct_owner_count == 2
        assert stats.total_byte_size == 10


class TestDeleteOlderThan:
    """Tests for physical deletion."""

    def test_removes_only_rows_before_cutoff(self, store, session_factory):
        store.upsert("before", ALICE, "note", b"x", now=T0 - 1)
        store.upsert("at", ALICE, "note", b"x", now=T0)
        store.upsert("after", ALICE, "note", b"x", now=T0 + 1)

        deleted = store.delete_older_than(T0)

        assert deleted == 1
        assert count_rows(session_factory) == 2
        with pytest.raises(NotFound):
            store.get_by_external_id("before", now=T0)
        assert store.get_by_external_id("at", now=T0).key == "at"
        assert store.get_by_external_id("after", now=T0).key == "after"

    def test_nothing_to_delete(self, store):
        store.upsert("k1", ALICE, "note", b"x", now=T0)
        assert store.delete_older_than(T0) == 0


class TestStorageUnavailable:
    """Database errors surface as StorageUnavailable and are not retried."""

    @pytest.fixture
    def broken_session(self):
        error = OperationalError("SELECT 1", {}, Exception("database is locked"))
        session = Mock()
        session.get_bind.return_value.dialect.name = "sqlite"
        session.execute.side_effect = error
        session.query.side_effect = error
        return session

    @pytest.fixture
    def broken_store(self, broken_session):
        from ephemeral_store.services.entry_store import EntryStore
        return EntryStore(Mock(return_value=broken_session), ttl_ms=1000)

    def test_upsert_rolls_back_and_raises(self, broken_store, broken_session):
        with pytest.raises(StorageUnavailable):
            broken_store.upsert("k1", ALICE, "note", b"x", now=T0)

        broken_session.execute.assert_called_once()
        broken_session.rollback.assert_called_once()
        broken_session.close.assert_called_once()

    def test_reads_raise(self, broken_store):
        with pytest.raises(StorageUnavailable):
            broken_store.get_by_external_id("k1", now=T0)
        with pytest.raises(StorageUnavailable):
            broken_store.list_by_owner_and_category(ALICE, "note", 1, 10, now=T0)
        with pytest.raises(StorageUnavailable):
            broken_store.aggregate_stats()

    def test_delete_raises(self, broken_store, broken_session):
        with pytest.raises(StorageUnavailable):
            broken_store.delete_older_than(T0)
        broken_session.rollback.assert_called_once()
