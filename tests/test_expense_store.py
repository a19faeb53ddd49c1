"""
Tests for the Expense Store

Covers ordering, write-through persistence, reload behaviour and the
handling of damaged persisted data.
"""

import json

import pytest

from snap_expense.services.storage import (
    DEFAULT_STORAGE_KEY,
    DuplicateExpenseError,
    ExpenseStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PersistenceWriteError,
    deserialize_expenses,
    prepend_expense,
    remove_expense,
    serialize_expenses,
)
from snap_expense.services.storage.interface import PersistenceReadError

from tests.conftest import make_expense


class FailingKeyValueStore(InMemoryKeyValueStore):
    """Backend whose writes always fail."""

    def set(self, key, value):
        raise PersistenceWriteError("disk full")


class TestListHelpers:
    """Tests for the pure list operations."""

    def test_prepend_puts_record_first(self):
        """Test that a new record becomes the head of the list."""
        older = make_expense("Older")
        newer = make_expense("Newer")
        records = prepend_expense([older], newer)
        assert records == [newer, older]

    def test_prepend_does_not_mutate_input(self):
        """Test that the input list is left alone."""
        original = [make_expense("A")]
        prepend_expense(original, make_expense("B"))
        assert len(original) == 1

    def test_remove_unknown_id_is_noop(self):
        """Test that removing a missing id changes nothing."""
        records = [make_expense("A"), make_expense("B")]
        assert remove_expense(records, "missing") == records

    def test_remove_drops_only_matching_record(self):
        """Test that exactly the matching record is removed."""
        a, b = make_expense("A"), make_expense("B")
        assert remove_expense([a, b], a.id) == [b]


class TestSerialization:
    """Tests for the persisted JSON array."""

    def test_blob_layout(self):
        """Test the keys written per record."""
        record = make_expense("Costa", "9.99", id="r1")
        data = json.loads(serialize_expenses([record]))
        assert data == [{
            "id": "r1",
            "amount": 9.99,
            "merchant": "Costa",
            "date": "2024-01-05",
            "timestamp": 1_700_000_000_000,
        }]

    def test_roundtrip_preserves_order_and_fields(self):
        """Test that decoding gives back the same records in the same order."""
        records = [
            make_expense("Uber", "12.50", description="Travel", image_url="data:image/jpeg;base64,AAAA"),
            make_expense("Costa", "9.99"),
        ]
        assert deserialize_expenses(serialize_expenses(records)) == records

    def test_non_ascii_merchant(self):
        """Test that non-ASCII text survives the round trip."""
        record = make_expense("Café Nero")
        blob = serialize_expenses([record])
        assert "Café Nero" in blob
        assert deserialize_expenses(blob)[0].merchant == "Café Nero"

    @pytest.mark.parametrize("blob", ["not json", "{\"id\": 1}", "42", "null"])
    def test_unreadable_blob_raises(self, blob):
        """Test that a non-array blob is a read error."""
        with pytest.raises(PersistenceReadError):
            deserialize_expenses(blob)

    def test_invalid_entries_are_skipped(self):
        """Test that one bad entry does not lose the others."""
        good = make_expense("Costa", id="good")
        blob = json.dumps([
            good.to_storage_dict(),
            {"id": "bad", "amount": -3, "merchant": "X", "date": "2024-01-01", "timestamp": 1},
            {"id": "no-merchant", "amount": 1, "date": "2024-01-01", "timestamp": 1},
            "not an object",
        ])
        assert deserialize_expenses(blob) == [good]

    def test_duplicate_ids_keep_first(self):
        """Test that a repeated id is dropped after the first occurrence."""
        first = make_expense("First", id="same")
        second = make_expense("Second", id="same")
        blob = json.dumps([first.to_storage_dict(), second.to_storage_dict()])
        assert deserialize_expenses(blob) == [first]


class TestExpenseStore:
    """Tests for the Store operations."""

    def test_load_empty(self, backend):
        """Test that nothing stored loads as an empty collection."""
        store = ExpenseStore(backend)
        assert store.load() == []
        assert store.records == []

    def test_add_prepends_and_persists(self, store, backend):
        """Test that add puts the record first and writes through."""
        first = make_expense("First")
        second = make_expense("Second")
        store.add(first)
        result = store.add(second)

        assert result[0] == second
        assert len(result) == 2
        assert store.records == [second, first]
        persisted = json.loads(backend.get(DEFAULT_STORAGE_KEY))
        assert [r["merchant"] for r in persisted] == ["Second", "First"]

    def test_add_then_delete_restores_empty(self, store):
        """Test that deleting the only record leaves an empty store."""
        record = make_expense()
        store.add(record)
        assert store.delete_by_id(record.id) == []
        assert store.records == []

    def test_delete_unknown_id(self, store):
        """Test that deleting a missing id keeps the collection."""
        record = make_expense()
        store.add(record)
        assert store.delete_by_id("missing") == [record]

    def test_duplicate_id_rejected(self, store):
        """Test that a second record with the same id is refused."""
        store.add(make_expense("A", id="dup"))
        with pytest.raises(DuplicateExpenseError):
            store.add(make_expense("B", id="dup"))
        assert len(store) == 1

    def test_reload_matches_last_persist(self, backend):
        """Test that a fresh Store sees the last written collection."""
        store = ExpenseStore(backend)
        store.load()
        a, b, c = make_expense("A"), make_expense("B"), make_expense("C")
        store.add(a)
        store.add(b)
        store.add(c)
        store.delete_by_id(b.id)

        reloaded = ExpenseStore(backend)
        assert reloaded.load() == [c, a]

    def test_malformed_blob_loads_empty(self):
        """Test that a corrupt blob does not raise."""
        backend = InMemoryKeyValueStore({DEFAULT_STORAGE_KEY: "{corrupt"})
        store = ExpenseStore(backend)
        assert store.load() == []

    def test_custom_storage_key(self, backend):
        """Test that the Store writes under its configured key."""
        store = ExpenseStore(backend, storage_key="other_key")
        store.load()
        store.add(make_expense())
        assert backend.get("other_key") is not None
        assert backend.get(DEFAULT_STORAGE_KEY) is None

    def test_failed_write_leaves_memory_unchanged(self):
        """Test that memory never runs ahead of persisted state."""
        store = ExpenseStore(FailingKeyValueStore())
        store.load()
        with pytest.raises(PersistenceWriteError):
            store.add(make_expense())
        assert store.records == []

    def test_get_by_id(self, store):
        """Test lookup by id."""
        a = make_expense("A", "0.10")
        store.add(a)
        store.add(make_expense("B", "0.20"))
        assert store.get_by_id(a.id) == a
        assert store.get_by_id("missing") is None

    def test_long_merchant_survives_reload(self, backend):
        """Test that long free text is neither rejected nor dropped on load."""
        store = ExpenseStore(backend)
        store.load()
        record = make_expense("M" * 300, description="d" * 600)
        store.add(record)
        store.add(make_expense("Costa"))

        reloaded = ExpenseStore(backend)
        assert len(reloaded.load()) == 2
        assert reloaded.get_by_id(record.id) == record

    def test_records_is_a_copy(self, store):
        """Test that callers cannot mutate the Store's list."""
        store.add(make_expense())
        store.records.clear()
        assert len(store) == 1

    def test_subscribers_notified(self, store):
        """Test that listeners receive every new collection."""
        seen = []
        unsubscribe = store.subscribe(seen.append)
        record = make_expense()
        store.add(record)
        store.delete_by_id(record.id)
        store.delete_by_id("missing")
        unsubscribe()
        store.add(make_expense())

        assert seen == [[record], []]

    def test_file_backend_end_to_end(self, tmp_path):
        """Test the Store against the JSON file backend."""
        backend = JsonFileKeyValueStore(tmp_path)
        store = ExpenseStore(backend)
        store.load()
        record = make_expense("Costa", "9.99")
        store.add(record)

        assert (tmp_path / "snap_expense_data.json").exists()
        assert ExpenseStore(JsonFileKeyValueStore(tmp_path)).load() == [record]
