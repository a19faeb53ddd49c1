"""
Expense Store

Owns the list of expense records:
- load once at startup
- mutate in memory (add / delete)
- write the whole list through to the key-value backend after every mutation

DESIGN DECISION: Ordering is newest-first and is maintained purely by
prepending on add. There is no sort pass anywhere.

CRITICAL: Loading never raises. A missing blob is an empty collection and
a corrupt blob is logged and treated as an empty collection.
"""

import json
from typing import Callable, Optional, Sequence

import structlog
from pydantic import ValidationError

from snap_expense.models.expense import Expense
from snap_expense.services.storage.interface import (
    DuplicateExpenseError,
    KeyValueStoreInterface,
    PersistenceReadError,
)

logger = structlog.get_logger(__name__)

DEFAULT_STORAGE_KEY = "snap_expense_data"

ExpenseListener = Callable[[list[Expense]], None]


def prepend_expense(records: Sequence[Expense], record: Expense) -> list[Expense]:
    """Return a new list with record at the front (newest first)."""
    return [record, *records]


def remove_expense(records: Sequence[Expense], expense_id: str) -> list[Expense]:
    """Return a new list without the record with this id (unchanged if absent)."""
    return [r for r in records if r.id != expense_id]


def serialize_expenses(records: Sequence[Expense]) -> str:
    """Encode records as the persisted JSON array."""
    return json.dumps(
        [r.to_storage_dict() for r in records],
        ensure_ascii=False,
    )


def deserialize_expenses(blob: str) -> list[Expense]:
    """
    Decode a persisted JSON array.

    Entries that fail validation, and repeats of an id already seen,
    are skipped. The rest of the collection is kept.

    Raises:
        PersistenceReadError: If the blob is not a JSON array
    """
    try:
        data = json.loads(blob)
    except (json.JSONDecodeError, TypeError) as e:
        raise PersistenceReadError(f"Stored expenses are not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise PersistenceReadError(
            f"Stored expenses must be a JSON array, got {type(data).__name__}"
        )

    records: list[Expense] = []
    seen: set[str] = set()
    for index, item in enumerate(data):
        try:
            record = Expense.model_validate(item)
        except ValidationError as e:
            logger.warning(
                "stored_expense_skipped",
                index=index,
                error_count=e.error_count(),
            )
            continue
        if record.id in seen:
            logger.warning("stored_expense_duplicate_id", index=index, expense_id=record.id)
            continue
        seen.add(record.id)
        records.append(record)
    return records


class ExpenseStore:
    """
    The single owner of the persisted expense collection.

    Constructed once at startup and passed explicitly to whoever needs it.

    Usage:
        store = ExpenseStore(JsonFileKeyValueStore(data_dir))
        store.load()
        store.add(expense)
        store.delete_by_id(expense.id)
    """

    def __init__(
        self,
        backend: KeyValueStoreInterface,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ):
        self._backend = backend
        self._storage_key = storage_key
        self._records: list[Expense] = []
        self._listeners: list[ExpenseListener] = []

    @property
    def records(self) -> list[Expense]:
        """Current records, newest first (a copy)."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def load(self) -> list[Expense]:
        """
        Read the persisted collection into memory.

        Returns:
            The loaded records; empty if nothing was stored or the
            stored blob could not be read.
        """
        try:
            blob = self._backend.get(self._storage_key)
            records = [] if blob is None else deserialize_expenses(blob)
        except PersistenceReadError as e:
            logger.error("persistence_read_failed", key=self._storage_key, error=str(e))
            records = []

        self._records = records
        logger.info("expenses_loaded", count=len(records))
        return list(records)

    def persist(self, records: Sequence[Expense]) -> None:
        """
        Overwrite the persisted blob with the given records.

        Raises:
            PersistenceWriteError: If the backend write fails
        """
        self._backend.set(self._storage_key, serialize_expenses(records))

    def add(self, record: Expense) -> list[Expense]:
        """
        Prepend a record and write the collection through.

        Returns:
            The new collection

        Raises:
            DuplicateExpenseError: If a record with the same id exists
            PersistenceWriteError: If the write fails (memory is left unchanged)
        """
        if self.get_by_id(record.id) is not None:
            raise DuplicateExpenseError(f"Expense {record.id} already exists")

        updated = prepend_expense(self._records, record)
        self._commit(updated)
        logger.info(
            "expense_added",
            expense_id=record.id,
            merchant=record.merchant,
            amount=str(record.amount),
            count=len(updated),
        )
        return list(updated)

    def delete_by_id(self, expense_id: str) -> list[Expense]:
        """
        Remove a record by id and write the collection through.

        An unknown id leaves the collection as it is.

        Returns:
            The new collection
        """
        updated = remove_expense(self._records, expense_id)
        changed = len(updated) != len(self._records)
        self._commit(updated, notify=changed)
        if changed:
            logger.info("expense_deleted", expense_id=expense_id, count=len(updated))
        else:
            logger.info("expense_delete_missing", expense_id=expense_id)
        return list(updated)

    def get_by_id(self, expense_id: str) -> Optional[Expense]:
        for record in self._records:
            if record.id == expense_id:
                return record
        return None

    def subscribe(self, listener: ExpenseListener) -> Callable[[], None]:
        """
        Call listener with the new collection after every mutation.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, updated: list[Expense], notify: bool = True) -> None:
        # Persist first so a failed write never leaves memory ahead of disk.
        self.persist(updated)
        self._records = updated
        if notify:
            for listener in list(self._listeners):
                listener(list(updated))
