"""
Local Key-Value Storage Implementations

DESIGN DECISION: Each key is one JSON file under the data directory.
Writes go to a temporary file in the same directory and are moved into
place with os.replace, so a crash mid-write leaves the previous blob
intact.

TRADEOFFS:
- Whole-file rewrite on every change (fine for hundreds of receipts)
- No locking (there is exactly one writer)
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from snap_expense.services.storage.interface import (
    KeyValueStoreInterface,
    PersistenceReadError,
    PersistenceWriteError,
)

logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    File-backed key-value store.

    Key "snap_expense_data" lives at <data_dir>/snap_expense_data.json.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir).expanduser()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        """File path backing a key."""
        if not key or os.sep in key or (os.altsep and os.altsep in key) or key in {".", ".."}:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceReadError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            self._write_atomic(path, value)
        except OSError as e:
            raise PersistenceWriteError(f"Failed to write {path}: {e}") from e

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write_atomic(self, path: Path, value: str) -> None:
        """Write to a sibling temp file, fsync, then swap it into place."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.stem}.",
            suffix=".tmp",
            dir=path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(value)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError:
            logger.warning("blob_write_failed", path=str(path))
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dict-backed store for tests and for running without a data directory."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
