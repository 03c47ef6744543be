"""In-memory storage backend.

Keeps documents in process memory. One lock per table makes every write
an atomic compare-and-swap; documents are deep-copied in and out so
callers never share mutable state with the store.
"""

import copy
import logging
import threading
from typing import Dict, List, Optional

from .base import StaleRecordError, StoredDocument, TableBackend

logger = logging.getLogger(__name__)


class MemoryBackend(TableBackend):
    """Dictionary-backed tables for tests and single-process use."""

    def __init__(self):
        self._tables: Dict[str, Dict[str, StoredDocument]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    def _table(self, table: str) -> tuple[Dict[str, StoredDocument], threading.Lock]:
        with self._guard:
            if table not in self._tables:
                self._tables[table] = {}
                self._locks[table] = threading.Lock()
            return self._tables[table], self._locks[table]

    def fetch_all(self, table: str) -> List[StoredDocument]:
        rows, lock = self._table(table)
        with lock:
            return [copy.deepcopy(doc) for doc in rows.values()]

    def fetch(self, table: str, record_id: str) -> Optional[StoredDocument]:
        rows, lock = self._table(table)
        with lock:
            doc = rows.get(record_id)
            return copy.deepcopy(doc) if doc else None

    def write(
        self,
        table: str,
        record_id: str,
        payload: Dict,
        expected_version: Optional[int] = None,
    ) -> int:
        rows, lock = self._table(table)
        with lock:
            current = rows.get(record_id)
            current_version = current.version if current else 0
            if expected_version is not None and expected_version != current_version:
                logger.debug(f"Rejected stale write to {table}/{record_id}")
                raise StaleRecordError(table, record_id, expected_version, current_version)

            # Assigning an existing key keeps its insertion position
            new_version = current_version + 1
            rows[record_id] = StoredDocument(record_id, copy.deepcopy(payload), new_version)
            return new_version

    def remove(self, table: str, record_id: str) -> bool:
        rows, lock = self._table(table)
        with lock:
            return rows.pop(record_id, None) is not None

    def clear(self, table: str) -> int:
        rows, lock = self._table(table)
        with lock:
            removed = len(rows)
            rows.clear()
            return removed

    def count(self, table: str) -> int:
        rows, lock = self._table(table)
        with lock:
            return len(rows)
