"""Base classes for the FlowTrack persistence store.

The store is a set of logical tables, each mapping an id to one JSON
document. A backend only moves raw documents around; ``Table`` adds
typing, ordering and first-access seeding on top of it. Every document
carries a version number used for compare-and-swap writes.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from flowtrack.schemas import AppNotification, RoleLabel, SalesRequest, User
from flowtrack.store.seed import default_role_labels, default_users

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class StaleRecordError(Exception):
    """Raised when a conditional write finds a different version than expected."""

    def __init__(self, table: str, record_id: str, expected: int, actual: Optional[int] = None):
        msg = f"Stale write to {table}/{record_id}: expected version {expected}"
        if actual is not None:
            msg += f", found {actual}"
        super().__init__(msg)
        self.table = table
        self.record_id = record_id
        self.expected = expected
        self.actual = actual


@dataclass
class StoredDocument:
    """A raw document as held by a backend."""

    record_id: str
    payload: Dict
    version: int


class TableBackend(ABC):
    """Abstract base class for storage backends.

    Each backend must implement:
    - Ordered reads (first-insertion order, replacement keeps position)
    - Atomic single-document writes with an optional version check
    - Deletes
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier (e.g., 'memory', 'sql')."""
        pass

    @abstractmethod
    def fetch_all(self, table: str) -> List[StoredDocument]:
        """Return every document of a table, oldest insertion first."""
        pass

    @abstractmethod
    def fetch(self, table: str, record_id: str) -> Optional[StoredDocument]:
        """Return one document or None."""
        pass

    @abstractmethod
    def write(
        self,
        table: str,
        record_id: str,
        payload: Dict,
        expected_version: Optional[int] = None,
    ) -> int:
        """Insert or replace a document atomically.

        Args:
            table: Logical table name
            record_id: Document id
            payload: JSON-compatible document
            expected_version: When given, the write only succeeds if the
                stored version equals it (0 means "must not exist")

        Returns:
            The new version of the document

        Raises:
            StaleRecordError: If the version check fails
        """
        pass

    @abstractmethod
    def remove(self, table: str, record_id: str) -> bool:
        """Delete a document. Returns True if it existed."""
        pass

    @abstractmethod
    def clear(self, table: str) -> int:
        """Delete every document of a table. Returns the number removed."""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Number of documents in a table."""
        pass

    def close(self) -> None:
        """Release backend resources."""


class Table(Generic[RecordT]):
    """Typed view over one logical table of a backend."""

    def __init__(
        self,
        backend: TableBackend,
        name: str,
        model: Type[RecordT],
        *,
        newest_first: bool = False,
        seed: Optional[Callable[[], List[RecordT]]] = None,
    ):
        self.backend = backend
        self.name = name
        self.model = model
        self.newest_first = newest_first
        self._seed = seed
        self._seeded = seed is None

    def list_all(self) -> List[RecordT]:
        """All records, newest first for activity tables, insertion order otherwise."""
        self._ensure_seeded()
        docs = self.backend.fetch_all(self.name)
        if self.newest_first:
            docs = list(reversed(docs))
        return [self._load(doc) for doc in docs]

    def get(self, record_id: str) -> Optional[RecordT]:
        self._ensure_seeded()
        doc = self.backend.fetch(self.name, record_id)
        return self._load(doc) if doc else None

    def upsert(self, record: RecordT, expected_version: Optional[int] = None) -> RecordT:
        """Insert or replace a whole record.

        Returns the record as stored, carrying its new version.
        """
        self._ensure_seeded()
        payload = record.model_dump(mode="json", exclude={"version"})
        version = self.backend.write(self.name, record.id, payload, expected_version)
        return record.model_copy(update={"version": version})

    def delete(self, record_id: str) -> bool:
        self._ensure_seeded()
        return self.backend.remove(self.name, record_id)

    def clear(self) -> int:
        return self.backend.clear(self.name)

    def count(self) -> int:
        self._ensure_seeded()
        return self.backend.count(self.name)

    def _load(self, doc: StoredDocument) -> RecordT:
        return self.model.model_validate({**doc.payload, "version": doc.version})

    def _ensure_seeded(self) -> None:
        if self._seeded:
            return
        if self.backend.count(self.name) == 0:
            for record in self._seed():
                payload = record.model_dump(mode="json", exclude={"version"})
                try:
                    self.backend.write(self.name, record.id, payload, expected_version=0)
                except StaleRecordError:
                    logger.debug(f"Seed record {self.name}/{record.id} already written")
            logger.info(f"Seeded default records into {self.name}")
        self._seeded = True

    def __repr__(self) -> str:
        return f"<Table {self.name} on {self.backend.backend_name}>"


class Store:
    """The four logical tables of FlowTrack over one backend."""

    def __init__(
        self,
        backend: TableBackend,
        *,
        user_seed: Optional[Callable[[], List[User]]] = None,
        role_label_seed: Optional[Callable[[], List[RoleLabel]]] = None,
    ):
        self.backend = backend
        self.requests: Table[SalesRequest] = Table(
            backend, "requests", SalesRequest, newest_first=True,
        )
        self.users: Table[User] = Table(
            backend, "users", User, seed=user_seed or default_users,
        )
        self.role_labels: Table[RoleLabel] = Table(
            backend, "role_labels", RoleLabel, seed=role_label_seed or default_role_labels,
        )
        self.notifications: Table[AppNotification] = Table(
            backend, "notifications", AppNotification, newest_first=True,
        )

    def close(self) -> None:
        self.backend.close()
