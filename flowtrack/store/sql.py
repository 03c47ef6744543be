"""SQLAlchemy storage backend.

Stores every logical table in ``table_records``. Conditional writes are
a version-guarded UPDATE whose row count is checked, so two writers
racing from the same version cannot both succeed on any database.

An in-memory SQLite engine shares one connection between all threads.
Every session on such an engine runs under one lock, so transactions
from different threads never interleave on that connection.
"""

import logging
import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from sqlalchemy import and_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from flowtrack.db.base import Base
from flowtrack.db.models import TableRecord
from flowtrack.db.session import make_engine

from .base import StaleRecordError, StoredDocument, TableBackend

logger = logging.getLogger(__name__)


class SqlBackend(TableBackend):
    """Durable tables in a relational database."""

    def __init__(self, engine: Engine, *, create_tables: bool = True):
        """
        Initialize the backend.

        Args:
            engine: SQLAlchemy engine to use
            create_tables: Create ``table_records`` if it does not exist
        """
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._lock = threading.RLock() if isinstance(engine.pool, StaticPool) else nullcontext()
        if create_tables:
            Base.metadata.create_all(engine)

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> "SqlBackend":
        return cls(make_engine(database_url), **kwargs)

    @property
    def backend_name(self) -> str:
        return "sql"

    @property
    def shares_connection(self) -> bool:
        """Whether sessions are serialized over a single shared connection."""
        return not isinstance(self._lock, nullcontext)

    @contextmanager
    def _session(self, *, begin: bool = False) -> Iterator[Session]:
        with self._lock:
            factory = self._session_factory.begin() if begin else self._session_factory()
            with factory as db:
                yield db

    def fetch_all(self, table: str) -> List[StoredDocument]:
        with self._session() as db:
            rows = (
                db.query(TableRecord)
                .filter(TableRecord.table_name == table)
                .order_by(TableRecord.seq.asc())
                .all()
            )
            return [self._to_document(row) for row in rows]

    def fetch(self, table: str, record_id: str) -> Optional[StoredDocument]:
        with self._session() as db:
            row = db.query(TableRecord).filter(
                and_(
                    TableRecord.table_name == table,
                    TableRecord.record_id == record_id,
                )
            ).first()
            return self._to_document(row) if row else None

    def write(
        self,
        table: str,
        record_id: str,
        payload: Dict,
        expected_version: Optional[int] = None,
    ) -> int:
        try:
            with self._session(begin=True) as db:
                row = db.query(TableRecord).filter(
                    and_(
                        TableRecord.table_name == table,
                        TableRecord.record_id == record_id,
                    )
                ).with_for_update().first()

                current_version = row.version if row else 0
                if expected_version is not None and expected_version != current_version:
                    raise StaleRecordError(table, record_id, expected_version, current_version)

                if row is None:
                    db.add(TableRecord(
                        table_name=table,
                        record_id=record_id,
                        payload=payload,
                        version=1,
                    ))
                    db.flush()
                    return 1

                updated = db.query(TableRecord).filter(
                    and_(
                        TableRecord.seq == row.seq,
                        TableRecord.version == current_version,
                    )
                ).update(
                    {
                        TableRecord.payload: payload,
                        TableRecord.version: current_version + 1,
                        TableRecord.updated_at: datetime.now(timezone.utc),
                    },
                    synchronize_session=False,
                )
                if updated != 1:
                    raise StaleRecordError(table, record_id, current_version)
                return current_version + 1
        except IntegrityError as e:
            # Another writer inserted the same id first
            logger.debug(f"Concurrent insert on {table}/{record_id}: {e}")
            raise StaleRecordError(table, record_id, expected_version or 0) from e

    def remove(self, table: str, record_id: str) -> bool:
        with self._session(begin=True) as db:
            deleted = db.query(TableRecord).filter(
                and_(
                    TableRecord.table_name == table,
                    TableRecord.record_id == record_id,
                )
            ).delete(synchronize_session=False)
            return deleted > 0

    def clear(self, table: str) -> int:
        with self._session(begin=True) as db:
            return db.query(TableRecord).filter(
                TableRecord.table_name == table
            ).delete(synchronize_session=False)

    def count(self, table: str) -> int:
        with self._session() as db:
            return db.query(TableRecord).filter(TableRecord.table_name == table).count()

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _to_document(row: TableRecord) -> StoredDocument:
        return StoredDocument(
            record_id=row.record_id,
            payload=dict(row.payload or {}),
            version=row.version,
        )
