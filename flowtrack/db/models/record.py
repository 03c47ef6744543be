"""Document table backing the durable store.

Every logical table (requests, users, role labels, notifications) lives
in this one physical table, keyed by (table_name, record_id).
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON, Integer, UniqueConstraint

from flowtrack.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TableRecord(Base):
    """
    One JSON document of a logical table.

    ``seq`` preserves first-insertion order; ``version`` is bumped on
    every write and guards conditional updates.
    """
    __tablename__ = "table_records"
    __table_args__ = (
        UniqueConstraint("table_name", "record_id", name="uq_table_records_table_record"),
    )

    seq = Column(Integer, primary_key=True, autoincrement=True)
    table_name = Column(String(64), nullable=False, index=True)
    record_id = Column(String(64), nullable=False)

    payload = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<TableRecord {self.table_name}/{self.record_id} v{self.version}>"
