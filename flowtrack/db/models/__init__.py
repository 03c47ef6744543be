"""Database models for FlowTrack."""

from flowtrack.db.models.record import TableRecord

__all__ = [
    "TableRecord",
]
