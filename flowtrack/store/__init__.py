"""Persistence store for FlowTrack.

A set of logical tables (requests, users, role labels, notifications)
over an injectable backend: in-memory for tests, SQL for production.
"""

from .base import (
    StaleRecordError,
    StoredDocument,
    Store,
    Table,
    TableBackend,
)
from .memory import MemoryBackend
from .sql import SqlBackend
from .registry import create_store, list_backends, register_backend

__all__ = [
    "StaleRecordError",
    "StoredDocument",
    "Store",
    "Table",
    "TableBackend",
    "MemoryBackend",
    "SqlBackend",
    "create_store",
    "list_backends",
    "register_backend",
]
