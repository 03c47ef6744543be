"""Pytest configuration and shared fixtures."""

import pytest

from flowtrack.core.config import Settings
from flowtrack.core.workflow.states import ApprovalChain
from flowtrack.core.workflow.service import WorkflowEngine
from flowtrack.db.session import make_engine
from flowtrack.services.notifications import NotificationService
from flowtrack.store import MemoryBackend, SqlBackend, Store


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        store_backend="memory",
        database_url="sqlite:///:memory:",
        default_user_password="testpass123",
        enrichment_url=None,
    )


@pytest.fixture
def memory_store():
    store = Store(MemoryBackend())
    yield store
    store.close()


@pytest.fixture
def sql_store():
    """Store over an in-memory SQLite database."""
    store = Store(SqlBackend(make_engine("sqlite:///:memory:")))
    yield store
    store.close()


@pytest.fixture
def file_sql_store(tmp_path):
    """Store over a SQLite database file, one pooled connection per thread."""
    store = Store(SqlBackend(make_engine(f"sqlite:///{tmp_path / 'flowtrack.db'}")))
    yield store
    store.close()


@pytest.fixture
def store(memory_store):
    return memory_store


@pytest.fixture
def notifier(store):
    return NotificationService(store, write_retries=3)


@pytest.fixture
def engine(store, notifier):
    """Engine with the default two-level chain."""
    return WorkflowEngine(store, notifier)


@pytest.fixture
def three_level_engine(store, notifier):
    return WorkflowEngine(store, notifier, chain=ApprovalChain.with_depth(3))


@pytest.fixture
def single_level_engine(store, notifier):
    return WorkflowEngine(store, notifier, chain=ApprovalChain.with_depth(1))
