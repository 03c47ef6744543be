"""Tests for the SQLAlchemy storage backend."""

import threading

import pytest
from sqlalchemy import inspect

from flowtrack.db.session import make_engine
from flowtrack.store import SqlBackend, StaleRecordError


@pytest.fixture
def backend():
    backend = SqlBackend(make_engine("sqlite:///:memory:"))
    yield backend
    backend.close()


class TestSqlBackend:
    """Tests for SqlBackend on SQLite."""

    def test_creates_table(self, backend):
        assert "table_records" in inspect(backend.engine).get_table_names()
        assert backend.backend_name == "sql"

    def test_write_and_fetch(self, backend):
        assert backend.write("t", "a", {"x": 1, "nested": {"y": [1, 2]}}) == 1

        doc = backend.fetch("t", "a")
        assert doc.payload == {"x": 1, "nested": {"y": [1, 2]}}
        assert doc.version == 1

    def test_fetch_missing(self, backend):
        assert backend.fetch("t", "missing") is None

    def test_replace_bumps_version(self, backend):
        backend.write("t", "a", {"x": 1})
        assert backend.write("t", "a", {"x": 2}) == 2
        assert backend.fetch("t", "a").payload == {"x": 2}

    def test_insertion_order_kept_on_replace(self, backend):
        for key in ("a", "b", "c"):
            backend.write("t", key, {"k": key})
        backend.write("t", "b", {"k": "b2"})

        assert [d.record_id for d in backend.fetch_all("t")] == ["a", "b", "c"]

    def test_expected_version(self, backend):
        """Test that a write from an old version is refused."""
        backend.write("t", "a", {"x": 1}, expected_version=0)

        with pytest.raises(StaleRecordError):
            backend.write("t", "a", {"x": 2}, expected_version=0)
        assert backend.write("t", "a", {"x": 2}, expected_version=1) == 2
        with pytest.raises(StaleRecordError):
            backend.write("t", "a", {"x": 3}, expected_version=1)

        assert backend.fetch("t", "a").payload == {"x": 2}

    def test_tables_are_independent(self, backend):
        backend.write("requests", "a", {})
        backend.write("users", "a", {})
        assert backend.count("requests") == 1
        assert backend.count("users") == 1

    def test_remove_and_clear(self, backend):
        backend.write("t", "a", {})
        backend.write("t", "b", {})
        backend.write("other", "c", {})

        assert backend.remove("t", "a")
        assert not backend.remove("t", "a")
        assert backend.clear("t") == 1
        assert backend.count("t") == 0
        assert backend.count("other") == 1

    def test_durable_across_backends(self, tmp_path):
        """Test that a file database keeps records between backend instances."""
        url = f"sqlite:///{tmp_path / 'flowtrack.db'}"
        first = SqlBackend.from_url(url)
        first.write("t", "a", {"x": 1})
        first.close()

        second = SqlBackend.from_url(url)
        assert second.fetch("t", "a").payload == {"x": 1}
        second.close()

    def test_in_memory_sessions_are_serialized(self, backend, tmp_path):
        assert backend.shares_connection
        file_backend = SqlBackend.from_url(f"sqlite:///{tmp_path / 'flowtrack.db'}")
        assert not file_backend.shares_connection
        file_backend.close()

    def test_threaded_conditional_writes(self, backend):
        """Test that racing writers from one version on a shared connection yield one winner."""
        backend.write("t", "a", {"n": 0})
        barrier = threading.Barrier(4)
        outcomes = []
        lock = threading.Lock()

        def bump(n):
            barrier.wait()
            try:
                backend.write("t", "a", {"n": n}, expected_version=1)
                outcome = "ok"
            except StaleRecordError:
                outcome = "stale"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=bump, args=(n,)) for n in range(1, 5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["ok", "stale", "stale", "stale"]
        assert backend.fetch("t", "a").version == 2
