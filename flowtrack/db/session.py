"""Engine factory for the durable store."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


def make_engine(database_url: str, *, echo: bool = False) -> Engine:
    """
    Create an engine for ``database_url``.

    SQLite connections may be used from any thread. An in-memory database
    lives on a single shared connection, so callers using it from several
    threads must serialize their sessions, as ``SqlBackend`` does.
    """
    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise each checkout sees an empty database
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)
