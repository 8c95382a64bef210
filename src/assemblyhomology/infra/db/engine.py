"""Engine construction. The engine is built explicitly and handed to its users."""
from __future__ import annotations

from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlmodel import SQLModel, create_engine

import assemblyhomology.infra.db.tables  # noqa: F401   # registers table mappers


def _set_wal_mode(dbapi_conn, _):
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA journal_mode=WAL")
    cur.execute("PRAGMA synchronous=NORMAL")
    cur.close()


def build_engine(database_url: str) -> Engine:
    """Create an engine for ``database_url``.

    File backed SQLite databases get their parent directory created and WAL
    journaling enabled.
    """
    url = make_url(database_url)
    connect_args: dict = {}
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(database_url, connect_args=connect_args)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def create_tables(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
