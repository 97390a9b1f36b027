"""
Database engine initialisation and schema creation.
"""

import sys
from typing import Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from medical_service.config import get_env
from medical_service.tables import metadata


def _enable_sqlite_foreign_keys(dbapi_conn, _record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_uri: str) -> Engine:
    """Create a SQLAlchemy engine; SQLite gets FK enforcement for ON DELETE CASCADE."""
    kwargs = {}
    if db_uri.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if db_uri in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, or every checkout sees an empty database
            kwargs["poolclass"] = StaticPool

    engine = create_engine(db_uri, echo=False, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_engine(db_uri: Optional[str] = None) -> Engine:
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = db_uri or get_env("DB_URI")
    engine = create_db_engine(db_uri)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def create_tables(engine: Engine) -> None:
    """Create any missing tables; existing ones are left untouched."""
    metadata.create_all(engine, checkfirst=True)
    print(f"[init] Tables checked: {', '.join(sorted(metadata.tables))}")
