"""SQLite database initialization and session management."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from loguru import logger
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

# Import models so SQLModel registers them
from signaldesk.storage import models as _models  # noqa: F401

_engines: dict[str, Engine] = {}

# (table, column, DDL type) for columns added after the first release
_ADDED_COLUMNS = [
    ("signal", "summary", "TEXT"),
    ("signal", "raw_content", "TEXT"),
    ("insight", "preview_platform", "TEXT"),
]


def _migrate_if_needed(db_path: Path) -> None:
    """Add any missing columns to existing tables (lightweight migration).

    This handles databases created before the signal summary/raw content
    and insight preview platform columns existed. Tables that do not exist
    yet are left to ``create_all``.
    """
    if not db_path.exists():
        return

    conn = sqlite3.connect(str(db_path))
    try:
        for table, col, col_type in _ADDED_COLUMNS:
            cursor = conn.execute(f"PRAGMA table_info({table})")
            existing_cols = {row[1] for row in cursor.fetchall()}
            if existing_cols and col not in existing_cols:
                logger.info(f"Adding column {table}.{col}")
                conn.execute(f"ALTER TABLE {table} ADD COLUMN {col} {col_type}")

        conn.commit()
    finally:
        conn.close()


def get_engine(db_path: Path) -> Engine:
    """Get or create a SQLAlchemy engine for the given database path."""
    key = str(db_path)
    if key not in _engines:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        _migrate_if_needed(db_path)
        # API handlers run in a threadpool, so connections cross threads
        engine = create_engine(
            f"sqlite:///{db_path}",
            echo=False,
            connect_args={"check_same_thread": False},
        )
        SQLModel.metadata.create_all(engine)
        _engines[key] = engine
    return _engines[key]


def get_session(db_path: Path) -> Session:
    """Create a new database session."""
    engine = get_engine(db_path)
    return Session(engine, expire_on_commit=False)


def dispose_engines() -> None:
    """Close every cached engine (used on shutdown and between tests)."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
