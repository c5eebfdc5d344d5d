"""SQLite helpers for the card catalogue."""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

CATALOGUE_TABLE_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS queries (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      domain TEXT NOT NULL,
      count INTEGER NOT NULL,
      prompt TEXT,
      created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now'))
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS phrases (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      lexeme TEXT NOT NULL,
      english_meaning TEXT NOT NULL,
      phonetic_reading TEXT NOT NULL,
      phonetic_romanization TEXT NOT NULL,
      breakdown TEXT NOT NULL,
      query_id INTEGER REFERENCES queries(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uniq_phrase_query
    ON phrases(lexeme, query_id);
    """,
    """
    CREATE TABLE IF NOT EXISTS atomic_units (
      id INTEGER PRIMARY KEY AUTOINCREMENT,
      lexeme TEXT NOT NULL,
      english_meaning TEXT NOT NULL,
      phonetic_reading TEXT NOT NULL,
      phonetic_romanization TEXT NOT NULL,
      query_id INTEGER REFERENCES queries(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uniq_atomic_unit_lexeme
    ON atomic_units(lexeme);
    """,
    """
    CREATE TABLE IF NOT EXISTS llm_job (
      job_id INTEGER PRIMARY KEY AUTOINCREMENT,
      run_id TEXT,
      prompt_hash TEXT NOT NULL UNIQUE,
      role TEXT NOT NULL,
      model TEXT NOT NULL,
      base_url TEXT,
      temperature REAL,
      system_prompt TEXT,
      user_prompt TEXT NOT NULL,
      request_json TEXT,
      response_text TEXT,
      status TEXT NOT NULL,
      error TEXT,
      created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
      finished_at TEXT
    );
    """,
)


def connect_sqlite(path: str | Path) -> sqlite3.Connection:
    """Connect to a SQLite database ensuring directories and pragmas."""

    db_path = Path(path)
    if str(db_path) != ":memory:" and not db_path.parent.exists():
        db_path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug("Opening SQLite database", extra={"path": str(db_path)})
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    if str(db_path) != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute("PRAGMA synchronous = NORMAL;")
    return conn


def ensure_catalogue_tables(conn: sqlite3.Connection) -> None:
    """Ensure the catalogue tables exist in *conn*."""

    for statement in CATALOGUE_TABLE_STATEMENTS:
        conn.execute(statement)
    conn.commit()


__all__ = [
    "CATALOGUE_TABLE_STATEMENTS",
    "connect_sqlite",
    "ensure_catalogue_tables",
]
