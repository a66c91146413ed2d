"""SQLite database operations for settings, flags, jobs and local pages."""

import sqlite3
from datetime import datetime, timezone
from typing import Optional


def init_db(db_path: str) -> sqlite3.Connection:
    """
    Initialize the database and create tables if they don't exist.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        A connection to the database.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS transients (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            expires_at INTEGER
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS cron_jobs (
            hook TEXT NOT NULL,
            next_run INTEGER NOT NULL,
            recurrence TEXT NOT NULL,
            PRIMARY KEY (hook, next_run)
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS pages (
            id INTEGER PRIMARY KEY,
            title TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'publish',
            type TEXT NOT NULL DEFAULT 'page',
            modified_at TEXT NOT NULL,
            permalink TEXT
        )
    """)
    conn.commit()
    return conn


def to_timestamp(dt: datetime) -> int:
    """Convert a datetime to integer epoch seconds (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def from_timestamp(value: int) -> datetime:
    """Convert epoch seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value, tz=timezone.utc)


def get_meta(conn: sqlite3.Connection, key: str) -> Optional[str]:
    """
    Get a metadata value from the database.

    Args:
        conn: Database connection.
        key: Metadata key.

    Returns:
        The metadata value, or None if not found.
    """
    cursor = conn.execute("SELECT value FROM meta WHERE key = ?", (key,))
    row = cursor.fetchone()
    return row[0] if row else None


def set_meta(conn: sqlite3.Connection, key: str, value: str) -> None:
    """
    Set a metadata value in the database.

    Args:
        conn: Database connection.
        key: Metadata key.
        value: Metadata value.
    """
    conn.execute(
        "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
        (key, value)
    )
    conn.commit()


def upsert_page(
    conn: sqlite3.Connection,
    page_id: int,
    title: str,
    modified_at: datetime,
    permalink: Optional[str] = None,
    status: str = "publish",
    page_type: str = "page",
) -> None:
    """Insert or replace a row in the local pages table."""
    if modified_at.tzinfo is None:
        modified_at = modified_at.replace(tzinfo=timezone.utc)
    conn.execute(
        """
        INSERT OR REPLACE INTO pages (id, title, status, type, modified_at, permalink)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (page_id, title, status, page_type, modified_at.astimezone(timezone.utc).isoformat(), permalink)
    )
    conn.commit()
