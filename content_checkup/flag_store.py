"""Ephemeral flags with expiry (used for the notification suppression window)."""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from .db import to_timestamp

logger = logging.getLogger(__name__)


class FlagStore(ABC):
    """Abstract base class for set-with-expiry flag storage."""

    @abstractmethod
    def get(self, key: str, now: Optional[datetime] = None) -> Optional[Any]:
        """
        Return the stored value, or None if missing or expired.

        Args:
            key: Flag name.
            now: Reference time (defaults to the current UTC time).
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any, expiration_seconds: int, now: Optional[datetime] = None) -> None:
        """
        Store a value that expires ``expiration_seconds`` after ``now``.

        A non-positive expiration stores a flag that is already expired.
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class SQLiteFlagStore(FlagStore):
    """Flag store backed by the ``transients`` table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get(self, key: str, now: Optional[datetime] = None) -> Optional[Any]:
        now = now or datetime.now(timezone.utc)
        row = self.conn.execute(
            "SELECT value, expires_at FROM transients WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        if row["expires_at"] is not None and row["expires_at"] <= to_timestamp(now):
            logger.debug(f"Flag '{key}' expired; removing it")
            self.delete(key)
            return None
        return json.loads(row["value"])

    def set(self, key: str, value: Any, expiration_seconds: int, now: Optional[datetime] = None) -> None:
        now = now or datetime.now(timezone.utc)
        expires_at = to_timestamp(now) + max(int(expiration_seconds), 0)
        self.conn.execute(
            "INSERT OR REPLACE INTO transients (key, value, expires_at) VALUES (?, ?, ?)",
            (key, json.dumps(value), expires_at)
        )
        self.conn.commit()

    def delete(self, key: str) -> None:
        self.conn.execute("DELETE FROM transients WHERE key = ?", (key,))
        self.conn.commit()

    def expires_at(self, key: str) -> Optional[int]:
        """Epoch seconds at which ``key`` expires, if it is stored."""
        row = self.conn.execute(
            "SELECT expires_at FROM transients WHERE key = ?", (key,)
        ).fetchone()
        return row["expires_at"] if row else None
