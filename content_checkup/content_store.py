"""Abstract content store interface and the local SQLite store."""

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List

from .models import ContentItem

logger = logging.getLogger(__name__)


class ContentStore(ABC):
    """Abstract base class for read-only content sources."""

    @abstractmethod
    def list_published_pages(self) -> List[ContentItem]:
        """
        List every published page-type item.

        Returns:
            ContentItem objects with id, title, last-modified time and permalink.
        """
        pass


def _parse_modified(value: str) -> datetime:
    """Parse a stored ISO8601 timestamp; naive values are UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class SQLiteContentStore(ContentStore):
    """Pages kept in the local ``pages`` table."""

    def __init__(self, conn: sqlite3.Connection, site_url: str):
        self.conn = conn
        self.site_url = site_url.rstrip("/")

    def permalink(self, page_id: int) -> str:
        return f"{self.site_url}/?page_id={page_id}"

    def list_published_pages(self) -> List[ContentItem]:
        cursor = self.conn.execute(
            "SELECT id, title, modified_at, permalink FROM pages "
            "WHERE status = 'publish' AND type = 'page' ORDER BY id"
        )
        items = []
        for row in cursor.fetchall():
            try:
                modified = _parse_modified(row["modified_at"])
            except ValueError:
                logger.warning(f"Skipping page {row['id']}: unparseable modified time '{row['modified_at']}'")
                continue
            items.append(ContentItem(
                id=row["id"],
                title=row["title"],
                last_modified=modified,
                permalink=row["permalink"] or self.permalink(row["id"]),
            ))
        logger.debug(f"Loaded {len(items)} published pages from SQLite")
        return items
