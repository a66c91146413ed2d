"""WordPress REST API content store."""

import logging
from datetime import datetime, timezone
from html import unescape
from typing import List, Optional

import requests

from .config import ContentSourceConfig
from .content_store import ContentStore
from .models import ContentItem

logger = logging.getLogger(__name__)

PAGES_ENDPOINT = "/wp-json/wp/v2/pages"
PAGE_FIELDS = "id,title,modified_gmt,link"


def _parse_modified_gmt(value: str) -> datetime:
    """WordPress returns ``modified_gmt`` as a naive ISO8601 string in UTC."""
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


class WordPressContentStore(ContentStore):
    """Read published pages from a WordPress site over its REST API."""

    def __init__(self, config: ContentSourceConfig, session: Optional[requests.Session] = None):
        """
        Initialize the WordPress client.

        Args:
            config: Content source configuration (``wordpress_url`` is required).
            session: Optional requests session, mainly for tests.
        """
        if not config.wordpress_url:
            raise ValueError("WordPress content source requires WORDPRESS_URL")
        self.config = config
        self.base_url = config.wordpress_url.rstrip("/")
        self.session = session or requests.Session()
        if config.wordpress_username and config.wordpress_app_password:
            self.session.auth = (config.wordpress_username, config.wordpress_app_password)

    def _fetch_page(self, page: int) -> requests.Response:
        url = f"{self.base_url}{PAGES_ENDPOINT}"
        params = {
            "status": "publish",
            "per_page": self.config.per_page,
            "page": page,
            "_fields": PAGE_FIELDS,
        }
        response = self.session.get(url, params=params, timeout=30)
        response.raise_for_status()
        return response

    @staticmethod
    def _to_item(entry: dict) -> ContentItem:
        title = entry.get("title", {})
        if isinstance(title, dict):
            title = title.get("rendered", "")
        return ContentItem(
            id=int(entry["id"]),
            title=unescape(str(title)),
            last_modified=_parse_modified_gmt(entry["modified_gmt"]),
            permalink=entry.get("link"),
        )

    def list_published_pages(self) -> List[ContentItem]:
        items: List[ContentItem] = []
        page = 1
        total_pages = 1
        try:
            while page <= total_pages:
                response = self._fetch_page(page)
                total_pages = int(response.headers.get("X-WP-TotalPages", "1") or 1)
                for entry in response.json():
                    try:
                        items.append(self._to_item(entry))
                    except (KeyError, ValueError, TypeError, AttributeError) as e:
                        logger.warning(f"Skipping malformed page entry from {self.base_url}: {e!r}")
                page += 1
        except requests.RequestException as e:
            logger.error(f"WordPress API error fetching pages from {self.base_url}: {e}")
            raise

        logger.info(f"Fetched {len(items)} published pages from {self.base_url}")
        return items
