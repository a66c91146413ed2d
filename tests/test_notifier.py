"""Tests for the staleness check."""

from datetime import timedelta
from typing import List

import pytest

from content_checkup.content_store import ContentStore
from content_checkup.db import to_timestamp
from content_checkup.flag_store import SQLiteFlagStore
from content_checkup.models import DEFAULT_BODY, DEFAULT_SUBJECT, SENT_FLAG, ContentItem
from content_checkup.notifier import (
    build_email_body,
    check_stale_content,
    find_stale_items,
    suppression_seconds,
)
from content_checkup.settings_store import SQLiteSettingsStore

ADMIN = "admin@example.com"


class ListContentStore(ContentStore):
    """In-memory content store that counts queries."""

    def __init__(self, items: List[ContentItem]):
        self.items = items
        self.calls = 0

    def list_published_pages(self) -> List[ContentItem]:
        self.calls += 1
        return list(self.items)


def _page(page_id, title, modified):
    return ContentItem(
        id=page_id,
        title=title,
        last_modified=modified,
        permalink=f"https://example.com/{title.lower()}/",
    )


@pytest.fixture
def settings_store(conn):
    return SQLiteSettingsStore(conn)


@pytest.fixture
def flags(conn):
    return SQLiteFlagStore(conn)


def _run(settings_store, content, mailer, flags, now):
    return check_stale_content(
        settings_store=settings_store,
        content_store=content,
        mailer=mailer,
        flags=flags,
        default_recipient=ADMIN,
        now=now,
    )


class TestScenarios:
    def test_sends_only_stale_pages_and_arms_window(self, settings_store, flags, mailer, now):
        settings_store.save({"enabled": True, "timeframe_days": 5})
        content = ListContentStore([
            _page(1, "About", now - timedelta(days=10)),
            _page(2, "Home", now - timedelta(days=1)),
        ])

        result = _run(settings_store, content, mailer, flags, now)

        assert result.sent is True
        assert result.delivered is True
        assert [item.title for item in result.stale_items] == ["About"]
        assert len(mailer.sent) == 1
        to_email, subject, body = mailer.sent[0]
        assert to_email == ADMIN
        assert subject == DEFAULT_SUBJECT
        assert '<p><a href="https://example.com/about/">About</a></p>' in body
        assert "Home" not in body

        assert flags.expires_at(SENT_FLAG) == to_timestamp(now) + 4 * 24 * 60 * 60
        assert flags.get(SENT_FLAG, now=now + timedelta(days=3, hours=23)) is True
        assert flags.get(SENT_FLAG, now=now + timedelta(days=4)) is None

    def test_empty_store_still_sends_base_template(self, settings_store, flags, mailer, now):
        settings_store.save({"enabled": True, "timeframe_days": 3})

        result = _run(settings_store, ListContentStore([]), mailer, flags, now)

        assert result.sent is True
        assert result.stale_items == []
        assert mailer.sent == [(ADMIN, DEFAULT_SUBJECT, DEFAULT_BODY)]

    def test_custom_recipient_subject_and_template(self, settings_store, flags, mailer, now):
        settings_store.save({
            "enabled": True,
            "timeframe_days": 7,
            "recipient": "editor@example.com",
            "subject": "Pages need love",
            "body_template": "Please review:",
        })
        content = ListContentStore([_page(3, "Contact", now - timedelta(days=30))])

        _run(settings_store, content, mailer, flags, now)

        to_email, subject, body = mailer.sent[0]
        assert to_email == "editor@example.com"
        assert subject == "Pages need love"
        assert body == 'Please review:<p><a href="https://example.com/contact/">Contact</a></p>'


class TestSkips:
    @pytest.mark.parametrize("ages", [[], [1], [40, 2], [400]])
    def test_zero_timeframe_never_sends(self, settings_store, flags, mailer, now, ages):
        settings_store.save({"enabled": True, "timeframe_days": 0})
        content = ListContentStore([
            _page(i, f"Page{i}", now - timedelta(days=age)) for i, age in enumerate(ages)
        ])

        result = _run(settings_store, content, mailer, flags, now)

        assert result.sent is False
        assert result.skipped_reason == "no_timeframe"
        assert mailer.sent == []
        assert content.calls == 0
        assert flags.get(SENT_FLAG, now=now) is None

    def test_unset_timeframe_never_sends(self, settings_store, flags, mailer, now):
        content = ListContentStore([_page(1, "About", now - timedelta(days=100))])

        result = _run(settings_store, content, mailer, flags, now)

        assert result.sent is False
        assert mailer.sent == []

    def test_active_window_blocks_send_and_query(self, settings_store, flags, mailer, now):
        settings_store.save({"enabled": True, "timeframe_days": 7})
        flags.set(SENT_FLAG, True, 6 * 24 * 60 * 60, now=now - timedelta(days=1))
        content = ListContentStore([_page(1, "About", now - timedelta(days=100))])

        result = _run(settings_store, content, mailer, flags, now)

        assert result.sent is False
        assert result.skipped_reason == "suppressed"
        assert mailer.sent == []
        assert content.calls == 0

    def test_second_tick_within_window_is_suppressed(self, settings_store, flags, mailer, now):
        settings_store.save({"enabled": True, "timeframe_days": 7})
        content = ListContentStore([_page(1, "About", now - timedelta(days=100))])

        _run(settings_store, content, mailer, flags, now)
        _run(settings_store, content, mailer, flags, now + timedelta(days=1))
        _run(settings_store, content, mailer, flags, now + timedelta(days=6))

        assert len(mailer.sent) == 2


class TestEdges:
    def test_transport_failure_still_arms_window(self, settings_store, flags, failing_mailer, now):
        settings_store.save({"enabled": True, "timeframe_days": 5})

        result = _run(settings_store, ListContentStore([]), failing_mailer, flags, now)

        assert result.sent is True
        assert result.delivered is False
        assert flags.get(SENT_FLAG, now=now + timedelta(days=1)) is True

    def test_one_day_timeframe_arms_zero_length_window(self, settings_store, flags, mailer, now):
        settings_store.save({"enabled": True, "timeframe_days": 1})

        _run(settings_store, ListContentStore([]), mailer, flags, now)
        _run(settings_store, ListContentStore([]), mailer, flags, now)

        assert len(mailer.sent) == 2

    def test_item_exactly_at_cutoff_is_stale(self, now):
        cutoff = now - timedelta(days=5)
        items = [
            _page(1, "Edge", cutoff),
            _page(2, "Fresh", cutoff + timedelta(seconds=1)),
        ]

        assert [item.title for item in find_stale_items(items, cutoff)] == ["Edge"]

    def test_titles_are_escaped(self, now):
        item = _page(1, "Q&A", now)

        assert build_email_body("", [item]) == '<p><a href="https://example.com/q&amp;a/">Q&amp;A</a></p>'

    def test_suppression_seconds(self):
        assert suppression_seconds(5) == 4 * 24 * 60 * 60
        assert suppression_seconds(1) == 0
