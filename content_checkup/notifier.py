"""Staleness check: find pages that haven't changed in a while and email a reminder."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from html import escape
from typing import Iterable, List, Optional

from .content_store import ContentStore
from .email_notifier import Mailer
from .flag_store import FlagStore
from .models import DEFAULT_BODY, DEFAULT_SUBJECT, SENT_FLAG, ContentItem
from .settings_store import SettingsStore

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class CheckResult:
    """Outcome of one staleness check."""
    sent: bool
    delivered: Optional[bool] = None   # transport result; None when nothing was sent
    stale_items: List[ContentItem] = field(default_factory=list)
    skipped_reason: Optional[str] = None


def find_stale_items(items: Iterable[ContentItem], cutoff: datetime) -> List[ContentItem]:
    """Return items last modified at or before ``cutoff``."""
    return [item for item in items if item.last_modified <= cutoff]


def render_item_line(item: ContentItem) -> str:
    return f'<p><a href="{escape(item.permalink or "", quote=True)}">{escape(item.title)}</a></p>'


def build_email_body(template: str, stale_items: Iterable[ContentItem]) -> str:
    """Append one link paragraph per stale item to ``template``."""
    body = template
    for item in stale_items:
        body += render_item_line(item)
    return body


def suppression_seconds(timeframe_days: int) -> int:
    """Length of the suppression window: one day shorter than the timeframe."""
    return max(timeframe_days * SECONDS_PER_DAY - SECONDS_PER_DAY, 0)


def check_stale_content(
    settings_store: SettingsStore,
    content_store: ContentStore,
    mailer: Mailer,
    flags: FlagStore,
    default_recipient: str,
    now: Optional[datetime] = None,
) -> CheckResult:
    """
    Run one scheduled staleness check.

    Once a reminder is due, an email is always sent, even when no page is
    stale, and the suppression window is armed whether or not the transport
    reported success.

    Args:
        settings_store: Source of the current reminder settings.
        content_store: Source of published pages.
        mailer: Mail transport.
        flags: Storage for the suppression flag.
        default_recipient: Address used when no recipient is configured.
        now: Reference time (defaults to the current UTC time).

    Returns:
        A CheckResult describing what happened.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    settings = settings_store.load()

    if flags.get(SENT_FLAG, now=now):
        logger.info("Reminder already sent within the current window; skipping check")
        return CheckResult(sent=False, skipped_reason="suppressed")

    if not settings.timeframe_days:
        logger.info("No timeframe configured; skipping check")
        return CheckResult(sent=False, skipped_reason="no_timeframe")

    timeframe_days = abs(settings.timeframe_days)
    cutoff = now - timedelta(days=timeframe_days)

    pages = content_store.list_published_pages()
    stale = find_stale_items(pages, cutoff)
    logger.info(
        f"Found {len(stale)} of {len(pages)} published pages untouched since {cutoff.isoformat()}"
    )

    to_email = settings.recipient or default_recipient
    subject = settings.subject or DEFAULT_SUBJECT
    body = build_email_body(settings.body_template or DEFAULT_BODY, stale)

    delivered = mailer.send(to_email, subject, body)
    if not delivered:
        logger.warning(f"Reminder to {to_email} was not accepted by the mail transport")

    window = suppression_seconds(timeframe_days)
    flags.set(SENT_FLAG, True, window, now=now)
    logger.info(f"Suppressing further reminders for {window // SECONDS_PER_DAY} day(s)")

    return CheckResult(sent=True, delivered=delivered, stale_items=stale)
