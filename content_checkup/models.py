"""Data models for reminder settings, content and scheduled jobs."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Mapping, Optional


SETTINGS_OPTION = "content-checkup-reminder"
CRON_HOOK = "content_checkup_cron_hook"
SENT_FLAG = "content_checkup_sent"

DEFAULT_SUBJECT = "Content Checkup Reminder"
DEFAULT_BODY = (
    "Check on your website content. Make sure it is all still accurate and up-to-date. "
    "The following pages could use a check:"
)

MAX_TIMEFRAME_DAYS = 30


@dataclass
class ReminderSettings:
    """Stored reminder settings."""
    enabled: bool = False
    timeframe_days: Optional[int] = None   # 0 or None turns the check off
    recipient: Optional[str] = None        # falls back to the admin address
    subject: Optional[str] = None
    body_template: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReminderSettings":
        timeframe = data.get("timeframe_days")
        return cls(
            enabled=bool(data.get("enabled", False)),
            timeframe_days=int(timeframe) if timeframe not in (None, "") else None,
            recipient=data.get("recipient") or None,
            subject=data.get("subject") or None,
            body_template=data.get("body_template") or None,
        )


@dataclass
class ContentItem:
    """A published page as seen by the staleness check."""
    id: int
    title: str
    last_modified: datetime        # timezone-aware UTC
    permalink: Optional[str] = None


@dataclass
class ScheduledJob:
    """A registered recurring job."""
    hook: str
    next_run: datetime             # timezone-aware UTC
    recurrence: str                # "hourly", "twicedaily" or "daily"
