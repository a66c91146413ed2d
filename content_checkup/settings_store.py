"""Reminder settings persistence and write validation."""

import json
import logging
import re
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from .db import get_meta, set_meta
from .models import MAX_TIMEFRAME_DAYS, SETTINGS_OPTION, ReminderSettings

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+\-']+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)*\.[A-Za-z]{2,}$")
_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_DIGITS_RE = re.compile(r"^[0-9]+$")

TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class SettingsError:
    """A rejected settings field."""
    field: str
    code: str
    message: str


def is_email(value: str) -> bool:
    """Return True if ``value`` looks like a single email address."""
    return bool(_EMAIL_RE.match(value)) and ".." not in value


def sanitize_text(value: Optional[str]) -> str:
    """Strip tags, collapse whitespace and trim a free-text field."""
    if not value:
        return ""
    text = _TAG_RE.sub("", str(value))
    return _WHITESPACE_RE.sub(" ", text).strip()


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES


def _parse_timeframe(value: Any) -> Tuple[Optional[int], bool]:
    """
    Parse a timeframe input.

    Returns:
        ``(days, ok)``. Empty input and 0 are accepted and mean "off".
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None, True
    if isinstance(value, bool):
        return None, False
    text = str(value).strip()
    if not _DIGITS_RE.match(text):
        return None, False
    days = int(text)
    if days == 0:
        return 0, True
    if 1 <= days <= MAX_TIMEFRAME_DAYS:
        return days, True
    return None, False


def validate_settings(
    data: Mapping[str, Any],
    current: ReminderSettings,
) -> Tuple[ReminderSettings, List[SettingsError]]:
    """
    Validate a settings write.

    Fields that fail validation keep their value from ``current``; every
    other field takes the submitted value.

    Args:
        data: Submitted values keyed by ReminderSettings field name.
        current: Settings stored before this write.

    Returns:
        The settings to persist and the list of rejected fields.
    """
    errors: List[SettingsError] = []
    if not data:
        errors.append(SettingsError(
            field="noinput",
            code="content_checkup_no_input",
            message="No inputs were provided to validate",
        ))

    new = ReminderSettings(enabled=_coerce_bool(data.get("enabled")))

    days, ok = _parse_timeframe(data.get("timeframe_days"))
    if ok:
        new.timeframe_days = days
    else:
        errors.append(SettingsError(
            field="timeframe_days",
            code="content_checkup_timeframe_error",
            message=f'Please enter a number between 1 and {MAX_TIMEFRAME_DAYS} for the "Amount of days" value.',
        ))
        new.timeframe_days = current.timeframe_days

    recipient = sanitize_text(data.get("recipient"))
    if recipient and not is_email(recipient):
        errors.append(SettingsError(
            field="recipient",
            code="content_checkup_email_error",
            message="Please enter a valid email address",
        ))
        new.recipient = current.recipient
    else:
        new.recipient = recipient or None

    new.subject = sanitize_text(data.get("subject")) or None
    new.body_template = sanitize_text(data.get("body_template")) or None

    return new, errors


class SettingsStore(ABC):
    """Abstract base class for reminder settings storage."""

    @abstractmethod
    def load(self) -> ReminderSettings:
        """Return the stored settings, or defaults when nothing is stored."""
        pass

    @abstractmethod
    def save(self, data: Mapping[str, Any]) -> List[SettingsError]:
        """
        Validate and persist a settings write.

        Returns:
            Rejected fields; an empty list means every field was stored.
        """
        pass


class SQLiteSettingsStore(SettingsStore):
    """Settings stored as a JSON record in the ``meta`` table."""

    def __init__(self, conn: sqlite3.Connection, option_name: str = SETTINGS_OPTION):
        self.conn = conn
        self.option_name = option_name

    def load(self) -> ReminderSettings:
        raw = get_meta(self.conn, self.option_name)
        if not raw:
            return ReminderSettings()
        try:
            return ReminderSettings.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Could not parse stored settings '{self.option_name}': {e}; using defaults")
            return ReminderSettings()

    def save(self, data: Mapping[str, Any]) -> List[SettingsError]:
        current = self.load()
        new, errors = validate_settings(data, current)
        for error in errors:
            logger.warning(f"Settings field '{error.field}' rejected: {error.message}")
        set_meta(self.conn, self.option_name, json.dumps(new.to_dict()))
        logger.info(f"Saved settings '{self.option_name}'")
        return errors
