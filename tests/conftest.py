"""Shared fixtures for content checkup tests."""

from datetime import datetime, timezone
from typing import List, Tuple

import pytest

from content_checkup.db import init_db
from content_checkup.email_notifier import Mailer


NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class RecordingMailer(Mailer):
    """Mailer that records messages instead of sending them."""

    def __init__(self, result: bool = True):
        self.result = result
        self.sent: List[Tuple[str, str, str]] = []

    def send(self, to_email: str, subject: str, body: str) -> bool:
        self.sent.append((to_email, subject, body))
        return self.result


@pytest.fixture
def conn(tmp_path):
    """Create a temporary database for testing."""
    connection = init_db(str(tmp_path / "test_content_checkup.db"))
    yield connection
    connection.close()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def failing_mailer():
    return RecordingMailer(result=False)
