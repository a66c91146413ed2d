"""Recurring job registration, schedule reconciliation and the due-job runner."""

import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Mapping, Optional

from .db import from_timestamp, to_timestamp
from .models import CRON_HOOK, ReminderSettings, ScheduledJob

logger = logging.getLogger(__name__)

RECURRENCES: Dict[str, timedelta] = {
    "hourly": timedelta(hours=1),
    "twicedaily": timedelta(hours=12),
    "daily": timedelta(days=1),
}


def _make_aware_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class Scheduler(ABC):
    """Abstract base class for a named recurring job registry."""

    @abstractmethod
    def next_scheduled(self, hook: str) -> Optional[datetime]:
        """Return the next run time of ``hook``, or None if it isn't scheduled."""
        pass

    @abstractmethod
    def schedule_event(self, timestamp: datetime, recurrence: str, hook: str) -> None:
        """Register ``hook`` to first run at ``timestamp`` and then every ``recurrence``."""
        pass

    @abstractmethod
    def unschedule_event(self, timestamp: datetime, hook: str) -> None:
        """Cancel the registration of ``hook`` whose next run is ``timestamp``."""
        pass

    @abstractmethod
    def due_jobs(self, now: datetime) -> List[ScheduledJob]:
        """Return jobs whose next run is at or before ``now``, oldest first."""
        pass

    @abstractmethod
    def reschedule(self, job: ScheduledJob, next_run: datetime) -> None:
        """Move ``job`` to ``next_run``."""
        pass


class SQLiteScheduler(Scheduler):
    """Job registry backed by the ``cron_jobs`` table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def next_scheduled(self, hook: str) -> Optional[datetime]:
        row = self.conn.execute(
            "SELECT MIN(next_run) AS next_run FROM cron_jobs WHERE hook = ?", (hook,)
        ).fetchone()
        if row is None or row["next_run"] is None:
            return None
        return from_timestamp(row["next_run"])

    def schedule_event(self, timestamp: datetime, recurrence: str, hook: str) -> None:
        if recurrence not in RECURRENCES:
            raise ValueError(f"Unknown recurrence '{recurrence}'. Expected one of: {', '.join(RECURRENCES)}")
        self.conn.execute(
            "INSERT OR REPLACE INTO cron_jobs (hook, next_run, recurrence) VALUES (?, ?, ?)",
            (hook, to_timestamp(timestamp), recurrence)
        )
        self.conn.commit()

    def unschedule_event(self, timestamp: datetime, hook: str) -> None:
        self.conn.execute(
            "DELETE FROM cron_jobs WHERE hook = ? AND next_run = ?",
            (hook, to_timestamp(timestamp))
        )
        self.conn.commit()

    def due_jobs(self, now: datetime) -> List[ScheduledJob]:
        cursor = self.conn.execute(
            "SELECT hook, next_run, recurrence FROM cron_jobs WHERE next_run <= ? ORDER BY next_run",
            (to_timestamp(now),)
        )
        return [
            ScheduledJob(hook=row["hook"], next_run=from_timestamp(row["next_run"]), recurrence=row["recurrence"])
            for row in cursor.fetchall()
        ]

    def reschedule(self, job: ScheduledJob, next_run: datetime) -> None:
        self.conn.execute(
            "UPDATE cron_jobs SET next_run = ? WHERE hook = ? AND next_run = ?",
            (to_timestamp(next_run), job.hook, to_timestamp(job.next_run))
        )
        self.conn.commit()


def reconcile_schedule(
    settings: ReminderSettings,
    scheduler: Scheduler,
    now: Optional[datetime] = None,
    hook: str = CRON_HOOK,
) -> Optional[datetime]:
    """
    Bring the job registration in line with ``settings.enabled``.

    - Enabled and not scheduled: register a daily job starting now.
    - Disabled and scheduled: cancel it, keyed by its next run time.
    - Otherwise nothing changes.

    Args:
        settings: Current reminder settings.
        scheduler: Job registry.
        now: Reference time (defaults to the current UTC time).
        hook: Job name.

    Returns:
        The next scheduled run after reconciliation, or None.
    """
    now = _make_aware_utc(now or datetime.now(timezone.utc))
    next_run = scheduler.next_scheduled(hook)

    if settings.enabled and next_run is None:
        scheduler.schedule_event(now, "daily", hook)
        logger.info(f"Scheduled '{hook}' daily starting {now.isoformat()}")
        return scheduler.next_scheduled(hook)

    if not settings.enabled and next_run is not None:
        scheduler.unschedule_event(next_run, hook)
        logger.info(f"Unscheduled '{hook}' (was due {next_run.isoformat()})")
        return scheduler.next_scheduled(hook)

    return next_run


def next_slot(job: ScheduledJob, now: datetime) -> datetime:
    """
    Return the first slot of ``job``'s recurrence that is after ``now``.

    Slots stay aligned to the first scheduled run time, so missed slots collapse
    into one run instead of drifting.
    """
    interval = RECURRENCES[job.recurrence]
    elapsed = now - job.next_run
    if elapsed < timedelta(0):
        return job.next_run + interval
    missed = elapsed // interval
    return job.next_run + interval * (missed + 1)


def run_due_jobs(
    scheduler: Scheduler,
    handlers: Mapping[str, Callable[[], None]],
    now: Optional[datetime] = None,
) -> int:
    """
    Run every job that is due at ``now``.

    Each job is moved to its next slot before its handler runs. Jobs with no
    registered handler are still advanced.

    Args:
        scheduler: Job registry.
        handlers: Callables keyed by hook name.
        now: Reference time (defaults to the current UTC time).

    Returns:
        Number of handlers that ran.
    """
    now = _make_aware_utc(now or datetime.now(timezone.utc))
    ran = 0
    for job in scheduler.due_jobs(now):
        upcoming = next_slot(job, now)
        scheduler.reschedule(job, upcoming)

        handler = handlers.get(job.hook)
        if handler is None:
            logger.warning(f"No handler registered for '{job.hook}'; skipped")
            continue

        logger.info(f"Running '{job.hook}' (due {job.next_run.isoformat()}, next {upcoming.isoformat()})")
        handler()
        ran += 1
    return ran
