"""Main entry point for the content checkup reminder."""

import argparse
import logging
import os
import sqlite3
import sys
import time
from datetime import datetime, timezone
from typing import List, Optional

from .config import AppConfig, load_config
from .content_store import ContentStore, SQLiteContentStore
from .db import from_timestamp, init_db, upsert_page
from .email_notifier import SMTPMailer
from .flag_store import SQLiteFlagStore
from .models import CRON_HOOK, SENT_FLAG
from .notifier import CheckResult, check_stale_content
from .scheduler import SQLiteScheduler, reconcile_schedule, run_due_jobs
from .settings_store import SQLiteSettingsStore
from .wordpress_client import WordPressContentStore

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


def _create_content_store(config: AppConfig, conn: sqlite3.Connection) -> ContentStore:
    """Create a content store based on configuration."""
    if config.content.source == "wordpress":
        return WordPressContentStore(config.content)
    else:
        return SQLiteContentStore(conn, config.content.site_url)


def _run_check(config: AppConfig, conn: sqlite3.Connection) -> CheckResult:
    return check_stale_content(
        settings_store=SQLiteSettingsStore(conn),
        content_store=_create_content_store(config, conn),
        mailer=SMTPMailer(config.smtp),
        flags=SQLiteFlagStore(conn),
        default_recipient=config.admin_email,
    )


def _tick(config: AppConfig) -> int:
    """Reconcile the schedule and run whatever is due. Returns the number of jobs run."""
    conn = init_db(config.db_path)
    try:
        settings = SQLiteSettingsStore(conn).load()
        scheduler = SQLiteScheduler(conn)
        reconcile_schedule(settings, scheduler)
        return run_due_jobs(scheduler, {CRON_HOOK: lambda: _run_check(config, conn)})
    finally:
        conn.close()


def cmd_run(args: argparse.Namespace) -> None:
    """Run due jobs once (suitable for a crontab entry)."""
    config = load_config()
    ran = _tick(config)
    logger.info(f"Run completed; {ran} job(s) executed.")


def cmd_serve(args: argparse.Namespace) -> None:
    """Poll for due jobs until interrupted."""
    config = load_config()
    interval = args.interval or config.poll_interval_seconds
    logger.info(f"Polling for due jobs every {interval} seconds...")
    try:
        while True:
            try:
                _tick(config)
            except Exception as e:
                logger.error(f"Tick failed: {e}", exc_info=True)
            time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")


def cmd_check(args: argparse.Namespace) -> None:
    """Run one staleness check now, outside the schedule."""
    config = load_config()
    conn = init_db(config.db_path)
    try:
        if args.force:
            logger.info("Clearing suppression window before check...")
            SQLiteFlagStore(conn).delete(SENT_FLAG)
        result = _run_check(config, conn)
    finally:
        conn.close()

    if result.sent:
        status = "delivered" if result.delivered else "not accepted by transport"
        print(f"Reminder sent ({status}); {len(result.stale_items)} stale page(s).")
        for item in result.stale_items:
            print(f"  - {item.title} (last modified {item.last_modified.isoformat()})")
    else:
        print(f"No reminder sent: {result.skipped_reason}")


def cmd_configure(args: argparse.Namespace) -> None:
    """Apply a validated settings write, then reconcile the schedule."""
    config = load_config(require_mail=False)
    conn = init_db(config.db_path)
    try:
        store = SQLiteSettingsStore(conn)
        data = store.load().to_dict()
        if args.enabled is not None:
            data["enabled"] = args.enabled
        if args.days is not None:
            data["timeframe_days"] = args.days
        if args.email is not None:
            data["recipient"] = args.email
        if args.subject is not None:
            data["subject"] = args.subject
        if args.message is not None:
            data["body_template"] = args.message

        errors = store.save(data)
        next_run = reconcile_schedule(store.load(), SQLiteScheduler(conn))
    finally:
        conn.close()

    for error in errors:
        print(f"Error ({error.field}): {error.message}", file=sys.stderr)
    print(f"Settings saved. Next scheduled check: {next_run.isoformat() if next_run else 'not scheduled'}")
    if errors:
        sys.exit(1)


def cmd_status(args: argparse.Namespace) -> None:
    """Print stored settings, schedule and suppression state."""
    config = load_config(require_mail=False)
    conn = init_db(config.db_path)
    try:
        settings = SQLiteSettingsStore(conn).load()
        next_run = SQLiteScheduler(conn).next_scheduled(CRON_HOOK)
        flags = SQLiteFlagStore(conn)
        suppressed = flags.get(SENT_FLAG) is not None
        suppressed_until = flags.expires_at(SENT_FLAG) if suppressed else None
    finally:
        conn.close()

    print(f"Enabled:          {settings.enabled}")
    print(f"Timeframe (days): {settings.timeframe_days if settings.timeframe_days is not None else '-'}")
    print(f"Recipient:        {settings.recipient or '(admin email)'}")
    print(f"Subject:          {settings.subject or '(default)'}")
    print(f"Next check:       {next_run.isoformat() if next_run else 'not scheduled'}")
    if suppressed_until is not None:
        print(f"Suppressed until: {from_timestamp(suppressed_until).isoformat()}")
    else:
        print("Suppressed until: -")


def cmd_add_page(args: argparse.Namespace) -> None:
    """Insert or update a page in the local content store."""
    config = load_config(require_mail=False)
    modified = datetime.fromisoformat(args.modified) if args.modified else datetime.now(timezone.utc)
    conn = init_db(config.db_path)
    try:
        upsert_page(
            conn,
            page_id=args.id,
            title=args.title,
            modified_at=modified,
            permalink=args.url,
            status=args.status,
        )
    finally:
        conn.close()
    print(f"Stored page {args.id}: {args.title}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Email a reminder when website pages have gone untouched for a while"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sub_run = subparsers.add_parser("run", help="Reconcile the schedule and run due jobs once")
    sub_run.set_defaults(func=cmd_run)

    sub_serve = subparsers.add_parser("serve", help="Run due jobs in a polling loop")
    sub_serve.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between polls (default: POLL_INTERVAL_SECONDS or 300)"
    )
    sub_serve.set_defaults(func=cmd_serve)

    sub_check = subparsers.add_parser("check", help="Run a staleness check now")
    sub_check.add_argument(
        "--force",
        action="store_true",
        help="Clear the suppression window first so a reminder is sent if one is due"
    )
    sub_check.set_defaults(func=cmd_check)

    sub_configure = subparsers.add_parser("configure", help="Update reminder settings")
    enable_group = sub_configure.add_mutually_exclusive_group()
    enable_group.add_argument("--enable", dest="enabled", action="store_true", default=None,
                              help="Enable the daily check")
    enable_group.add_argument("--disable", dest="enabled", action="store_false",
                              help="Disable the daily check")
    sub_configure.add_argument("--days", type=str, default=None,
                               help="Days a page may go untouched (1-30, 0 to turn off)")
    sub_configure.add_argument("--email", type=str, default=None, help="Recipient address")
    sub_configure.add_argument("--subject", type=str, default=None, help="Email subject")
    sub_configure.add_argument("--message", type=str, default=None, help="Text placed before the page list")
    sub_configure.set_defaults(func=cmd_configure, enabled=None)

    sub_status = subparsers.add_parser("status", help="Show settings and schedule state")
    sub_status.set_defaults(func=cmd_status)

    sub_add_page = subparsers.add_parser("add-page", help="Add or update a page in the local content store")
    sub_add_page.add_argument("--id", type=int, required=True, help="Page ID")
    sub_add_page.add_argument("--title", type=str, required=True, help="Page title")
    sub_add_page.add_argument("--modified", type=str, default=None,
                              help="Last modified time, ISO8601 (default: now)")
    sub_add_page.add_argument("--url", type=str, default=None, help="Permalink (default: SITE_URL/?page_id=ID)")
    sub_add_page.add_argument("--status", type=str, default="publish", help="Page status (default: publish)")
    sub_add_page.set_defaults(func=cmd_add_page)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point with command-line argument parsing."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.func(args)
    except ValueError as e:
        logger.error(f"Invalid configuration or input: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error in {args.command}: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
