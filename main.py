"""Calendar Reminder Notifier - Entry Point.

Authenticates with Google Calendar, polls for upcoming events every few
minutes, and speaks a reminder at fixed lead times before each event.

Usage:
    python main.py                  # Run until Ctrl-C
    python main.py --once           # Single poll, then exit
    python main.py --say "Hello"    # Test the speech command and exit
"""

import argparse
import logging
import sys
from functools import partial

from config.settings import Settings, load_settings
from notifier.calendar.auth import obtain_credentials
from notifier.calendar.google_client import build_calendar_service, fetch_upcoming
from notifier.errors import AuthExchangeError, CredentialLoadError
from notifier.history import log_reminder
from notifier.poll_loop import PollLoop
from notifier.reminders.scheduler import ReminderScheduler
from notifier.reminders.task_queue import TaskQueue
from notifier.speech.announcer import Announcer, create_announcer

logger = logging.getLogger("main")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # Discovery and oauth request logs are noise at INFO
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def build_notifier(settings: Settings, service, announcer: Announcer, queue: TaskQueue | None = None) -> PollLoop:
    """Wire the fetcher, scheduler and announcer into a poll loop.

    Args:
        settings: Loaded settings.
        service: Authenticated Calendar v3 client.
        announcer: Receives reminder messages.
        queue: Task queue to register on; a new one is created when omitted.

    Returns:
        A PollLoop ready to start().
    """
    if queue is None:
        queue = TaskQueue()
    scheduler = ReminderScheduler(
        queue,
        announcer,
        offsets=settings.reminder_offsets,
        history=log_reminder,
    )
    fetch = partial(_fetch, service, settings.calendar_id, settings.user_timezone)
    return PollLoop(
        queue,
        fetch,
        scheduler,
        interval=settings.poll_interval,
        lookahead=settings.lookahead,
    )


def _fetch(service, calendar_id: str, tz: str, window_start, window_end):
    return fetch_upcoming(service, calendar_id, window_start, window_end, tz)


def main() -> None:
    """Parse arguments and run the notifier."""
    parser = argparse.ArgumentParser(description="Speak reminders before Google Calendar events.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Poll the calendar once, print what would be scheduled, and exit.",
    )
    parser.add_argument(
        "--say",
        metavar="TEXT",
        help="Announce TEXT with the configured speech command and exit.",
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL (e.g. DEBUG).")
    args = parser.parse_args()

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"ERROR: invalid configuration: {e}")
        sys.exit(1)

    configure_logging(args.log_level or settings.log_level)
    announcer = create_announcer(settings.speech_command)

    if args.say:
        announcer.announce(args.say)
        return

    try:
        creds = obtain_credentials(
            settings.google_credentials_path,
            settings.google_token_path,
            callback_port=settings.oauth_callback_port,
            timeout=settings.oauth_timeout_seconds,
        )
    except CredentialLoadError as e:
        logger.error("Error loading client secret file: %s", e)
        sys.exit(1)
    except AuthExchangeError as e:
        logger.error("Authorization failed: %s", e)
        sys.exit(1)

    service = build_calendar_service(creds)
    loop = build_notifier(settings, service, announcer)
    queue = loop.queue

    if args.once:
        loop.run_cycle()
        for task in queue.pending():
            print(f"  {task.fire_at.isoformat()}  {task.name}")
        return

    logger.info(
        "Polling calendar '%s' every %s for reminders %s before each event",
        settings.calendar_id,
        settings.poll_interval,
        ", ".join(str(offset) for offset in settings.reminder_offsets),
    )
    loop.start()
    try:
        queue.run_forever()
    except KeyboardInterrupt:
        logger.info("Stopping notifier")


if __name__ == "__main__":
    main()
