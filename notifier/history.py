"""Reminder history log.

Appends one JSON object per line (NDJSON) to a daily file for every reminder
that is scheduled, skipped because its time already passed, or announced.
The files are easy to filter with jq when checking why a reminder did or
did not fire.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from notifier.calendar.models import CalendarEvent

# Directory for reminder history logs
LOG_DIR = Path(__file__).parent.parent / "logs" / "reminders"

_error_logger = logging.getLogger("notifier.history.errors")


def _ensure_log_dir() -> None:
    """Create the log directory if it doesn't exist."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)


def log_reminder(
    event: CalendarEvent,
    offset: timedelta,
    fire_at: datetime,
    status: str,
) -> None:
    """Log a reminder state change to the daily history file.

    Args:
        event: The event the reminder belongs to.
        offset: Lead time before the event start.
        fire_at: When the reminder fires (or would have fired).
        status: One of "scheduled", "skipped" or "announced".
    """
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")

    log_entry = {
        "logged_at": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "status": status,
        "event_id": event.id,
        "title": event.title,
        "event_start": event.start.isoformat(),
        "offset_minutes": offset.total_seconds() / 60,
        "fire_at": fire_at.isoformat(),
    }

    try:
        _ensure_log_dir()
        with open(LOG_DIR / f"{today}.log", "a", encoding="utf-8") as f:
            f.write(json.dumps(log_entry) + "\n")
    except OSError as e:
        _error_logger.error("Failed to write reminder history: %s", e)
