"""Global Settings - Loads configuration from environment variables.

Centralizes all configuration so modules don't read env vars directly.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    """Application-wide settings loaded from environment variables."""

    # Google Calendar
    google_credentials_path: str = "credentials.json"
    google_token_path: str = "token.json"
    calendar_id: str = "primary"

    # OAuth loopback callback
    oauth_callback_port: int = 3000
    oauth_timeout_seconds: float = 300.0

    # Polling and reminders
    poll_interval: timedelta = timedelta(minutes=10)
    lookahead: timedelta = timedelta(hours=24)
    reminder_offsets: list[timedelta] = field(
        default_factory=lambda: [timedelta(minutes=10), timedelta(minutes=2)]
    )

    # User preferences
    user_timezone: str = "UTC"
    speech_command: str = ""
    log_level: str = "INFO"


def parse_offsets(raw: str) -> list[timedelta]:
    """Parse a comma-separated list of minutes into reminder offsets.

    Duplicates are dropped and the result is sorted longest lead time first,
    so "2,10,10" becomes [10 min, 2 min].

    Args:
        raw: String such as "10,2".

    Returns:
        List of positive timedeltas.

    Raises:
        ValueError: If any entry is not a positive number or the list is empty.
    """
    offsets: set[timedelta] = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        minutes = float(part)
        if minutes <= 0:
            raise ValueError(f"Reminder offsets must be positive, got {part!r}")
        offsets.add(timedelta(minutes=minutes))

    if not offsets:
        raise ValueError("At least one reminder offset is required")

    return sorted(offsets, reverse=True)


def _positive(name: str, default: str) -> float:
    """Read a numeric env var that must be greater than zero."""
    value = float(os.getenv(name, default))
    if not value > 0:
        raise ValueError(f"{name} must be positive, got {value:g}")
    return value


def load_settings() -> Settings:
    """Load settings from environment variables with sensible defaults.

    Environment variables:
        GOOGLE_CALENDAR_CREDENTIALS_PATH: Path to Google OAuth credentials.json
        GOOGLE_CALENDAR_TOKEN_PATH: Path to saved OAuth token.json
        CALENDAR_ID: Calendar to watch (default: "primary")
        OAUTH_CALLBACK_PORT: Loopback port for the OAuth redirect
        OAUTH_TIMEOUT_SECONDS: How long to wait for the OAuth redirect
        POLL_INTERVAL_MINUTES: Minutes between calendar polls
        LOOKAHEAD_HOURS: Size of the fetch window
        REMINDER_OFFSETS_MINUTES: Comma-separated lead times (default: "10,2")
        USER_TIMEZONE: IANA timezone used for all-day events
        SPEECH_COMMAND: Speech command override, e.g. "espeak -s 150"
        LOG_LEVEL: Logging level name

    Returns:
        A populated Settings instance.
    """
    return Settings(
        google_credentials_path=os.getenv("GOOGLE_CALENDAR_CREDENTIALS_PATH", "credentials.json"),
        google_token_path=os.getenv("GOOGLE_CALENDAR_TOKEN_PATH", "token.json"),
        calendar_id=os.getenv("CALENDAR_ID", "primary"),
        oauth_callback_port=int(os.getenv("OAUTH_CALLBACK_PORT", "3000")),
        oauth_timeout_seconds=_positive("OAUTH_TIMEOUT_SECONDS", "300"),
        poll_interval=timedelta(minutes=_positive("POLL_INTERVAL_MINUTES", "10")),
        lookahead=timedelta(hours=_positive("LOOKAHEAD_HOURS", "24")),
        reminder_offsets=parse_offsets(os.getenv("REMINDER_OFFSETS_MINUTES", "10,2")),
        user_timezone=os.getenv("USER_TIMEZONE", "UTC"),
        speech_command=os.getenv("SPEECH_COMMAND", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
