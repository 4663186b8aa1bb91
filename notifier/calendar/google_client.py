"""Google Calendar API wrapper.

Handles API client initialization and upcoming-event fetching.
This module isolates the events.list call so the scheduler stays clean.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any
from zoneinfo import ZoneInfo

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from notifier.calendar.models import DEFAULT_TITLE, CalendarEvent
from notifier.errors import FetchError

logger = logging.getLogger(__name__)


def build_calendar_service(creds: Credentials) -> Any:
    """Build an authenticated Calendar v3 client."""
    return build("calendar", "v3", credentials=creds, cache_discovery=False)


def _rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def list_events(
    service: Any,
    calendar_id: str,
    window_start: datetime,
    window_end: datetime,
) -> list[dict[str, Any]]:
    """Fetch raw single-instance events overlapping a time window.

    Args:
        service: Calendar v3 client from build_calendar_service().
        calendar_id: Calendar ID (e.g. "primary").
        window_start: Inclusive lower bound (timezone-aware).
        window_end: Exclusive upper bound (timezone-aware).

    Returns:
        List of raw event dicts, in the provider's start-time order.

    Raises:
        FetchError: If the API call or its authorization fails.
    """
    items: list[dict[str, Any]] = []
    page_token = None

    try:
        while True:
            response = (
                service.events()
                .list(
                    calendarId=calendar_id,
                    timeMin=_rfc3339(window_start),
                    timeMax=_rfc3339(window_end),
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token,
                )
                .execute()
            )
            items.extend(response.get("items", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break
    except HttpError as e:
        raise FetchError(f"Calendar API returned HTTP {e.resp.status} for '{calendar_id}'") from e
    except (GoogleAuthError, OSError) as e:
        raise FetchError(f"Calendar API request for '{calendar_id}' failed: {e}") from e

    return items


def parse_event(raw_event: dict[str, Any], tz: str = "UTC") -> CalendarEvent:
    """Parse a raw Google Calendar event into a CalendarEvent.

    Args:
        raw_event: A raw event dict from the Google Calendar API.
        tz: IANA timezone used to anchor all-day events at local midnight.

    Returns:
        The parsed CalendarEvent.

    Raises:
        ValueError: If the event has no ID or no usable start.
    """
    event_id = raw_event.get("id")
    if not event_id:
        raise ValueError("Event has no id")

    start = raw_event.get("start", {})

    # All-day events use "date", timed events use "dateTime"
    if "dateTime" in start:
        start_dt = datetime.fromisoformat(start["dateTime"].replace("Z", "+00:00"))
        if start_dt.tzinfo is None:
            start_dt = start_dt.replace(tzinfo=ZoneInfo(start.get("timeZone") or tz))
        is_all_day = False
    elif "date" in start:
        day = date.fromisoformat(start["date"])
        start_dt = datetime.combine(day, time.min, tzinfo=ZoneInfo(tz))
        is_all_day = True
    else:
        raise ValueError(f"Event {event_id} has no start")

    return CalendarEvent(
        id=event_id,
        start=start_dt,
        title=raw_event.get("summary") or DEFAULT_TITLE,
        is_all_day=is_all_day,
    )


def fetch_upcoming(
    service: Any,
    calendar_id: str,
    window_start: datetime,
    window_end: datetime,
    tz: str = "UTC",
) -> list[CalendarEvent]:
    """Fetch the events starting within [window_start, window_end).

    Failures are logged and produce an empty result; the next poll
    is the retry.

    Returns:
        CalendarEvents ordered by start time.
    """
    logger.info(
        "Fetching events from calendar '%s' (%s to %s)",
        calendar_id,
        window_start.isoformat(),
        window_end.isoformat(),
    )

    try:
        raw_events = list_events(service, calendar_id, window_start, window_end)
    except FetchError as e:
        logger.error("The API returned an error: %s", e)
        return []

    events: list[CalendarEvent] = []
    for raw in raw_events:
        try:
            event = parse_event(raw, tz)
        except (ValueError, KeyError) as e:
            logger.warning("Skipping unparseable event %s: %s", raw.get("id", "?"), e)
            continue
        # The API also returns events already in progress
        if window_start <= event.start < window_end:
            events.append(event)

    events.sort(key=lambda ev: ev.start)
    logger.info("Retrieved %d upcoming events from calendar '%s'", len(events), calendar_id)
    return events
