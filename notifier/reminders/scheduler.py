"""Reminder Scheduler - Core logic.

Turns the events seen by each poll into one-shot announcement tasks. The same
event is returned by many consecutive polls (the fetch window is much longer
than the poll interval), so every (event, offset) pair is recorded the first
time it is seen and never scheduled again.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Sequence

from notifier.calendar.models import CalendarEvent
from notifier.reminders.task_queue import ScheduledTask, TaskQueue
from notifier.speech.announcer import Announcer

logger = logging.getLogger(__name__)

DEFAULT_OFFSETS = (timedelta(minutes=10), timedelta(minutes=2))

ReminderHook = Callable[[CalendarEvent, timedelta, datetime, str], None]


@dataclass
class RecordedEvent:
    """Offsets already handled for one event, and the start they were computed from."""

    start: datetime
    offsets: set[timedelta] = field(default_factory=set)


class ScheduledReminderSet:
    """Maps event ID to the reminder offsets already scheduled or skipped."""

    def __init__(self) -> None:
        self._entries: dict[str, RecordedEvent] = {}

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def recorded_offsets(self, event_id: str) -> set[timedelta]:
        entry = self._entries.get(event_id)
        return set(entry.offsets) if entry else set()

    def total_recorded(self) -> int:
        """Number of (event, offset) pairs recorded."""
        return sum(len(entry.offsets) for entry in self._entries.values())

    def is_complete(self, event_id: str, offsets: Iterable[timedelta]) -> bool:
        entry = self._entries.get(event_id)
        return entry is not None and entry.offsets.issuperset(offsets)

    def record(self, event: CalendarEvent, offset: timedelta) -> None:
        entry = self._entries.setdefault(event.id, RecordedEvent(start=event.start))
        entry.offsets.add(offset)

    def evict_started(self, now: datetime) -> list[str]:
        """Forget events whose start has passed.

        Every offset of a started event lies in the past, so re-seeing such an
        event later only records its offsets again without scheduling.

        Returns:
            The evicted event IDs.
        """
        evicted = [event_id for event_id, entry in self._entries.items() if entry.start <= now]
        for event_id in evicted:
            del self._entries[event_id]
        return evicted


def format_offset(offset: timedelta) -> str:
    """Render a lead time for speech, e.g. "10 minutes", "1 hour", "1 hour 30 minutes"."""
    total_minutes = int(offset.total_seconds() // 60)
    if total_minutes < 1:
        seconds = int(offset.total_seconds())
        return f"{seconds} second{'s' if seconds != 1 else ''}"

    hours, minutes = divmod(total_minutes, 60)
    parts = []
    if hours:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if minutes:
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")
    return " ".join(parts)


def reminder_message(event: CalendarEvent, offset: timedelta) -> str:
    return f"Upcoming event in {format_offset(offset)}: {event.title}"


class ReminderScheduler:
    """Schedules spoken reminders at fixed lead times before each event."""

    def __init__(
        self,
        queue: TaskQueue,
        announcer: Announcer,
        offsets: Sequence[timedelta] = DEFAULT_OFFSETS,
        reminders: ScheduledReminderSet | None = None,
        history: ReminderHook | None = None,
    ) -> None:
        """Initialize the ReminderScheduler.

        Args:
            queue: Task queue the announcements are registered on. Its clock
                is used as "now".
            announcer: Receives the reminder message at fire time.
            offsets: Lead times before the event start.
            reminders: Dedup state; a fresh set is created when omitted.
            history: Optional hook called for every scheduled, skipped and
                announced reminder.
        """
        self.queue = queue
        self.announcer = announcer
        self.offsets = tuple(offsets)
        self.reminders = reminders if reminders is not None else ScheduledReminderSet()
        self.history = history

    def process_events(self, events: Iterable[CalendarEvent]) -> list[ScheduledTask]:
        """Schedule the not-yet-recorded reminders of each event.

        Args:
            events: Events in ascending start order.

        Returns:
            The tasks registered by this call.
        """
        now = self.queue.clock()
        new_tasks: list[ScheduledTask] = []

        for event in events:
            if self.reminders.is_complete(event.id, self.offsets):
                continue

            recorded = self.reminders.recorded_offsets(event.id)
            for offset in self.offsets:
                if offset in recorded:
                    continue

                fire_at = event.start - offset
                if fire_at > now:
                    new_tasks.append(self._schedule(event, offset, fire_at))
                    logger.info(
                        "Scheduled %s notification for \"%s\" at %s",
                        format_offset(offset),
                        event.title,
                        fire_at.isoformat(),
                    )
                    self._notify_history(event, offset, fire_at, "scheduled")
                else:
                    logger.debug(
                        "%s reminder for \"%s\" already passed", format_offset(offset), event.title
                    )
                    self._notify_history(event, offset, fire_at, "skipped")

                self.reminders.record(event, offset)

        return new_tasks

    def evict_started(self, now: datetime | None = None) -> list[str]:
        """Drop dedup entries for events that have already started."""
        evicted = self.reminders.evict_started(now or self.queue.clock())
        if evicted:
            logger.debug("Evicted %d started events", len(evicted))
        return evicted

    def _schedule(self, event: CalendarEvent, offset: timedelta, fire_at: datetime) -> ScheduledTask:
        message = reminder_message(event, offset)

        def fire() -> None:
            self._notify_history(event, offset, fire_at, "announced")
            self.announcer.announce(message)

        return self.queue.schedule(fire_at, fire, name=f"{event.id}@{format_offset(offset)}")

    def _notify_history(self, event: CalendarEvent, offset: timedelta, fire_at: datetime, status: str) -> None:
        if self.history is not None:
            self.history(event, offset, fire_at, status)
