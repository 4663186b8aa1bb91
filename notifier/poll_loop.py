"""Poll Loop - fetch-and-schedule on a fixed interval.

The first cycle runs immediately; every following cycle is itself a task on
the queue, registered a fixed interval after the previous one.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from notifier.calendar.models import CalendarEvent
from notifier.reminders.scheduler import ReminderScheduler
from notifier.reminders.task_queue import TaskQueue

logger = logging.getLogger(__name__)

# (window_start, window_end) -> events ordered by start
EventSource = Callable[[datetime, datetime], list[CalendarEvent]]


class PollLoop:
    """Periodically fetches upcoming events and hands them to the scheduler."""

    def __init__(
        self,
        queue: TaskQueue,
        fetch: EventSource,
        scheduler: ReminderScheduler,
        interval: timedelta = timedelta(minutes=10),
        lookahead: timedelta = timedelta(hours=24),
    ) -> None:
        self.queue = queue
        self.fetch = fetch
        self.scheduler = scheduler
        self.interval = interval
        self.lookahead = lookahead
        self.cycles = 0
        self._next_at: datetime | None = None

    def start(self) -> None:
        """Run one cycle now and keep one registered every interval."""
        self._next_at = self.queue.clock()
        self._tick()

    def run_cycle(self) -> list[CalendarEvent]:
        """One poll: fetch the lookahead window and schedule its reminders.

        Returns:
            The events fetched.
        """
        self.cycles += 1
        now = self.queue.clock()
        self.scheduler.evict_started(now)

        events = self.fetch(now, now + self.lookahead)
        if events:
            logger.info("Upcoming events:")
            for event in events:
                logger.info("%s - %s", event.start.isoformat(), event.title)
        else:
            logger.info("No upcoming events found.")

        self.scheduler.process_events(events)
        return events

    def _tick(self) -> None:
        try:
            self.run_cycle()
        except Exception:
            logger.exception("Poll cycle %d failed", self.cycles)
        finally:
            now = self.queue.clock()
            self._next_at += self.interval
            # Missed cycles (e.g. after suspend) are not replayed
            if self._next_at <= now:
                self._next_at = now + self.interval
            self.queue.schedule(self._next_at, self._tick, name="poll")
