"""Single-threaded timer queue.

Tasks are (fire_at, sequence, action) entries on a heap. The owner drives the
queue either by calling run_due() with the current time or by handing the
thread over to run_forever().
"""

import heapq
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Longest single sleep, so wall-clock jumps (suspend/resume) are noticed
MAX_SLEEP_SECONDS = 30.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(order=True)
class ScheduledTask:
    """A one-shot action due at fire_at."""

    fire_at: datetime
    sequence: int
    action: Callable[[], object] = field(compare=False)
    name: str = field(default="", compare=False)


class TaskQueue:
    """Priority queue of one-shot tasks ordered by fire time.

    Tasks with the same fire time run in the order they were scheduled.
    There is no cancellation: once scheduled, a task runs when due.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self.clock = clock
        self._heap: list[ScheduledTask] = []
        self._sequence = 0

    def __len__(self) -> int:
        return len(self._heap)

    def schedule(self, fire_at: datetime, action: Callable[[], object], name: str = "") -> ScheduledTask:
        """Register an action to run at fire_at."""
        task = ScheduledTask(fire_at=fire_at, sequence=self._sequence, action=action, name=name)
        self._sequence += 1
        heapq.heappush(self._heap, task)
        logger.debug("Scheduled %s at %s", name or "task", fire_at.isoformat())
        return task

    def pending(self) -> list[ScheduledTask]:
        """Return queued tasks in firing order."""
        return sorted(self._heap)

    def next_fire_at(self) -> datetime | None:
        return self._heap[0].fire_at if self._heap else None

    def run_due(self, now: datetime | None = None) -> int:
        """Run every task whose fire time is at or before now.

        A task that raises is logged and dropped; the remaining due tasks
        still run. Tasks scheduled by a running task are run in the same
        pass if they are already due.

        Returns:
            Number of tasks run.
        """
        if now is None:
            now = self.clock()

        ran = 0
        while self._heap and self._heap[0].fire_at <= now:
            task = heapq.heappop(self._heap)
            try:
                task.action()
            except Exception:
                logger.exception("Task %s failed", task.name or task.sequence)
            ran += 1
        return ran

    def run_forever(
        self,
        sleep: Callable[[float], None] = time.sleep,
        should_stop: Callable[[], bool] = lambda: False,
    ) -> None:
        """Run tasks as they come due until should_stop() returns True
        or the queue is empty."""
        while not should_stop():
            self.run_due()

            next_at = self.next_fire_at()
            if next_at is None:
                logger.info("No tasks left to run")
                return

            wait = (next_at - self.clock()).total_seconds()
            if wait > 0:
                sleep(min(wait, MAX_SLEEP_SECONDS))
