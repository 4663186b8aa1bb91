"""Calendar data model shared by the fetcher and the reminder scheduler."""

from dataclasses import dataclass
from datetime import datetime

DEFAULT_TITLE = "No Title"


@dataclass(frozen=True)
class CalendarEvent:
    """A single upcoming event instance.

    Attributes:
        id: Provider event ID, unique per calendar.
        start: Timezone-aware start time.
        title: Display title, or a placeholder when the event has none.
        is_all_day: True when the start came from a date rather than a dateTime.
    """

    id: str
    start: datetime
    title: str = DEFAULT_TITLE
    is_all_day: bool = False

    def __str__(self) -> str:
        return f"{self.start.isoformat()} - {self.title}"
