"""Tests for the Reminder Scheduler - dedup and relative-time scheduling."""

from datetime import timedelta

import pytest

from conftest import NOW
from notifier.calendar.models import CalendarEvent
from notifier.reminders.scheduler import (
    ReminderScheduler,
    ScheduledReminderSet,
    format_offset,
    reminder_message,
)

TEN = timedelta(minutes=10)
TWO = timedelta(minutes=2)


class RecordingAnnouncer:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def announce(self, message: str) -> None:
        self.messages.append(message)


def _event(event_id: str, minutes_from_now: float, title: str = "Meeting") -> CalendarEvent:
    return CalendarEvent(id=event_id, start=NOW + timedelta(minutes=minutes_from_now), title=title)


@pytest.fixture
def announcer() -> RecordingAnnouncer:
    return RecordingAnnouncer()


@pytest.fixture
def scheduler(queue, announcer) -> ReminderScheduler:
    return ReminderScheduler(queue, announcer)


# ---------------------------------------------------------------------------
# process_events
# ---------------------------------------------------------------------------


class TestProcessEvents:
    def test_standup_scenario(self, scheduler, queue, clock, announcer) -> None:
        tasks = scheduler.process_events([_event("e1", 15, "Standup")])

        assert len(tasks) == 2
        assert [task.fire_at for task in queue.pending()] == [
            NOW + timedelta(minutes=5),
            NOW + timedelta(minutes=13),
        ]

        clock.advance(timedelta(minutes=5))
        queue.run_due()
        clock.advance(timedelta(minutes=8))
        queue.run_due()

        assert announcer.messages == [
            "Upcoming event in 10 minutes: Standup",
            "Upcoming event in 2 minutes: Standup",
        ]

    def test_far_future_event_gets_both_reminders(self, scheduler) -> None:
        tasks = scheduler.process_events([_event("e1", 120)])

        assert len(tasks) == 2
        assert scheduler.reminders.recorded_offsets("e1") == {TEN, TWO}

    def test_event_within_ten_minutes_gets_only_two_minute_reminder(self, scheduler, queue) -> None:
        tasks = scheduler.process_events([_event("e1", 5)])

        assert len(tasks) == 1
        assert tasks[0].fire_at == NOW + timedelta(minutes=3)
        assert len(queue) == 1
        assert scheduler.reminders.recorded_offsets("e1") == {TEN, TWO}

    def test_past_event_records_without_scheduling(self, scheduler, queue) -> None:
        tasks = scheduler.process_events([_event("e1", -5)])

        assert tasks == []
        assert len(queue) == 0
        assert scheduler.reminders.recorded_offsets("e1") == {TEN, TWO}

    def test_fire_time_equal_to_now_is_not_scheduled(self, scheduler) -> None:
        tasks = scheduler.process_events([_event("e1", 10)])

        assert [task.fire_at for task in tasks] == [NOW + timedelta(minutes=8)]

    def test_idempotent_on_identical_input(self, scheduler, queue) -> None:
        events = [_event("e1", 15), _event("e2", 60), _event("e3", 4)]

        first = scheduler.process_events(events)
        recorded = scheduler.reminders.total_recorded()
        second = scheduler.process_events(events)

        assert len(first) == 5
        assert second == []
        assert scheduler.reminders.total_recorded() == recorded
        assert len(queue) == 5

    def test_later_poll_only_adds_new_events(self, scheduler, clock) -> None:
        scheduler.process_events([_event("e1", 30)])
        clock.advance(timedelta(minutes=10))

        tasks = scheduler.process_events([_event("e1", 30), _event("e2", 90)])

        assert [task.name for task in tasks] == ["e2@10 minutes", "e2@2 minutes"]

    def test_moved_event_is_not_rescheduled(self, scheduler) -> None:
        scheduler.process_events([_event("e1", 30)])
        tasks = scheduler.process_events([_event("e1", 90)])
        assert tasks == []

    def test_new_offset_is_scheduled_for_known_event(self, queue, announcer) -> None:
        reminders = ScheduledReminderSet()
        ReminderScheduler(queue, announcer, offsets=[TEN], reminders=reminders).process_events(
            [_event("e1", 30)]
        )

        tasks = ReminderScheduler(queue, announcer, offsets=[TEN, TWO], reminders=reminders).process_events(
            [_event("e1", 30)]
        )

        assert [task.fire_at for task in tasks] == [NOW + timedelta(minutes=28)]

    def test_history_hook_sees_every_decision(self, queue, clock, announcer) -> None:
        calls: list[tuple[str, timedelta, str]] = []
        scheduler = ReminderScheduler(
            queue,
            announcer,
            history=lambda event, offset, fire_at, status: calls.append((event.id, offset, status)),
        )

        scheduler.process_events([_event("e1", 5)])
        clock.advance(timedelta(minutes=3))
        queue.run_due()

        assert calls == [
            ("e1", TEN, "skipped"),
            ("e1", TWO, "scheduled"),
            ("e1", TWO, "announced"),
        ]


# ---------------------------------------------------------------------------
# ScheduledReminderSet
# ---------------------------------------------------------------------------


class TestScheduledReminderSet:
    def test_record_and_lookup(self) -> None:
        reminders = ScheduledReminderSet()
        event = _event("e1", 30)

        reminders.record(event, TEN)

        assert "e1" in reminders
        assert reminders.recorded_offsets("e1") == {TEN}
        assert not reminders.is_complete("e1", [TEN, TWO])
        assert reminders.is_complete("e1", [TEN])

    def test_unknown_event(self) -> None:
        reminders = ScheduledReminderSet()
        assert reminders.recorded_offsets("nope") == set()
        assert not reminders.is_complete("nope", [TEN])

    def test_evict_started(self) -> None:
        reminders = ScheduledReminderSet()
        reminders.record(_event("past", -1), TEN)
        reminders.record(_event("now", 0), TEN)
        reminders.record(_event("future", 1), TEN)

        evicted = reminders.evict_started(NOW)

        assert sorted(evicted) == ["now", "past"]
        assert len(reminders) == 1
        assert "future" in reminders

    def test_evicted_event_seen_again_does_not_refire(self, scheduler, clock) -> None:
        scheduler.process_events([_event("e1", 15)])
        clock.advance(timedelta(minutes=20))
        scheduler.evict_started()

        assert "e1" not in scheduler.reminders
        assert scheduler.process_events([_event("e1", -5)]) == []


# ---------------------------------------------------------------------------
# Message formatting
# ---------------------------------------------------------------------------


class TestFormatOffset:
    def test_minutes(self) -> None:
        assert format_offset(TEN) == "10 minutes"

    def test_single_minute(self) -> None:
        assert format_offset(timedelta(minutes=1)) == "1 minute"

    def test_hours_and_minutes(self) -> None:
        assert format_offset(timedelta(minutes=90)) == "1 hour 30 minutes"

    def test_whole_hours(self) -> None:
        assert format_offset(timedelta(hours=2)) == "2 hours"

    def test_seconds(self) -> None:
        assert format_offset(timedelta(seconds=30)) == "30 seconds"


class TestReminderMessage:
    def test_contains_title(self) -> None:
        assert reminder_message(_event("e1", 15, "Standup"), TWO) == "Upcoming event in 2 minutes: Standup"

    def test_placeholder_title(self) -> None:
        event = CalendarEvent(id="e1", start=NOW)
        assert reminder_message(event, TEN) == "Upcoming event in 10 minutes: No Title"
