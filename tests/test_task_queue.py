"""Tests for the single-threaded task queue."""

from datetime import timedelta

from conftest import NOW


class TestSchedule:
    def test_pending_in_fire_order(self, queue) -> None:
        queue.schedule(NOW + timedelta(minutes=5), lambda: None, name="late")
        queue.schedule(NOW + timedelta(minutes=1), lambda: None, name="early")

        assert [task.name for task in queue.pending()] == ["early", "late"]
        assert queue.next_fire_at() == NOW + timedelta(minutes=1)
        assert len(queue) == 2

    def test_empty_queue_has_no_next(self, queue) -> None:
        assert queue.next_fire_at() is None


class TestRunDue:
    def test_runs_only_due_tasks(self, queue, clock) -> None:
        calls: list[str] = []
        queue.schedule(NOW + timedelta(minutes=1), lambda: calls.append("a"))
        queue.schedule(NOW + timedelta(minutes=10), lambda: calls.append("b"))

        clock.advance(timedelta(minutes=1))
        assert queue.run_due() == 1
        assert calls == ["a"]
        assert len(queue) == 1

    def test_same_time_runs_in_registration_order(self, queue) -> None:
        calls: list[int] = []
        for i in range(3):
            queue.schedule(NOW, lambda i=i: calls.append(i))

        queue.run_due(NOW)
        assert calls == [0, 1, 2]

    def test_failing_task_does_not_stop_others(self, queue) -> None:
        calls: list[str] = []

        def boom() -> None:
            raise RuntimeError("boom")

        queue.schedule(NOW, boom, name="boom")
        queue.schedule(NOW, lambda: calls.append("ok"))

        assert queue.run_due(NOW) == 2
        assert calls == ["ok"]

    def test_task_is_one_shot(self, queue) -> None:
        calls: list[int] = []
        queue.schedule(NOW, lambda: calls.append(1))

        queue.run_due(NOW)
        queue.run_due(NOW + timedelta(hours=1))
        assert calls == [1]


class TestRunForever:
    def test_sleeps_until_next_task(self, queue, clock) -> None:
        calls: list[str] = []
        sleeps: list[float] = []

        def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)
            clock.advance(timedelta(seconds=seconds))

        queue.schedule(NOW + timedelta(seconds=20), lambda: calls.append("fired"))
        queue.run_forever(sleep=fake_sleep)

        assert calls == ["fired"]
        assert sleeps == [20.0]
        assert len(queue) == 0

    def test_long_waits_are_split(self, queue, clock) -> None:
        sleeps: list[float] = []

        def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)
            clock.advance(timedelta(seconds=seconds))

        queue.schedule(NOW + timedelta(seconds=70), lambda: None)
        queue.run_forever(sleep=fake_sleep)

        assert sleeps == [30.0, 30.0, 10.0]

    def test_stops_when_asked(self, queue) -> None:
        queue.schedule(NOW + timedelta(hours=1), lambda: None)
        queue.run_forever(sleep=lambda s: None, should_stop=lambda: True)
        assert len(queue) == 1
