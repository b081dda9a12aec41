import datetime
import logging
import pytest
from unittest.mock import MagicMock
from docker_janitor.runtime import IntervalScheduler, OnceScheduler


class TestOnceScheduler:
    def test_runs_once(self):
        task = MagicMock()
        assert OnceScheduler().run(task) == 1
        task.assert_called_once_with()


class TestIntervalScheduler:
    def test_first_cycle_is_immediate(self):
        """The task runs before the first sleep."""
        events = []
        scheduler = IntervalScheduler(
            datetime.timedelta(minutes=5),
            sleep=lambda s: events.append(("sleep", s)),
            clock=lambda: 0.0,
        )
        scheduler.run(lambda: events.append("cycle"), max_cycles=3)
        assert events == ["cycle", ("sleep", 300.0), "cycle", ("sleep", 300.0), "cycle"]

    def test_cycle_duration_is_subtracted(self):
        """Cycles start every interval, whatever they take."""
        clock = MagicMock(side_effect=[0.0, 40.0, 300.0, 310.0, 600.0])
        sleep = MagicMock()
        scheduler = IntervalScheduler(
            datetime.timedelta(minutes=5), sleep=sleep, clock=clock
        )
        scheduler.run(MagicMock(), max_cycles=3)
        assert [c.args[0] for c in sleep.call_args_list] == [260.0, 290.0]

    def test_overrunning_cycle_starts_next_immediately(self, caplog):
        clock = MagicMock(side_effect=[0.0, 90.0, 90.0])
        sleep = MagicMock()
        scheduler = IntervalScheduler(
            datetime.timedelta(minutes=1), sleep=sleep, clock=clock
        )
        with caplog.at_level(logging.WARNING):
            scheduler.run(MagicMock(), max_cycles=2)
        sleep.assert_called_once_with(0.0)
        assert "longer than the interval" in caplog.text

    def test_cycles_are_serial(self):
        running = []

        def task():
            assert not running
            running.append(True)
            running.pop()

        sleep = MagicMock()
        scheduler = IntervalScheduler(datetime.timedelta(seconds=1), sleep=sleep)
        assert scheduler.run(task, max_cycles=4) == 4
        assert sleep.call_count == 3

    def test_interval_property(self):
        scheduler = IntervalScheduler(datetime.timedelta(hours=12))
        assert scheduler.interval == datetime.timedelta(hours=12)

    def test_non_positive_interval(self):
        with pytest.raises(ValueError):
            IntervalScheduler(datetime.timedelta(0))

    def test_failed_cycle_keeps_schedule(self, caplog):
        task = MagicMock(side_effect=[RuntimeError("boom"), None, None])
        sleep = MagicMock()
        scheduler = IntervalScheduler(
            datetime.timedelta(seconds=1), sleep=sleep, clock=lambda: 0.0
        )
        with caplog.at_level(logging.ERROR):
            assert scheduler.run(task, max_cycles=3) == 3
        assert task.call_count == 3
        assert sleep.call_count == 2
        assert "Cleaning cycle 1 failed" in caplog.text
