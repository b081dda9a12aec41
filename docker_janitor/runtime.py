import datetime
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Scheduler(ABC):
    """
    Triggers cleaning cycles.

    A scheduler calls its task serially: a cycle always runs to completion
    before the next one starts, and the first cycle starts immediately.
    """

    @abstractmethod
    def run(self, task: Callable[[], object], *args, **kwargs) -> int:
        """
        Run the task according to the schedule.

        Args:
            task (Callable[[], object]): One cleaning cycle.

        Returns:
            int: The number of cycles run.

        Example:
            >>> scheduler.run(cleaner.run_cycle)
        """
        pass


class OnceScheduler(Scheduler):
    def run(self, task: Callable[[], object], *args, **kwargs) -> int:
        task()
        logger.info("Execution complete, exit")
        return 1


class IntervalScheduler(Scheduler):
    """
    Runs a task now, then again every ``interval``, measured from the start of
    the previous cycle. A cycle that takes longer than the interval is followed
    by the next one right away. A failing cycle is logged and the schedule goes on.

    Attributes:
        _interval (datetime.timedelta): Time between the starts of two cycles.
        _sleep (Callable[[float], None]): Waits for the given number of seconds.
        _clock (Callable[[], float]): Monotonic clock, in seconds.
    """

    def __init__(
        self,
        interval: datetime.timedelta,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval.total_seconds() <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        self._interval = interval
        self._sleep = sleep
        self._clock = clock

    @property
    def interval(self) -> datetime.timedelta:
        return self._interval

    def _regular_delay(self, elapsed: float = 0.0):
        delay = self._interval.total_seconds() - elapsed
        if delay < 0:
            logger.warning(
                f"Cleaning cycle took {elapsed:.1f}s, longer than the interval"
            )
            delay = 0.0
        self._sleep(delay)

    def run(
        self,
        task: Callable[[], object],
        max_cycles: Optional[int] = None,
        *args,
        **kwargs,
    ) -> int:
        """
        Run the task until the process is stopped, or ``max_cycles`` times.

        Args:
            task (Callable[[], object]): One cleaning cycle.
            max_cycles (Optional[int]): Stop after this many cycles. None runs forever.

        Returns:
            int: The number of cycles run.
        """
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            logger.debug(f"Starting cleaning cycle {cycles + 1}")
            started = self._clock()
            try:
                task()
            except Exception:
                logger.exception(f"Cleaning cycle {cycles + 1} failed")
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self._regular_delay(self._clock() - started)
        return cycles
