"""Weekly schedule trigger for the form submission run."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, FrozenSet, Optional

from snack_bot.core.errors import AutomationError, RunInProgressError
from snack_bot.utils.logging import get_logger

logger = get_logger(__name__)

ALL_WEEKDAYS = frozenset(range(7))


def _parse_weekdays(field: str) -> FrozenSet[int]:
    """
    Parse the cron day-of-week field into Python weekdays (Monday=0).

    Cron counts Sunday as 0 (or 7) and Monday as 1.
    """
    if field == "*":
        return ALL_WEEKDAYS

    days = set()
    for part in field.split(","):
        if "-" in part:
            start, end = (int(v) for v in part.split("-", 1))
            if start > end:
                raise ValueError(f"Invalid day range: {part}")
            values = range(start, end + 1)
        else:
            values = [int(part)]
        for value in values:
            if not 0 <= value <= 7:
                raise ValueError(f"Day of week out of range: {value}")
            days.add((value - 1) % 7)
    return frozenset(days)


@dataclass(frozen=True)
class WeeklySchedule:
    """Fires at a fixed local time on selected weekdays."""
    hour: int
    minute: int
    weekdays: FrozenSet[int] = ALL_WEEKDAYS

    @classmethod
    def from_cron(cls, expression: str) -> "WeeklySchedule":
        """
        Build from a five-field cron expression of the form ``M H * * D``.

        Raises:
            ValueError: unsupported or malformed expression
        """
        fields = expression.split()
        if len(fields) != 5:
            raise ValueError(f"Expected five cron fields, got {len(fields)}: {expression!r}")

        minute, hour, day_of_month, month, day_of_week = fields
        if day_of_month != "*" or month != "*":
            raise ValueError("Only day-of-week schedules are supported")

        schedule = cls(hour=int(hour), minute=int(minute), weekdays=_parse_weekdays(day_of_week))
        if not 0 <= schedule.hour <= 23 or not 0 <= schedule.minute <= 59:
            raise ValueError(f"Time out of range: {hour}:{minute}")
        if not schedule.weekdays:
            raise ValueError("Schedule has no weekdays")
        return schedule

    def next_fire_time(self, now: datetime) -> datetime:
        """First fire time strictly after ``now``."""
        candidate = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        while candidate.weekday() not in self.weekdays:
            candidate += timedelta(days=1)
        return candidate


class ScheduleRunner:
    """
    Invokes the run on every schedule fire until stopped.

    Failures of a single run are logged and the schedule carries on. A fire
    that overlaps a run still in progress is skipped.
    """

    def __init__(
        self,
        schedule: WeeklySchedule,
        run: Callable[[], Awaitable[object]],
        now: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        run_timeout: Optional[float] = None
    ):
        self.schedule = schedule
        self.run = run
        self._now = now
        self._sleep = sleep
        self.run_timeout = run_timeout
        self.fire_count = 0
        self._stopped = False
        self.logger = logger.bind(component="schedule_runner")

    def stop(self) -> None:
        self._stopped = True

    async def fire(self) -> bool:
        """Invoke the run once. Returns True if it completed."""
        self.fire_count += 1
        self.logger.info("Running snack bot", fire=self.fire_count)
        try:
            if self.run_timeout is not None:
                await asyncio.wait_for(self.run(), timeout=self.run_timeout)
            else:
                await self.run()
        except RunInProgressError as e:
            self.logger.warning("Skipped scheduled run", reason=str(e))
            return False
        except asyncio.TimeoutError:
            self.logger.warning("Scheduled run timed out; browser left open", timeout=self.run_timeout)
            return False
        except AutomationError as e:
            self.logger.error("Scheduled run failed", error=str(e), error_type=type(e).__name__)
            return False
        except Exception as e:
            self.logger.exception("Scheduled run crashed", error=str(e), error_type=type(e).__name__)
            return False
        self.logger.info("Scheduled run completed", fire=self.fire_count)
        return True

    async def run_forever(self, max_fires: Optional[int] = None) -> None:
        """Sleep until each fire time and fire, until stopped or ``max_fires`` reached."""
        while not self._stopped:
            if max_fires is not None and self.fire_count >= max_fires:
                return
            now = self._now()
            next_time = self.schedule.next_fire_time(now)
            delay = (next_time - now).total_seconds()
            self.logger.info("Next scheduled run", at=next_time.isoformat(), in_seconds=round(delay))
            await self._sleep(delay)
            if self._stopped:
                return
            await self.fire()


def create_schedule_runner(
    expression: str,
    run: Callable[[], Awaitable[object]],
    run_timeout: Optional[float] = None
) -> ScheduleRunner:
    """Factory function to create a schedule runner from a cron expression."""
    return ScheduleRunner(WeeklySchedule.from_cron(expression), run, run_timeout=run_timeout)
