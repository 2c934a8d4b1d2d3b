"""
Background sweeps over the task store.

Two cron-driven jobs:
- reminder sweep: report open tasks due inside the reminder window,
- recurrence sweep: insert the next occurrence of every recurring task.

The sweeps are plain methods so they can be called directly; ``start()`` only
adds the timers around them.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional

from croniter import croniter

from .models import Task
from .recurrence import advance_due_date
from .store import TaskStore

logger = logging.getLogger(__name__)

Notifier = Callable[[Task], None]

# A fire time further behind the wall clock than this is skipped, not run late.
MISFIRE_GRACE = timedelta(minutes=1)


def log_reminder(task: Task) -> None:
    logger.info('Reminder: Task "%s" is due soon!', task.title)


def fire_times(cron_expression: str, base: datetime) -> Iterator[datetime]:
    """Successive fire times after ``base``, each one following the previous."""
    schedule = croniter(cron_expression, base)
    while True:
        yield schedule.get_next(datetime)


def next_run(cron_expression: str, base: datetime) -> datetime:
    """Next fire time of a cron expression strictly after ``base``."""
    return next(fire_times(cron_expression, base))


class TaskScheduler:
    """Hourly reminder scan and daily recurrence generation."""

    def __init__(
        self,
        store: TaskStore,
        *,
        notifier: Optional[Notifier] = None,
        reminder_cron: str = "0 * * * *",
        recurrence_cron: str = "0 0 * * *",
        reminder_window: timedelta = timedelta(hours=1),
    ) -> None:
        for expr in (reminder_cron, recurrence_cron):
            if not croniter.is_valid(expr):
                raise ValueError(f"Invalid cron expression: {expr!r}")

        self.store = store
        self.notifier = notifier or log_reminder
        self.reminder_cron = reminder_cron
        self.recurrence_cron = recurrence_cron
        self.reminder_window = reminder_window
        self._runners: Dict[str, asyncio.Task] = {}

    @property
    def is_running(self) -> bool:
        return bool(self._runners)

    def reminder_sweep(self, now: Optional[datetime] = None) -> List[Task]:
        """
        Notify about open tasks with now <= due_date < now + window.

        Tasks are not marked in any way, so a task that stays inside the
        window is reported again by the next sweep.
        """
        if now is None:
            now = datetime.utcnow()

        tasks = self.store.list_due_between(now, now + self.reminder_window)
        for task in tasks:
            self.notifier(task)

        logger.info("Reminder sweep done: %d task(s) due before %s", len(tasks), now + self.reminder_window)
        return tasks

    def recurrence_sweep(self, now: Optional[datetime] = None) -> List[Task]:
        """
        Insert the next occurrence of every recurring task.

        The source task is never modified, so it produces a new occurrence on
        every sweep. A task without a due date is advanced from ``now``.
        """
        if now is None:
            now = datetime.utcnow()

        created: List[Task] = []
        for task in self.store.list_recurring():
            due_date = advance_due_date(task.due_date or now, task.recurring)
            try:
                new_task = self.store.create_task(
                    title=task.title,
                    completed=False,
                    due_date=due_date,
                    category=task.category,
                    recurring=task.recurring,
                    created_at=now,
                )
            except Exception:
                logger.exception("Recurrence insert failed source_id=%s", task.id)
                continue
            created.append(new_task)

        logger.info("Recurring tasks have been generated: %d new task(s)", len(created))
        return created

    async def start(self) -> None:
        if self.is_running:
            return

        loop_jobs = {
            "reminder": (self.reminder_cron, self.reminder_sweep),
            "recurrence": (self.recurrence_cron, self.recurrence_sweep),
        }
        for name, (cron, sweep) in loop_jobs.items():
            self._runners[name] = asyncio.create_task(self._run_forever(name, cron, sweep))
        logger.info(
            "Scheduler started reminder_cron=%r recurrence_cron=%r",
            self.reminder_cron,
            self.recurrence_cron,
        )

    async def stop(self) -> None:
        runners = list(self._runners.values())
        self._runners.clear()
        for runner in runners:
            runner.cancel()
        await asyncio.gather(*runners, return_exceptions=True)
        if runners:
            logger.info("Scheduler stopped")

    async def _run_forever(self, name: str, cron: str, sweep: Callable[[], List[Task]]) -> None:
        # Cron times follow local wall-clock time.
        for fire_at in fire_times(cron, datetime.now()):
            delay = (fire_at - datetime.now()).total_seconds()
            if delay < -MISFIRE_GRACE.total_seconds():
                logger.warning("Skipping missed %s sweep due at %s", name, fire_at)
                continue

            logger.debug("Next %s sweep at %s", name, fire_at)
            await asyncio.sleep(max(0.0, delay))

            try:
                await asyncio.to_thread(sweep)
            except Exception:
                logger.exception("%s sweep failed", name)
