from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from .models import Recurrence

# relativedelta clamps to the last day of a shorter month (Jan 31 -> Feb 28/29).
_STEPS = {
    Recurrence.DAILY: timedelta(days=1),
    Recurrence.WEEKLY: timedelta(days=7),
    Recurrence.MONTHLY: relativedelta(months=1),
}


def advance_due_date(due_date: datetime, recurring: Recurrence) -> datetime:
    """Move a due date forward by one recurrence period, keeping the time of day."""
    try:
        step = _STEPS[Recurrence(recurring)]
    except KeyError:
        raise ValueError(f"Task does not recur: {recurring!r}") from None
    return due_date + step
