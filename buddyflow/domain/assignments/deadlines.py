"""Deadline arithmetic for assignments."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from dateutil.rrule import DAILY, FR, MO, TH, TU, WE, rrule

DAY = timedelta(days=1)
AT_RISK_DAYS = 2
CRITICAL_DAYS = 1


def add_business_days(start: datetime, days: int) -> datetime:
    """
    Move ``start`` forward by ``days`` weekdays, keeping the time of day.

    Raises:
        ValueError: If days is not positive
    """
    if days < 1:
        raise ValueError("days must be positive")
    weekdays = rrule(DAILY, byweekday=(MO, TU, WE, TH, FR), dtstart=start + DAY, count=days)
    return list(weekdays)[-1]


def whole_days_between(start: datetime, end: datetime) -> int:
    """Number of started days between two instants (``ceil``), never negative."""
    elapsed = (end - start) / DAY
    return max(math.ceil(elapsed), 0)


@dataclass(frozen=True)
class DeadlineCheck:
    """Deadline status of an assignment at one instant."""

    is_overdue: bool
    days_remaining: int
    is_at_risk: bool
    is_critical: bool


def evaluate_deadline(deadline: datetime, now: datetime) -> DeadlineCheck:
    days = math.ceil((deadline - now) / DAY)
    return DeadlineCheck(
        is_overdue=now > deadline,
        days_remaining=max(0, days),
        is_at_risk=0 < days <= AT_RISK_DAYS,
        is_critical=0 < days <= CRITICAL_DAYS,
    )
