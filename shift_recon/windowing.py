from __future__ import annotations

import datetime
from typing import Any, Dict, Iterable, List, Sequence, Set

from .dates import calendar_date, coerce_date
from .grouping import EmployeeStoreKey, employee_store_key
from .models import MergedShift
from .policy_defaults import DEFAULT_MAX_CONSECUTIVE_DAYS

ONE_DAY = datetime.timedelta(days=1)


def _validate_max_days(max_days: Any) -> int:
    if isinstance(max_days, bool) or not isinstance(max_days, int):
        raise ValueError(f"max_days must be an integer, got {max_days!r}")
    if max_days < 0:
        raise ValueError("max_days cannot be negative")
    return max_days


def consecutive_runs(dates: Iterable[datetime.date]) -> List[List[datetime.date]]:
    """Split distinct dates into maximal runs of back-to-back days."""
    runs: List[List[datetime.date]] = []
    for day in sorted(set(dates)):
        if runs and day - runs[-1][-1] == ONE_DAY:
            runs[-1].append(day)
        else:
            runs.append([day])
    return runs


def allowed_dates(dates: Iterable[datetime.date], max_days: int) -> Set[datetime.date]:
    """First ``max_days`` dates of every run; runs are capped independently."""
    max_days = _validate_max_days(max_days)
    allowed: Set[datetime.date] = set()
    for run in consecutive_runs(dates):
        allowed.update(run[:max_days])
    return allowed


def filter_by_consecutive_days(
    shifts: Sequence[MergedShift],
    range_start: datetime.date | datetime.datetime | str,
    range_end: datetime.date | datetime.datetime | str,
    max_days: int = DEFAULT_MAX_CONSECUTIVE_DAYS,
) -> List[MergedShift]:
    """Restrict shifts to the date range and cap consecutive worked days.

    Bounds are inclusive on the calendar date of ``plan_start``. Within each
    employee/store group only the first ``max_days`` days of any run of
    consecutive plan dates survive. Result order is group first-appearance
    order, then input order within the group.
    """
    max_days = _validate_max_days(max_days)
    start = coerce_date(range_start)
    end = coerce_date(range_end)

    grouped: Dict[EmployeeStoreKey, List[MergedShift]] = {}
    for shift in shifts:
        day = calendar_date(shift.plan_start)
        if day < start or day > end:
            continue
        grouped.setdefault(employee_store_key(shift), []).append(shift)

    result: List[MergedShift] = []
    for members in grouped.values():
        keep = allowed_dates((calendar_date(shift.plan_start) for shift in members), max_days)
        result.extend(shift for shift in members if calendar_date(shift.plan_start) in keep)
    return result
