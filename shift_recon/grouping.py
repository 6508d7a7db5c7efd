from __future__ import annotations

import datetime
from typing import Dict, Iterable, List, Tuple

from .dates import calendar_date
from .models import MergedShift, ShiftGroup

EmployeeStoreKey = Tuple[str, str]
DayKey = Tuple[str, str, datetime.date]


def employee_store_key(record) -> EmployeeStoreKey:
    return (record.employee, record.store)


def day_key(record, start: datetime.datetime) -> DayKey:
    """Matching key: employee, store and calendar date of ``start``."""
    return (record.employee, record.store, calendar_date(start))


def group_label(employee: str, store: str) -> str:
    return f"{employee} ({store})"


def group_by_employee_store(shifts: Iterable[MergedShift]) -> Dict[str, ShiftGroup]:
    """Group shifts under ``"<employee> (<store>)"`` labels.

    Labels keep first-appearance order and each group keeps its shifts in
    input order. The group role is taken from the first shift seen; later
    shifts are not checked against it.
    """
    roles: Dict[str, str] = {}
    members: Dict[str, List[MergedShift]] = {}
    for shift in shifts:
        label = group_label(shift.employee, shift.store)
        if label not in members:
            roles[label] = shift.role
            members[label] = []
        members[label].append(shift)
    return {
        label: ShiftGroup(label=label, role=roles[label], shifts=tuple(items))
        for label, items in members.items()
    }
