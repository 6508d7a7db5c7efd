from __future__ import annotations

import datetime
from typing import Any, Dict, Optional, Sequence

from .grouping import group_by_employee_store
from .models import MergedShift, ShiftGroup
from .windowing import filter_by_consecutive_days


def build_schedule_view(
    shifts: Sequence[MergedShift],
    range_start,
    range_end,
    max_days: int,
) -> Dict[str, ShiftGroup]:
    """Filter then group; every call returns a freshly built view."""
    filtered = filter_by_consecutive_days(shifts, range_start, range_end, max_days)
    return group_by_employee_store(filtered)


def _iso(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_shift(shift: MergedShift) -> Dict[str, Any]:
    return {
        "planStart": _iso(shift.plan_start),
        "planEnd": _iso(shift.plan_end),
        "factStart": _iso(shift.fact_start) if shift.has_fact else None,
        "factEnd": _iso(shift.fact_end) if shift.has_fact else None,
    }


def serialize_view(groups: Dict[str, ShiftGroup]) -> Dict[str, Dict[str, Any]]:
    return {
        label: {
            "label": group.label,
            "role": group.role,
            "shifts": [serialize_shift(shift) for shift in group.shifts],
        }
        for label, group in groups.items()
    }
