"""Plan/fact shift reconciliation and consecutive-day window filtering."""

from .grouping import group_by_employee_store, group_label
from .models import FactRecord, MergedShift, PlanRecord, ShiftGroup
from .reconcile import merge_shifts, summarize_merge
from .windowing import filter_by_consecutive_days

__version__ = "0.1.0"

__all__ = [
    "FactRecord",
    "MergedShift",
    "PlanRecord",
    "ShiftGroup",
    "filter_by_consecutive_days",
    "group_by_employee_store",
    "group_label",
    "merge_shifts",
    "summarize_merge",
]
