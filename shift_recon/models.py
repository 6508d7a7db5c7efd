from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .dates import ensure_aware


def _normalize_times(record, names: Tuple[str, ...]) -> None:
    # Naive values are read as UTC so every comparison is aware-vs-aware.
    for name in names:
        value = getattr(record, name)
        if isinstance(value, datetime.datetime):
            object.__setattr__(record, name, ensure_aware(value))


@dataclass(frozen=True)
class PlanRecord:
    employee: str
    store: str
    role: str
    plan_start: datetime.datetime
    plan_end: datetime.datetime

    def __post_init__(self) -> None:
        _normalize_times(self, ("plan_start", "plan_end"))


# eq=False: two identical fact rows are still two distinct facts, and the
# matcher consumes them by identity.
@dataclass(frozen=True, eq=False)
class FactRecord:
    employee: str
    store: str
    fact_start: datetime.datetime
    fact_end: datetime.datetime

    def __post_init__(self) -> None:
        _normalize_times(self, ("fact_start", "fact_end"))


@dataclass(frozen=True)
class MergedShift:
    """A plan shift enriched with at most one matching fact interval."""

    employee: str
    store: str
    role: str
    plan_start: datetime.datetime
    plan_end: datetime.datetime
    fact_start: Optional[datetime.datetime] = None
    fact_end: Optional[datetime.datetime] = None

    def __post_init__(self) -> None:
        _normalize_times(self, ("plan_start", "plan_end", "fact_start", "fact_end"))

    @property
    def has_fact(self) -> bool:
        return self.fact_start is not None and self.fact_end is not None


@dataclass(frozen=True)
class ShiftGroup:
    label: str
    role: str
    shifts: Tuple[MergedShift, ...] = field(default_factory=tuple)
