from __future__ import annotations

import datetime
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shift_recon.grouping import group_by_employee_store, group_label  # noqa: E402
from shift_recon.models import FactRecord, MergedShift, PlanRecord  # noqa: E402
from shift_recon.reconcile import merge_shifts  # noqa: E402
from shift_recon.view import build_schedule_view, serialize_shift, serialize_view  # noqa: E402

UTC = datetime.timezone.utc


def _shift(employee: str, store: str, role: str, day: int, **facts) -> MergedShift:
    start = datetime.datetime(2024, 4, day, 9, tzinfo=UTC)
    return MergedShift(
        employee=employee,
        store=store,
        role=role,
        plan_start=start,
        plan_end=start + datetime.timedelta(hours=8),
        **facts,
    )


def test_group_label_format() -> None:
    assert group_label("Ivanov", "Store 7") == "Ivanov (Store 7)"


def test_groups_keep_first_appearance_and_first_role() -> None:
    shifts = [
        _shift("B", "S1", "Cashier", 1),
        _shift("A", "S1", "Seller", 1),
        _shift("B", "S1", "Manager", 2),
        _shift("B", "S2", "Seller", 3),
    ]

    groups = group_by_employee_store(shifts)

    assert list(groups) == ["B (S1)", "A (S1)", "B (S2)"]
    assert groups["B (S1)"].role == "Cashier"
    assert groups["B (S1)"].shifts == (shifts[0], shifts[2])
    assert groups["B (S2)"].label == "B (S2)"


def test_grouping_empty_input() -> None:
    assert group_by_employee_store([]) == {}


def test_serialize_shift_uses_iso_strings_and_nulls() -> None:
    fact_start = datetime.datetime(2024, 4, 1, 9, 5, tzinfo=UTC)
    fact_end = datetime.datetime(2024, 4, 1, 16, 50, tzinfo=UTC)
    matched = _shift("A", "S1", "Cashier", 1, fact_start=fact_start, fact_end=fact_end)
    unmatched = _shift("A", "S1", "Cashier", 2)

    assert serialize_shift(matched) == {
        "planStart": "2024-04-01T09:00:00+00:00",
        "planEnd": "2024-04-01T17:00:00+00:00",
        "factStart": "2024-04-01T09:05:00+00:00",
        "factEnd": "2024-04-01T16:50:00+00:00",
    }
    assert serialize_shift(unmatched)["factStart"] is None
    assert serialize_shift(unmatched)["factEnd"] is None


def test_schedule_view_end_to_end() -> None:
    plans = [
        PlanRecord(
            employee="Ivanov",
            store="S1",
            role="Cashier",
            plan_start=datetime.datetime(2024, 4, day, 9, tzinfo=UTC),
            plan_end=datetime.datetime(2024, 4, day, 17, tzinfo=UTC),
        )
        for day in range(1, 7)
    ]
    facts = [
        FactRecord(
            employee="Ivanov",
            store="S1",
            fact_start=datetime.datetime(2024, 4, 1, 9, 5, tzinfo=UTC),
            fact_end=datetime.datetime(2024, 4, 1, 16, 50, tzinfo=UTC),
        )
    ]
    merged = merge_shifts(plans, facts)

    view = build_schedule_view(merged, datetime.date(2024, 4, 1), datetime.date(2024, 4, 6), 4)
    payload = serialize_view(view)

    assert list(payload) == ["Ivanov (S1)"]
    group = payload["Ivanov (S1)"]
    assert group["role"] == "Cashier"
    assert len(group["shifts"]) == 4
    assert group["shifts"][0]["factStart"] == "2024-04-01T09:05:00+00:00"
    assert all(item["factStart"] is None for item in group["shifts"][1:])


def test_each_view_is_built_fresh() -> None:
    merged = [_shift("A", "S1", "Cashier", day) for day in range(1, 4)]

    first = build_schedule_view(merged, "2024-04-01", "2024-04-03", 4)
    second = build_schedule_view(merged, "2024-04-01", "2024-04-03", 4)

    assert first == second
    assert first is not second
    assert first["A (S1)"] is not second["A (S1)"]
