from __future__ import annotations

from typing import Any, Dict

DEFAULT_MAX_CONSECUTIVE_DAYS = 4
DEFAULT_RANGE_DAYS = 7

# Source feed keys first, then the English aliases used by exports and tests.
PLAN_FIELDS: Dict[str, list] = {
    "employee": ["Сотрудник", "employee"],
    "store": ["Магазин", "store"],
    "role": ["Роль", "role"],
    "start": ["ДатаВремя_ПланС", "plan_start", "planStart"],
    "end": ["ДатаВремя_ПланПо", "plan_end", "planEnd"],
}

FACT_FIELDS: Dict[str, list] = {
    "employee": ["Сотрудник", "employee"],
    "store": ["Магазин", "store"],
    "start": ["ДатаВремя_ФактС", "fact_start", "factStart"],
    "end": ["ДатаВремя_ФактПо", "fact_end", "factEnd"],
}


BASELINE_POLICY: Dict[str, Any] = {
    "name": "Default Reconciliation",
    "window": {
        "max_consecutive_days": DEFAULT_MAX_CONSECUTIVE_DAYS,
        "default_range_days": DEFAULT_RANGE_DAYS,
    },
    "feeds": {
        "plan_file": "plan.json",
        "fact_file": "fact.json",
        "fields": {
            "plan": PLAN_FIELDS,
            "fact": FACT_FIELDS,
        },
    },
}
