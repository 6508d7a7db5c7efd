from __future__ import annotations

import datetime
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .dates import is_fallback
from .grouping import DayKey, day_key
from .models import FactRecord, MergedShift, PlanRecord

logger = logging.getLogger(__name__)


@dataclass
class MergeSummary:
    shifts: List[MergedShift] = field(default_factory=list)
    plans: int = 0
    facts: int = 0
    matched: int = 0
    dropped_facts: int = 0
    fallback_plans: int = 0
    fallback_facts: int = 0

    @property
    def unmatched_plans(self) -> int:
        return self.plans - self.matched

    def counts(self) -> Dict[str, int]:
        return {
            "plans": self.plans,
            "facts": self.facts,
            "matched": self.matched,
            "unmatched_plans": self.unmatched_plans,
            "dropped_facts": self.dropped_facts,
            "fallback_plans": self.fallback_plans,
            "fallback_facts": self.fallback_facts,
        }


def intervals_overlap(
    a_start: datetime.datetime,
    a_end: datetime.datetime,
    b_start: datetime.datetime,
    b_end: datetime.datetime,
) -> bool:
    """Strict overlap; intervals that only share an endpoint do not overlap."""
    return b_end > a_start and b_start < a_end


def bucket_facts(facts: Iterable[FactRecord]) -> Dict[DayKey, List[FactRecord]]:
    """Index facts by employee, store and start date, keeping input order."""
    buckets: Dict[DayKey, List[FactRecord]] = defaultdict(list)
    for fact in facts:
        if is_fallback(fact.fact_start):
            logger.warning(
                "Fact for %s at %s has no usable start; bucketed under the epoch date",
                fact.employee,
                fact.store,
            )
        buckets[day_key(fact, fact.fact_start)].append(fact)
    return buckets


def _claim_fact(plan: PlanRecord, candidates: List[FactRecord]) -> Optional[FactRecord]:
    for index, fact in enumerate(candidates):
        if intervals_overlap(plan.plan_start, plan.plan_end, fact.fact_start, fact.fact_end):
            # Consumed: a fact is attached to at most one plan.
            del candidates[index]
            return fact
    return None


def summarize_merge(plans: Sequence[PlanRecord], facts: Sequence[FactRecord]) -> MergeSummary:
    """Merge plans with facts and report what happened along the way.

    Matching is greedy first-fit: plans are visited in input order and each
    takes the first overlapping fact left in its same-day bucket. An earlier
    plan can therefore claim a fact that would fit a later one better.
    """
    plans = list(plans)
    facts = list(facts)
    buckets = bucket_facts(facts)
    summary = MergeSummary(plans=len(plans), facts=len(facts))
    summary.fallback_facts = sum(
        1 for fact in facts if is_fallback(fact.fact_start) or is_fallback(fact.fact_end)
    )
    for plan in plans:
        if is_fallback(plan.plan_start) or is_fallback(plan.plan_end):
            summary.fallback_plans += 1
        # A plan without a usable start has no calendar day and stays unmatched.
        candidates = None
        if not is_fallback(plan.plan_start):
            candidates = buckets.get(day_key(plan, plan.plan_start))
        matched = _claim_fact(plan, candidates) if candidates else None
        if matched is not None:
            summary.matched += 1
        summary.shifts.append(
            MergedShift(
                employee=plan.employee,
                store=plan.store,
                role=plan.role,
                plan_start=plan.plan_start,
                plan_end=plan.plan_end,
                fact_start=matched.fact_start if matched else None,
                fact_end=matched.fact_end if matched else None,
            )
        )
    summary.dropped_facts = sum(len(remaining) for remaining in buckets.values())
    logger.info(
        "Merged %d plan shifts with %d facts: %d matched, %d facts dropped",
        summary.plans,
        summary.facts,
        summary.matched,
        summary.dropped_facts,
    )
    return summary


def merge_shifts(plans: Sequence[PlanRecord], facts: Sequence[FactRecord]) -> List[MergedShift]:
    """Return one MergedShift per plan, in plan order."""
    return summarize_merge(plans, facts).shifts
