"""
Credit Engine — Allocation Planner

Decides which open credit lots pay for a lesson, in what order, and how
many minutes each contributes.

    open lots (FIFO by start_date)
        │
        ▼ RestrictionMatcher
    exact ++ length_only ++ any   (dedup by lot_id, first occurrence wins)
        │
        ▼ walk, take min(remaining, needed)
    steps [+ overdraft step if minutes are still needed]

The planner never fails and never re-sorts: a shortfall becomes one
final overdraft step with no backing lot.
"""

import logging
from typing import Optional, Sequence

from .matcher import MatchPool, RestrictionMatcher
from .models import AllocationPlan, AllocationStep, CreditLot, Lesson

logger = logging.getLogger("credit.planner")


class AllocationPlanner:

    def __init__(self, matcher: Optional[RestrictionMatcher] = None) -> None:
        self.matcher = matcher or RestrictionMatcher()

    def consumption_order(self, lesson: Lesson, open_lots: Sequence[CreditLot]) -> list[CreditLot]:
        """Best-fit pools first, FIFO within each pool, each lot at most once."""
        pools = self.matcher.pools(lesson, open_lots)

        ordered: list[CreditLot] = []
        seen: set[str] = set()
        for pool in (MatchPool.EXACT, MatchPool.LENGTH_ONLY, MatchPool.ANY):
            for lot in pools[pool]:
                if lot.lot_id in seen:
                    continue
                seen.add(lot.lot_id)
                ordered.append(lot)
        return ordered

    def plan(self, lesson: Lesson, open_lots: Sequence[CreditLot]) -> AllocationPlan:
        """
        Cover lesson.duration_minutes from open_lots.

        open_lots must already be filtered to open lots and sorted oldest
        first (see contracts.prepare_open_lots). Inputs are not mutated.
        """
        minutes_needed = lesson.duration_minutes
        steps: list[AllocationStep] = []

        for lot in self.consumption_order(lesson, open_lots):
            if minutes_needed <= 0:
                break
            remaining = lot.minutes_remaining
            if remaining <= 0:
                continue

            take = min(remaining, minutes_needed)
            counter_delivery = not self.matcher.delivery_compatible(lesson, lot)
            length_violation = not self.matcher.length_compatible(lesson, lot)

            steps.append(AllocationStep(
                lot=lot,
                from_remaining=remaining,
                allocate_minutes=take,
                to_remaining=remaining - take,
                counter_delivery=counter_delivery,
                length_violation=length_violation,
            ))
            minutes_needed -= take

            logger.debug(
                "lesson=%s lot=%s take=%d (%d→%d)%s%s",
                lesson.lesson_id, lot.lot_id, take, remaining, remaining - take,
                " counter-delivery" if counter_delivery else "",
                " length-violation" if length_violation else "",
            )

        negative_balance = False
        if minutes_needed > 0:
            from_remaining = steps[-1].to_remaining if steps else 0
            steps.append(AllocationStep(
                lot=None,
                from_remaining=from_remaining,
                allocate_minutes=minutes_needed,
                to_remaining=from_remaining - minutes_needed,
            ))
            negative_balance = True
            logger.info(
                "OVERDRAFT lesson=%s short by %d min (%d real steps)",
                lesson.lesson_id, minutes_needed, len(steps) - 1,
            )

        return AllocationPlan(
            steps=tuple(steps),
            counter_delivery=any(s.counter_delivery for s in steps),
            length_violation=any(s.length_violation for s in steps),
            negative_balance=negative_balance,
        )
