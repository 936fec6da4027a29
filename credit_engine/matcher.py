"""
Credit Engine — Restriction Matcher

Classifies credit lots against a lesson into three nested pools:

    EXACT        delivery and length both compatible
    LENGTH_ONLY  length compatible, delivery ignored
    ANY          every lot

A null restriction is compatible with everything. Tier restrictions are
not consulted here.
"""

import logging
from enum import Enum
from typing import Iterable

from .models import CreditLot, Lesson

logger = logging.getLogger("credit.matcher")


class MatchPool(str, Enum):
    EXACT = "exact"
    LENGTH_ONLY = "length_only"
    ANY = "any"


class RestrictionMatcher:
    """Pure predicates over (lesson, lot)."""

    @staticmethod
    def delivery_compatible(lesson: Lesson, lot: CreditLot) -> bool:
        return lot.delivery_restriction is None or lot.delivery_restriction == lesson.delivery

    @staticmethod
    def length_compatible(lesson: Lesson, lot: CreditLot) -> bool:
        restriction = lot.effective_length_restriction
        return restriction is None or restriction == lesson.length_cat

    def matches(self, pool: MatchPool, lesson: Lesson, lot: CreditLot) -> bool:
        if pool == MatchPool.EXACT:
            return self.delivery_compatible(lesson, lot) and self.length_compatible(lesson, lot)
        if pool == MatchPool.LENGTH_ONLY:
            return self.length_compatible(lesson, lot)
        return True

    def classify(self, lesson: Lesson, lot: CreditLot) -> MatchPool:
        """Tightest pool the lot belongs to."""
        if self.matches(MatchPool.EXACT, lesson, lot):
            return MatchPool.EXACT
        if self.matches(MatchPool.LENGTH_ONLY, lesson, lot):
            return MatchPool.LENGTH_ONLY
        return MatchPool.ANY

    def pools(self, lesson: Lesson, lots: Iterable[CreditLot]) -> dict[MatchPool, list[CreditLot]]:
        """
        Build all three pools, preserving input order within each.

        Pools are nested: an EXACT lot also appears in LENGTH_ONLY and ANY.
        """
        lots = list(lots)
        result = {pool: [lot for lot in lots if self.matches(pool, lesson, lot)] for pool in MatchPool}
        logger.debug(
            "Pools for lesson %s: exact=%d length_only=%d any=%d",
            lesson.lesson_id,
            len(result[MatchPool.EXACT]),
            len(result[MatchPool.LENGTH_ONLY]),
            len(result[MatchPool.ANY]),
        )
        return result
