"""
Credit Engine — Hazard Classifier

Labels allocations with the business-rule violations they exhibit.

Rules:
    lot delivery restriction ≠ lesson delivery      → delivery_f2f_on_online /
                                                      delivery_online_on_f2f   (warning)
    lot length restriction ≠ lesson length category → length_restriction_mismatch (warning)
    lesson shorter than its standard length         → length_too_short (info)
    backed by an overdraft lot / no lot             → overdraft_allocation (error)
    charged SNC for a tier that had an allowance    → snc_overuse (error)

Works on committed allocations (audit) and on planner steps (preview).
Hazards are transient values; resolution tracking lives elsewhere.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .config import (
    AllocationEngineConfig, Delivery, HazardSeverity, HazardType, SeverityRank,
    SncMode, Tier, HAZARD_DEFAULT_SEVERITY, HAZARD_TYPE_PRIORITY, check_exhaustive,
)
from .models import AllocationPlan, CreditLot, Hazard, Lesson

logger = logging.getLogger("credit.hazards")


# ── Display metadata ────────────────────────────────────────────────────
@dataclass(frozen=True)
class HazardMeta:
    type: HazardType
    severity: HazardSeverity
    title: str
    description: str


_HAZARD_COPY = {
    HazardType.OVERDRAFT_ALLOCATION: (
        "Overdraft allocation",
        "This lesson used overdraft credit because no normal credit was available.",
    ),
    HazardType.SNC_OVERUSE: (
        "SNC overuse",
        "Short-notice cancellation allowance is exceeded; this SNC has been charged.",
    ),
    HazardType.DELIVERY_F2F_ON_ONLINE: (
        "Face-to-face lesson on online-only credit",
        "A face-to-face lesson is allocated to credit that is restricted to online lessons.",
    ),
    HazardType.DELIVERY_ONLINE_ON_F2F: (
        "Online lesson on F2F-only credit",
        "An online lesson is allocated to credit that is restricted to face-to-face lessons.",
    ),
    HazardType.LENGTH_RESTRICTION_MISMATCH: (
        "Length restriction mismatch",
        "The lesson length does not match the restriction on the allocated credit lot.",
    ),
    HazardType.LENGTH_TOO_SHORT: (
        "Lesson shorter than standard length",
        "The lesson is shorter than the configured standard for this package or length category.",
    ),
}

check_exhaustive(_HAZARD_COPY, HazardType, "_HAZARD_COPY")


def hazard_meta(hazard_type: HazardType) -> HazardMeta:
    title, description = _HAZARD_COPY[hazard_type]
    return HazardMeta(
        type=hazard_type,
        severity=HAZARD_DEFAULT_SEVERITY[hazard_type],
        title=title,
        description=description,
    )


# ── Display ordering ────────────────────────────────────────────────────
def hazard_sort_key(hazard: Hazard) -> tuple:
    """error → warning → info, then fixed type priority, then type name, then identity."""
    return (
        SeverityRank.of(hazard.severity),
        HAZARD_TYPE_PRIORITY[hazard.type],
        hazard.type.value,
        hazard.lesson_id,
        hazard.allocation_id or "",
    )


def sort_hazards_for_display(hazards: Iterable[Hazard]) -> list[Hazard]:
    """Return a new list; the input is left untouched."""
    return sorted(hazards, key=hazard_sort_key)


# ── Classifier ──────────────────────────────────────────────────────────
class HazardClassifier:

    def __init__(self, config: Optional[AllocationEngineConfig] = None) -> None:
        self.config = config or AllocationEngineConfig()

    def classify_allocation(
        self,
        lesson: Lesson,
        lot: Optional[CreditLot],
        allocation_id: Optional[str] = None,
    ) -> list[Hazard]:
        """Hazards that depend on the backing lot. lot=None is an overdraft draw."""
        if lot is None or lot.is_overdraft:
            return [Hazard.of(HazardType.OVERDRAFT_ALLOCATION, lesson.lesson_id, allocation_id)]

        hazards = []
        restriction = lot.delivery_restriction
        if restriction is not None and restriction != lesson.delivery:
            if lesson.delivery == Delivery.F2F:
                hazard_type = HazardType.DELIVERY_F2F_ON_ONLINE
            else:
                hazard_type = HazardType.DELIVERY_ONLINE_ON_F2F
            hazards.append(Hazard.of(hazard_type, lesson.lesson_id, allocation_id))

        length = lot.effective_length_restriction
        if length is not None and length != lesson.length_cat:
            hazards.append(Hazard.of(
                HazardType.LENGTH_RESTRICTION_MISMATCH, lesson.lesson_id, allocation_id,
            ))

        return hazards

    def classify_lesson(self, lesson: Lesson, tier: Optional[Tier] = None) -> list[Hazard]:
        """
        Hazards that depend only on the lesson (and the student's tier).

        tier=None is the no-package tier, which has an SNC allowance; only
        Tier.BASIC suppresses snc_overuse on a charged SNC.
        """
        hazards = []

        if not lesson.is_snc:
            standard = self.config.standard_minutes_for(lesson.length_cat)
            if standard is not None and lesson.duration_minutes < standard:
                hazards.append(Hazard.of(HazardType.LENGTH_TOO_SHORT, lesson.lesson_id))

        # Basic tier has no allowance, so a charged SNC there is the normal rule
        if lesson.is_snc and lesson.snc_mode == SncMode.CHARGED and tier != Tier.BASIC:
            hazards.append(Hazard.of(HazardType.SNC_OVERUSE, lesson.lesson_id))

        return hazards

    def classify(
        self,
        lesson: Lesson,
        lot: Optional[CreditLot],
        tier: Optional[Tier] = None,
        allocation_id: Optional[str] = None,
    ) -> list[Hazard]:
        """Full hazard set for one allocation, sorted for display."""
        hazards = self.classify_allocation(lesson, lot, allocation_id)
        hazards.extend(self.classify_lesson(lesson, tier))
        return sort_hazards_for_display(hazards)

    def classify_allocations(
        self,
        lesson: Lesson,
        allocations: Sequence[tuple[Optional[str], Optional[CreditLot]]],
        tier: Optional[Tier] = None,
    ) -> list[Hazard]:
        """
        Audit a committed lesson: (allocation_id, lot) pairs.

        Lesson-level hazards are reported once, without an allocation id.
        """
        hazards = []
        for allocation_id, lot in allocations:
            hazards.extend(self.classify_allocation(lesson, lot, allocation_id))
        hazards.extend(self.classify_lesson(lesson, tier))

        if hazards:
            logger.debug(
                "lesson=%s %d hazards over %d allocations",
                lesson.lesson_id, len(hazards), len(allocations),
            )
        return sort_hazards_for_display(hazards)

    def classify_plan(
        self,
        lesson: Lesson,
        plan: AllocationPlan,
        tier: Optional[Tier] = None,
    ) -> list[Hazard]:
        """
        Preview: the hazards the plan would produce once committed.

        Steps have no allocation id yet, so identical hazards collapse to one.
        """
        hazards = self.classify_allocations(lesson, [(None, step.lot) for step in plan.steps], tier)
        return list(dict.fromkeys(hazards))
