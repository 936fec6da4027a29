"""
Credit Engine — Facade

Wires the matcher, planner, hazard classifier and SNC resolver behind one
object for callers (admin lesson review, student dashboards).

    lesson + open lots ──▶ contracts ──▶ AllocationPlanner ──▶ HazardClassifier ──▶ LessonPreview
    tier + SNC history ──▶ SncAllowanceResolver ──▶ SncResolution

Everything here is synchronous and side-effect free apart from logging.
The authoritative commit happens outside this package.

Usage:
    engine = CreditEngine.from_settings()
    preview = engine.preview(lesson, open_lots)
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .config import AllocationEngineConfig, Tier
from .contracts import ensure_planner_input, ensure_valid_lesson
from .hazards import HazardClassifier
from .models import (
    CreditLot, Hazard, Lesson, LessonPreview, SncHistoryRecord, SncResolution,
    StudentSncStatus,
)
from .planner import AllocationPlanner
from .snapshot import CreditSnapshot, build_credit_snapshot
from .snc import SncAllowanceResolver, compute_student_snc_status

logger = logging.getLogger("credit.engine")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Process-wide logging setup for scripts and services embedding the engine."""
    if level is None:
        from .settings import settings
        level = settings.LOG_LEVEL

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


class CreditEngine:

    def __init__(self, config: Optional[AllocationEngineConfig] = None) -> None:
        self.config = config or AllocationEngineConfig()
        self.planner = AllocationPlanner()
        self.classifier = HazardClassifier(self.config)
        self.snc_resolver = SncAllowanceResolver(self.config)

    @classmethod
    def from_settings(cls, settings=None) -> "CreditEngine":
        if settings is None:
            from .settings import settings
        return cls(AllocationEngineConfig.from_settings(settings))

    # ── Allocation ──────────────────────────────────────────────────────

    def preview(
        self,
        lesson: Lesson,
        open_lots: Sequence[CreditLot],
        tier: Optional[Tier] = None,
    ) -> LessonPreview:
        """
        Plan the lesson and classify the plan. Raises ContractViolation on bad input.

        tier=None is the legacy no-package tier (one free SNC lifetime), not
        "unknown": a charged SNC under it is reported as snc_overuse. Pass
        Tier.BASIC explicitly for basic students.
        """
        ensure_valid_lesson(lesson)
        ensure_planner_input(open_lots)

        plan = self.planner.plan(lesson, open_lots)
        hazards = self.classifier.classify_plan(lesson, plan, tier)

        if plan.negative_balance:
            logger.info(
                "Preview lesson=%s needs overdraft of %d min",
                lesson.lesson_id, plan.overdraft_step.allocate_minutes,
            )
        logger.debug(
            "Preview lesson=%s steps=%d hazards=%s",
            lesson.lesson_id, len(plan.steps), [h.type.value for h in hazards],
        )
        return LessonPreview(lesson_id=lesson.lesson_id, plan=plan, hazards=hazards)

    def audit(
        self,
        lesson: Lesson,
        allocations: Sequence[tuple[str, Optional[CreditLot]]],
        tier: Optional[Tier] = None,
    ) -> list[Hazard]:
        """
        Hazards for a committed lesson given its (allocation_id, lot) pairs.

        tier has the same meaning as in preview(); None is the no-package tier.
        """
        return self.classifier.classify_allocations(lesson, allocations, tier)

    # ── SNC ─────────────────────────────────────────────────────────────

    def resolve_snc(
        self,
        tier: Optional[Tier],
        prior_records: Iterable[SncHistoryRecord],
        now: datetime,
    ) -> SncResolution:
        return self.snc_resolver.resolve(tier, prior_records, now)

    def snc_status(self, records: Iterable[SncHistoryRecord]) -> StudentSncStatus:
        return compute_student_snc_status(records)

    # ── Snapshot ────────────────────────────────────────────────────────

    def snapshot(
        self,
        student_id: str,
        lots: Iterable[CreditLot],
        today: date,
        avg_month_hours: Optional[Decimal] = None,
    ) -> CreditSnapshot:
        return build_credit_snapshot(student_id, lots, today, self.config, avg_month_hours)
