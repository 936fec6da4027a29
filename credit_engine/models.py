"""
Credit Engine — Domain Models

Value objects passed into and out of the engine. The engine never
persists any of these; they mirror rows fetched by the caller from the
ledger (credit lots, lessons, SNC history) and the transient results it
computes (allocation steps, hazards, SNC resolutions).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from .config import (
    Delivery, LengthCat, Tier, SourceType, ExpiryPolicy, LotState, SncMode,
    HazardType, HazardSeverity, HAZARD_DEFAULT_SEVERITY,
)


@dataclass(frozen=True)
class CreditLot:
    """
    A block of purchased or awarded minutes.

    minutes_remaining = minutes_granted − minutes_allocated and only goes
    negative for overdraft lots.
    """
    lot_id: str
    minutes_granted: int
    minutes_allocated: int = 0
    source_type: SourceType = SourceType.INVOICE
    start_date: Optional[date] = None           # FIFO key

    # Restrictions: None means unrestricted
    delivery_restriction: Optional[Delivery] = None
    tier_restriction: Optional[Tier] = None     # carried, never matched on
    length_restriction: Optional[LengthCat] = None

    expiry_policy: ExpiryPolicy = ExpiryPolicy.NONE
    expiry_date: Optional[date] = None
    state: LotState = LotState.OPEN
    student_id: Optional[str] = None

    @property
    def minutes_remaining(self) -> int:
        return self.minutes_granted - self.minutes_allocated

    @property
    def effective_length_restriction(self) -> Optional[LengthCat]:
        """LengthCat.NONE on a lot is the same as no restriction."""
        if self.length_restriction == LengthCat.NONE:
            return None
        return self.length_restriction

    @property
    def is_overdraft(self) -> bool:
        return self.source_type == SourceType.OVERDRAFT

    def to_dict(self) -> dict:
        return {
            "lot_id": self.lot_id,
            "student_id": self.student_id,
            "source_type": self.source_type.value,
            "minutes_granted": self.minutes_granted,
            "minutes_allocated": self.minutes_allocated,
            "minutes_remaining": self.minutes_remaining,
            "delivery_restriction": self.delivery_restriction.value if self.delivery_restriction else None,
            "tier_restriction": self.tier_restriction.value if self.tier_restriction else None,
            "length_restriction": self.length_restriction.value if self.length_restriction else None,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "expiry_policy": self.expiry_policy.value,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class Lesson:
    """Planner input: the facts of one lesson that needs paying for."""
    lesson_id: str
    duration_minutes: int
    delivery: Delivery
    length_cat: LengthCat = LengthCat.NONE
    is_snc: bool = False
    snc_mode: SncMode = SncMode.NONE
    student_id: Optional[str] = None


@dataclass(frozen=True)
class AllocationStep:
    """
    One draw against a lot. lot is None for the synthetic overdraft step.

    to_remaining == from_remaining − allocate_minutes always holds;
    for real lots to_remaining >= 0.
    """
    lot: Optional[CreditLot]
    from_remaining: int
    allocate_minutes: int
    to_remaining: int
    counter_delivery: bool = False
    length_violation: bool = False

    @property
    def is_overdraft(self) -> bool:
        return self.lot is None

    @property
    def lot_id(self) -> Optional[str]:
        return self.lot.lot_id if self.lot else None

    def to_dict(self) -> dict:
        return {
            "lot_id": self.lot_id,
            "is_overdraft": self.is_overdraft,
            "from_remaining": self.from_remaining,
            "allocate_minutes": self.allocate_minutes,
            "to_remaining": self.to_remaining,
            "counter_delivery": self.counter_delivery,
            "length_violation": self.length_violation,
        }


@dataclass(frozen=True)
class AllocationPlan:
    """Planner output. Steps sum to the lesson duration; an overdraft step, if any, is last."""
    steps: tuple[AllocationStep, ...] = ()
    counter_delivery: bool = False
    length_violation: bool = False
    negative_balance: bool = False

    @property
    def total_allocated(self) -> int:
        return sum(s.allocate_minutes for s in self.steps)

    @property
    def overdraft_step(self) -> Optional[AllocationStep]:
        if self.steps and self.steps[-1].is_overdraft:
            return self.steps[-1]
        return None

    def to_dict(self) -> dict:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "counter_delivery": self.counter_delivery,
            "length_violation": self.length_violation,
            "negative_balance": self.negative_balance,
        }


@dataclass(frozen=True)
class Hazard:
    """A derived business-rule violation. Computed, never stored."""
    type: HazardType
    severity: HazardSeverity
    lesson_id: str
    allocation_id: Optional[str] = None

    @classmethod
    def of(
        cls,
        hazard_type: HazardType,
        lesson_id: str,
        allocation_id: Optional[str] = None,
    ) -> "Hazard":
        return cls(
            type=hazard_type,
            severity=HAZARD_DEFAULT_SEVERITY[hazard_type],
            lesson_id=lesson_id,
            allocation_id=allocation_id,
        )

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "lesson_id": self.lesson_id,
            "allocation_id": self.allocation_id,
        }


@dataclass(frozen=True)
class SncHistoryRecord:
    """A confirmed short-notice cancellation in a student's history."""
    occurred_at: datetime
    is_charged: bool
    lesson_id: Optional[str] = None


@dataclass(frozen=True)
class StudentSncStatus:
    """Lifetime tally of a student's SNCs."""
    free_count: int = 0
    charged_count: int = 0

    @property
    def has_free_snc_used(self) -> bool:
        return self.free_count > 0

    def to_dict(self) -> dict:
        return {
            "free_count": self.free_count,
            "charged_count": self.charged_count,
            "has_free_snc_used": self.has_free_snc_used,
        }


@dataclass(frozen=True)
class SncResolution:
    """Decision for the student's next short-notice cancellation."""
    mode: SncMode
    tier: Optional[Tier]
    scope: str                      # "none" (basic), "month", "lifetime"
    free_used_in_scope: bool = False

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "tier": self.tier.value if self.tier else None,
            "scope": self.scope,
            "free_used_in_scope": self.free_used_in_scope,
        }


@dataclass(frozen=True)
class LessonPreview:
    """Plan plus the hazards it would produce if committed."""
    lesson_id: str
    plan: AllocationPlan
    hazards: list[Hazard] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "lesson_id": self.lesson_id,
            "plan": self.plan.to_dict(),
            "hazards": [h.to_dict() for h in self.hazards],
        }
