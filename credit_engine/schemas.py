"""
Credit Engine — Boundary Schemas

Pydantic models at the engine boundary. Request models validate rows and
payloads coming from the ledger/query layer and convert them to domain
objects; response models define what the UI layer receives.

This is the public boundary module: callers import these models from
credit_engine directly and serialise engine results through them.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .config import (
    Delivery, LengthCat, Tier, SourceType, ExpiryPolicy, LotState, SncMode,
    HazardType, HazardSeverity,
)
from .hazards import hazard_meta
from .models import (
    AllocationPlan, AllocationStep, CreditLot, Hazard, Lesson, LessonPreview,
    SncHistoryRecord, SncResolution, StudentSncStatus,
)
from .snapshot import CreditSnapshot


# ── Inbound ──────────────────────────────────────────────────────────────

class CreditLotIn(BaseModel):
    lot_id: str = Field(min_length=1)
    student_id: Optional[str] = None
    minutes_granted: int = Field(ge=0)
    minutes_allocated: int = 0
    source_type: SourceType = SourceType.INVOICE
    start_date: Optional[date] = None
    delivery_restriction: Optional[Delivery] = None
    tier_restriction: Optional[Tier] = None
    length_restriction: Optional[LengthCat] = None
    expiry_policy: ExpiryPolicy = ExpiryPolicy.NONE
    expiry_date: Optional[date] = None
    state: LotState = LotState.OPEN

    model_config = {"from_attributes": True}

    def to_domain(self) -> CreditLot:
        return CreditLot(**self.model_dump())


class LessonIn(BaseModel):
    lesson_id: str = Field(min_length=1)
    student_id: Optional[str] = None
    duration_minutes: int = Field(gt=0, description="Billable minutes; must be positive")
    delivery: Delivery
    length_cat: LengthCat = LengthCat.NONE
    is_snc: bool = False
    snc_mode: SncMode = SncMode.NONE

    model_config = {"from_attributes": True}

    def to_domain(self) -> Lesson:
        return Lesson(**self.model_dump())


class SncHistoryRecordIn(BaseModel):
    occurred_at: datetime
    is_charged: bool
    lesson_id: Optional[str] = None

    model_config = {"from_attributes": True}

    def to_domain(self) -> SncHistoryRecord:
        return SncHistoryRecord(**self.model_dump())


# ── Allocation preview ───────────────────────────────────────────────────

class AllocationStepResponse(BaseModel):
    lot_id: Optional[str] = None
    is_overdraft: bool
    from_remaining: int
    allocate_minutes: int
    to_remaining: int
    counter_delivery: bool = False
    length_violation: bool = False

    @classmethod
    def from_domain(cls, step: AllocationStep) -> "AllocationStepResponse":
        return cls(**step.to_dict())


class AllocationPlanResponse(BaseModel):
    steps: list[AllocationStepResponse]
    counter_delivery: bool
    length_violation: bool
    negative_balance: bool

    @classmethod
    def from_domain(cls, plan: AllocationPlan) -> "AllocationPlanResponse":
        return cls(
            steps=[AllocationStepResponse.from_domain(s) for s in plan.steps],
            counter_delivery=plan.counter_delivery,
            length_violation=plan.length_violation,
            negative_balance=plan.negative_balance,
        )


# ── Hazards ──────────────────────────────────────────────────────────────

class HazardResponse(BaseModel):
    type: HazardType
    severity: HazardSeverity
    lesson_id: str
    allocation_id: Optional[str] = None
    title: str
    description: str

    @classmethod
    def from_domain(cls, hazard: Hazard) -> "HazardResponse":
        meta = hazard_meta(hazard.type)
        return cls(
            type=hazard.type,
            severity=hazard.severity,
            lesson_id=hazard.lesson_id,
            allocation_id=hazard.allocation_id,
            title=meta.title,
            description=meta.description,
        )


class LessonPreviewResponse(BaseModel):
    """Preview shown before an admin confirms a lesson."""
    lesson_id: str
    plan: AllocationPlanResponse
    hazards: list[HazardResponse]

    @classmethod
    def from_domain(cls, preview: LessonPreview) -> "LessonPreviewResponse":
        return cls(
            lesson_id=preview.lesson_id,
            plan=AllocationPlanResponse.from_domain(preview.plan),
            hazards=[HazardResponse.from_domain(h) for h in preview.hazards],
        )


# ── SNC ──────────────────────────────────────────────────────────────────

class SncResolutionResponse(BaseModel):
    mode: SncMode
    tier: Optional[Tier] = None
    scope: str = Field(description="none (basic), month (premium/elite), lifetime (no tier)")
    free_used_in_scope: bool = False

    @classmethod
    def from_domain(cls, resolution: SncResolution) -> "SncResolutionResponse":
        return cls(
            mode=resolution.mode,
            tier=resolution.tier,
            scope=resolution.scope,
            free_used_in_scope=resolution.free_used_in_scope,
        )


class StudentSncStatusResponse(BaseModel):
    free_count: int
    charged_count: int
    has_free_snc_used: bool

    @classmethod
    def from_domain(cls, status: StudentSncStatus) -> "StudentSncStatusResponse":
        return cls(**status.to_dict())


# ── Credit snapshot ──────────────────────────────────────────────────────

class CreditSnapshotResponse(BaseModel):
    student_id: str
    as_of: date
    total_remaining_minutes: int
    total_remaining_hours: Decimal
    remaining_by_delivery: dict[str, int]
    overdraft_minutes: int
    expiring_lot_ids: list[str] = []
    is_generic_low: bool
    is_dynamic_low: bool
    buffer_hours: Optional[Decimal] = None
    is_low_any: bool
    has_overdraft: bool
    all_clear: bool

    @classmethod
    def from_domain(cls, snap: CreditSnapshot) -> "CreditSnapshotResponse":
        return cls(
            student_id=snap.student_id,
            as_of=snap.as_of,
            total_remaining_minutes=snap.total_remaining_minutes,
            total_remaining_hours=snap.total_remaining_hours,
            remaining_by_delivery=dict(snap.remaining_by_delivery),
            overdraft_minutes=snap.overdraft_minutes,
            expiring_lot_ids=list(snap.expiring_lot_ids),
            is_generic_low=snap.is_generic_low,
            is_dynamic_low=snap.is_dynamic_low,
            buffer_hours=snap.buffer_hours,
            is_low_any=snap.is_low_any,
            has_overdraft=snap.has_overdraft,
            all_clear=snap.all_clear,
        )
