"""
Credit Engine — Credit Snapshot

Per-student summary of open credit with the warning flags shown on the
student and admin dashboards:

    generic low   total remaining ≤ 6h (configurable)
    dynamic low   remaining hours − average monthly hours < buffer
    overdraft     any overdraft lot carrying a negative balance
    expiring      open lots expiring within the configured window
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from .config import AllocationEngineConfig, Delivery, LotState
from .expiry import is_expiring_soon
from .models import CreditLot

logger = logging.getLogger("credit.snapshot")

UNRESTRICTED = "unrestricted"


def minutes_to_hours(minutes: int) -> Decimal:
    """Minutes as hours rounded to 2 places."""
    return (Decimal(minutes) / Decimal(60)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass
class CreditSnapshot:
    student_id: str
    as_of: date
    total_remaining_minutes: int = 0
    remaining_by_delivery: dict[str, int] = field(default_factory=lambda: {
        Delivery.ONLINE.value: 0,
        Delivery.F2F.value: 0,
        UNRESTRICTED: 0,
    })
    overdraft_minutes: int = 0
    expiring_lot_ids: list[str] = field(default_factory=list)

    # Warnings
    is_generic_low: bool = False
    is_dynamic_low: bool = False
    buffer_hours: Optional[Decimal] = None

    @property
    def is_low_any(self) -> bool:
        return self.is_generic_low or self.is_dynamic_low

    @property
    def has_overdraft(self) -> bool:
        return self.overdraft_minutes > 0

    @property
    def all_clear(self) -> bool:
        return not (self.is_low_any or self.has_overdraft or self.expiring_lot_ids)

    @property
    def total_remaining_hours(self) -> Decimal:
        return minutes_to_hours(self.total_remaining_minutes)

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "as_of": self.as_of.isoformat(),
            "total_remaining_minutes": self.total_remaining_minutes,
            "total_remaining_hours": str(self.total_remaining_hours),
            "remaining_by_delivery": dict(self.remaining_by_delivery),
            "overdraft_minutes": self.overdraft_minutes,
            "expiring_lot_ids": list(self.expiring_lot_ids),
            "is_generic_low": self.is_generic_low,
            "is_dynamic_low": self.is_dynamic_low,
            "buffer_hours": str(self.buffer_hours) if self.buffer_hours is not None else None,
            "is_low_any": self.is_low_any,
            "has_overdraft": self.has_overdraft,
            "all_clear": self.all_clear,
        }


def build_credit_snapshot(
    student_id: str,
    lots: Iterable[CreditLot],
    today: date,
    config: Optional[AllocationEngineConfig] = None,
    avg_month_hours: Optional[Decimal] = None,
) -> CreditSnapshot:
    """
    Summarise a student's open lots.

    Overdraft lots contribute their negative balance to overdraft_minutes
    (as a positive number) and to the total.
    """
    config = config or AllocationEngineConfig()
    snap = CreditSnapshot(student_id=student_id, as_of=today)

    for lot in lots:
        if lot.state != LotState.OPEN:
            continue

        remaining = lot.minutes_remaining
        snap.total_remaining_minutes += remaining

        if lot.is_overdraft:
            if remaining < 0:
                snap.overdraft_minutes += -remaining
        else:
            bucket = lot.delivery_restriction.value if lot.delivery_restriction else UNRESTRICTED
            snap.remaining_by_delivery[bucket] += remaining

        if remaining > 0 and is_expiring_soon(lot, today, config.expiring_soon_days):
            snap.expiring_lot_ids.append(lot.lot_id)

    snap.is_generic_low = snap.total_remaining_minutes <= config.low_credit_generic_minutes

    if avg_month_hours is not None:
        snap.buffer_hours = snap.total_remaining_hours - Decimal(str(avg_month_hours))
        snap.is_dynamic_low = snap.buffer_hours < Decimal(str(config.low_credit_buffer_hours))

    logger.debug(
        "Snapshot student=%s remaining=%d overdraft=%d expiring=%d low=%s",
        student_id, snap.total_remaining_minutes, snap.overdraft_minutes,
        len(snap.expiring_lot_ids), snap.is_low_any,
    )
    return snap
