"""
Credit Engine — SNC Allowance Resolver

Decides whether a student's next short-notice cancellation (SNC) is free
or charged.

Tier rules:
    basic            → always charged
    premium / elite  → first SNC per calendar month free (resets monthly)
    no tier (legacy) → exactly one free SNC ever

A free SNC "used" in scope means a prior record in that scope with
is_charged == False.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from .config import AllocationEngineConfig, SncMode, Tier
from .models import SncHistoryRecord, SncResolution, StudentSncStatus

logger = logging.getLogger("credit.snc")


# ── SNC mode helpers ────────────────────────────────────────────────────
def is_snc(mode: Optional[SncMode]) -> bool:
    return mode in (SncMode.FREE, SncMode.CHARGED)


def is_free_snc(mode: Optional[SncMode]) -> bool:
    return mode == SncMode.FREE


def is_charged_snc(mode: Optional[SncMode]) -> bool:
    return mode == SncMode.CHARGED


# ── Tier allowance helpers ──────────────────────────────────────────────
def has_monthly_free_snc_allowance(tier: Optional[Tier]) -> bool:
    return tier in (Tier.PREMIUM, Tier.ELITE)


def has_lifetime_single_free_snc_allowance(tier: Optional[Tier]) -> bool:
    return tier is None


def describe_snc_allowance_for_tier(tier: Optional[Tier]) -> str:
    """Help text for tooltips."""
    if tier is None:
        return "Exactly one free short-notice cancellation ever; all later SNCs are charged."
    if tier == Tier.BASIC:
        return "All short-notice cancellations are charged."
    return "One free short-notice cancellation per calendar month; additional SNCs are charged."


def compute_student_snc_status(records: Iterable[SncHistoryRecord]) -> StudentSncStatus:
    """Lifetime free/charged tally. Display and audit only, not the charge decision."""
    free_count = 0
    charged_count = 0
    for record in records:
        if record.is_charged:
            charged_count += 1
        else:
            free_count += 1
    return StudentSncStatus(free_count=free_count, charged_count=charged_count)


# ── Resolver ────────────────────────────────────────────────────────────
class SncAllowanceResolver:

    def __init__(self, config: Optional[AllocationEngineConfig] = None) -> None:
        self.config = config or AllocationEngineConfig()
        tz_name = self.config.snc_timezone
        self._tz = timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)

    def _local(self, value: datetime) -> datetime:
        # Naive timestamps are taken as UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self._tz)

    def in_same_month(self, occurred_at: datetime, now: datetime) -> bool:
        a = self._local(occurred_at)
        b = self._local(now)
        return (a.year, a.month) == (b.year, b.month)

    def resolve(
        self,
        tier: Optional[Tier],
        prior_records: Iterable[SncHistoryRecord],
        now: datetime,
    ) -> SncResolution:
        """
        Resolve the next SNC for a student.

        prior_records must already be scoped to the student. Empty history
        resolves to free for every tier except basic.
        """
        if tier == Tier.BASIC:
            resolution = SncResolution(mode=SncMode.CHARGED, tier=tier, scope="none")
        elif has_monthly_free_snc_allowance(tier):
            used = any(
                not r.is_charged and self.in_same_month(r.occurred_at, now)
                for r in prior_records
            )
            resolution = SncResolution(
                mode=SncMode.CHARGED if used else SncMode.FREE,
                tier=tier,
                scope="month",
                free_used_in_scope=used,
            )
        else:
            used = any(not r.is_charged for r in prior_records)
            resolution = SncResolution(
                mode=SncMode.CHARGED if used else SncMode.FREE,
                tier=tier,
                scope="lifetime",
                free_used_in_scope=used,
            )

        if resolution.mode == SncMode.CHARGED:
            logger.info(
                "SNC charged tier=%s scope=%s free_used=%s",
                tier.value if tier else "none", resolution.scope, resolution.free_used_in_scope,
            )
        else:
            logger.debug("SNC free tier=%s scope=%s", tier.value if tier else "none", resolution.scope)
        return resolution
