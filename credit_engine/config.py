"""
Credit Engine — Configuration

Ledger enumerations, hazard severity/priority tables, and tuning parameters.

The severity and priority tables are closed mappings over HazardType and
are checked at import time: adding a hazard type without updating both
tables stops the package from importing.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional

import yaml

logger = logging.getLogger("credit.config")


# ── Lesson / lot enumerations ───────────────────────────────────────────
class Delivery(str, Enum):
    ONLINE = "online"
    F2F = "f2f"


class LengthCat(str, Enum):
    """Lesson length categories. NONE = no category / unrestricted."""
    L60 = "60"
    L90 = "90"
    L120 = "120"
    NONE = "none"


class Tier(str, Enum):
    """Student package tier. A student with no tier (legacy) is None, not a member."""
    BASIC = "basic"
    PREMIUM = "premium"
    ELITE = "elite"


class SourceType(str, Enum):
    INVOICE = "invoice"
    AWARD = "award"
    OVERDRAFT = "overdraft"
    ADJUSTMENT = "adjustment"


class ExpiryPolicy(str, Enum):
    """
    Expiry behaviour of a credit lot.

    NONE:      expiry date ignored
    ADVISORY:  usable after expiry, flagged for reporting
    MANDATORY: not usable after expiry unless an admin overrides
    """
    NONE = "none"
    ADVISORY = "advisory"
    MANDATORY = "mandatory"


class LotState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class SncMode(str, Enum):
    NONE = "none"
    FREE = "free"
    CHARGED = "charged"


# ── Hazards ─────────────────────────────────────────────────────────────
class HazardType(str, Enum):
    DELIVERY_F2F_ON_ONLINE = "delivery_f2f_on_online"
    DELIVERY_ONLINE_ON_F2F = "delivery_online_on_f2f"
    LENGTH_RESTRICTION_MISMATCH = "length_restriction_mismatch"
    LENGTH_TOO_SHORT = "length_too_short"
    OVERDRAFT_ALLOCATION = "overdraft_allocation"
    SNC_OVERUSE = "snc_overuse"


class HazardSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SeverityRank(IntEnum):
    """Display rank; lower sorts first."""
    ERROR = 0
    WARNING = 1
    INFO = 2

    @classmethod
    def of(cls, severity: HazardSeverity) -> "SeverityRank":
        return cls[severity.name]


HAZARD_DEFAULT_SEVERITY = {
    HazardType.OVERDRAFT_ALLOCATION: HazardSeverity.ERROR,
    HazardType.SNC_OVERUSE: HazardSeverity.ERROR,
    HazardType.DELIVERY_F2F_ON_ONLINE: HazardSeverity.WARNING,
    HazardType.DELIVERY_ONLINE_ON_F2F: HazardSeverity.WARNING,
    HazardType.LENGTH_RESTRICTION_MISMATCH: HazardSeverity.WARNING,
    HazardType.LENGTH_TOO_SHORT: HazardSeverity.INFO,
}

# Intra-severity display priority
HAZARD_TYPE_PRIORITY = {
    HazardType.OVERDRAFT_ALLOCATION: 0,
    HazardType.SNC_OVERUSE: 1,
    HazardType.DELIVERY_F2F_ON_ONLINE: 2,
    HazardType.DELIVERY_ONLINE_ON_F2F: 3,
    HazardType.LENGTH_RESTRICTION_MISMATCH: 4,
    HazardType.LENGTH_TOO_SHORT: 5,
}


def check_exhaustive(table: dict, enum_cls: type[Enum], name: str) -> None:
    """Raise RuntimeError unless `table` has exactly one key per member of `enum_cls`."""
    missing = [m.value for m in enum_cls if m not in table]
    extra = [k for k in table if k not in set(enum_cls)]
    if missing or extra:
        raise RuntimeError(
            f"{name} is not exhaustive over {enum_cls.__name__}: "
            f"missing={missing} extra={extra}"
        )


check_exhaustive(HAZARD_DEFAULT_SEVERITY, HazardType, "HAZARD_DEFAULT_SEVERITY")
check_exhaustive(HAZARD_TYPE_PRIORITY, HazardType, "HAZARD_TYPE_PRIORITY")
check_exhaustive({s: SeverityRank.of(s) for s in HazardSeverity}, HazardSeverity, "SeverityRank")


# ── Engine tuning ───────────────────────────────────────────────────────
DEFAULT_STANDARD_LESSON_MINUTES = {
    LengthCat.L60: 60,
    LengthCat.L90: 90,
    LengthCat.L120: 120,
}


@dataclass
class AllocationEngineConfig:
    """Tuning parameters for the credit engine."""

    # length_too_short: minimum duration per length category.
    # Categories without an entry are never flagged.
    standard_lesson_minutes: dict[LengthCat, int] = field(
        default_factory=lambda: dict(DEFAULT_STANDARD_LESSON_MINUTES)
    )

    # Calendar months for the premium/elite SNC allowance are taken in this zone
    snc_timezone: str = "UTC"

    # Lot warnings
    expiring_soon_days: int = 30

    # Low-credit warnings
    low_credit_generic_minutes: int = 360     # 6 hours
    low_credit_buffer_hours: float = 4.0      # remaining − avg monthly usage

    def standard_minutes_for(self, length_cat: LengthCat) -> Optional[int]:
        return self.standard_lesson_minutes.get(length_cat)

    @classmethod
    def from_settings(cls, settings) -> "AllocationEngineConfig":
        """Build from a Settings instance, preferring the YAML lengths file when set."""
        if settings.STANDARD_LENGTHS_FILE:
            standard = load_standard_lengths(settings.STANDARD_LENGTHS_FILE)
        else:
            standard = parse_standard_lengths(settings.STANDARD_LESSON_MINUTES)

        return cls(
            standard_lesson_minutes=standard,
            snc_timezone=settings.SNC_TIMEZONE,
            expiring_soon_days=settings.EXPIRING_SOON_DAYS,
            low_credit_generic_minutes=settings.LOW_CREDIT_GENERIC_MINUTES,
            low_credit_buffer_hours=settings.LOW_CREDIT_BUFFER_HOURS,
        )


# ── Standard lengths loader ─────────────────────────────────────────────
def parse_standard_lengths(raw: dict) -> dict[LengthCat, int]:
    """
    Convert a {"60": 55, "90": 85} style mapping to LengthCat keys.

    Unknown categories and non-positive values are skipped with a warning.
    """
    standard: dict[LengthCat, int] = {}
    for key, value in (raw or {}).items():
        try:
            cat = LengthCat(str(key))
            minutes = int(value)
        except (ValueError, TypeError) as e:
            logger.warning("Bad standard length entry %r=%r: %s", key, value, e)
            continue

        if minutes <= 0:
            logger.warning("Ignoring non-positive standard length for %s: %d", cat.value, minutes)
            continue
        standard[cat] = minutes

    return standard


def load_standard_lengths(config_path: str) -> dict[LengthCat, int]:
    """
    Load standard lesson lengths from YAML.

    Expected document:
        standard_lengths:
          "60": 55
          "90": 85
          "120": 115
    """
    with open(config_path, "r") as f:
        raw = yaml.safe_load(f) or {}

    standard = parse_standard_lengths(raw.get("standard_lengths", {}))
    logger.info("Standard lengths loaded from %s: %d categories", config_path, len(standard))
    return standard
