"""
Credit Engine — Expiry Helpers

Expiry policy predicates and per-lot warnings.

    mandatory: cannot use an expired lot unless an admin overrides
    advisory:  usable after expiry, flagged for reporting
    none:      expiry ignored
"""

from datetime import date, timedelta
from typing import Optional

from .config import ExpiryPolicy
from .models import CreditLot


def is_expiry_blocking(policy: Optional[ExpiryPolicy]) -> bool:
    return policy == ExpiryPolicy.MANDATORY


def is_expiry_warning_only(policy: Optional[ExpiryPolicy]) -> bool:
    return policy == ExpiryPolicy.ADVISORY


def expiry_policy_label(policy: Optional[ExpiryPolicy]) -> str:
    if policy == ExpiryPolicy.MANDATORY:
        return "Hard expiry"
    if policy == ExpiryPolicy.ADVISORY:
        return "Soft expiry"
    return "No expiry"


def expiry_policy_description(policy: Optional[ExpiryPolicy]) -> str:
    if policy == ExpiryPolicy.MANDATORY:
        return "After the expiry date, this credit cannot be used unless an admin overrides the expiry."
    if policy == ExpiryPolicy.ADVISORY:
        return (
            "After the expiry date, this credit can still be used, "
            "but it will be flagged as expired for reporting."
        )
    return "This credit never expires. Lessons can always use it."


def expiring_soon_banner(policy: ExpiryPolicy) -> str:
    if policy == ExpiryPolicy.MANDATORY:
        return (
            "Some of this student's credit will hard-expire soon. "
            "Consider encouraging them to book lessons."
        )
    if policy == ExpiryPolicy.ADVISORY:
        return "Some of this student's credit is approaching its advisory expiry date."
    return "Credit is marked as expiring soon."


def is_expired(lot: CreditLot, today: date) -> bool:
    return lot.expiry_date is not None and lot.expiry_date < today


def is_expiring_soon(lot: CreditLot, today: date, days: int = 30) -> bool:
    if lot.expiry_date is None:
        return False
    return lot.expiry_date <= today + timedelta(days=days)


def is_depleted(lot: CreditLot) -> bool:
    return lot.minutes_remaining <= 0


def lot_has_warning(lot: CreditLot, today: date, days: int = 30) -> bool:
    return is_depleted(lot) or is_expiring_soon(lot, today, days)


def is_usable(lot: CreditLot, today: date, admin_override: bool = False) -> bool:
    """False only for a mandatory-expiry lot past its date without an override."""
    if admin_override:
        return True
    return not (is_expiry_blocking(lot.expiry_policy) and is_expired(lot, today))
