"""
Credit Engine — Input Contracts

The planner and classifier are total functions; they trust their input.
Caller mistakes (closed lots, unsorted lots, non-positive durations) are
rejected here, before the engine runs.
"""

import logging
from datetime import date
from typing import Iterable, Sequence

from .config import LengthCat, LotState
from .expiry import is_usable
from .models import CreditLot, Lesson

logger = logging.getLogger("credit.contracts")


class ContractViolation(ValueError):
    """Caller passed input the engine is not defined for."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


def _reject(code: str, message: str) -> ContractViolation:
    logger.warning("Contract violation %s: %s", code, message)
    return ContractViolation(code, message)


def ensure_valid_lesson(lesson: Lesson) -> Lesson:
    if lesson.duration_minutes <= 0:
        raise _reject(
            "lesson_duration_not_positive",
            f"lesson {lesson.lesson_id} has duration {lesson.duration_minutes}",
        )
    if not isinstance(lesson.length_cat, LengthCat):
        raise _reject(
            "unknown_length_category",
            f"lesson {lesson.lesson_id} has length category {lesson.length_cat!r}",
        )
    return lesson


def _fifo_key(lot: CreditLot) -> date:
    # Undated lots sort after every dated lot
    return lot.start_date or date.max


def ensure_planner_input(lots: Sequence[CreditLot]) -> Sequence[CreditLot]:
    """Lots must be open, unique by id, and in ascending start_date order (undated last)."""
    seen: set[str] = set()
    previous = None
    for lot in lots:
        if lot.state != LotState.OPEN:
            raise _reject("lot_not_open", f"lot {lot.lot_id} is {lot.state.value}")
        if lot.lot_id in seen:
            raise _reject("duplicate_lot_id", f"lot {lot.lot_id} appears more than once")
        seen.add(lot.lot_id)

        if previous is not None and _fifo_key(lot) < _fifo_key(previous):
            raise _reject(
                "lots_not_fifo_sorted",
                f"lot {lot.lot_id} ({lot.start_date}) follows "
                f"{previous.lot_id} ({previous.start_date})",
            )
        previous = lot
    return lots


def prepare_open_lots(
    lots: Iterable[CreditLot],
    today: date,
    admin_override: bool = False,
) -> list[CreditLot]:
    """
    Build valid planner input from a student's lots.

    Keeps open lots, drops mandatory-expiry lots past their date unless
    admin_override, and orders oldest first (ties by lot_id). Lots with no
    start date sort last.
    """
    eligible = [
        lot for lot in lots
        if lot.state == LotState.OPEN and is_usable(lot, today, admin_override)
    ]
    return sorted(eligible, key=lambda lot: (_fifo_key(lot), lot.lot_id))
