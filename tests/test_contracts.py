from __future__ import annotations

from datetime import date

import pytest

from credit_engine.config import Delivery, ExpiryPolicy, LengthCat, LotState
from credit_engine.contracts import (
    ContractViolation,
    ensure_planner_input,
    ensure_valid_lesson,
    prepare_open_lots,
)
from credit_engine.models import CreditLot, Lesson

TODAY = date(2026, 3, 15)


def _build_lot(
    lot_id: str,
    *,
    start: date | None = date(2026, 1, 1),
    state: LotState = LotState.OPEN,
    policy: ExpiryPolicy = ExpiryPolicy.NONE,
    expiry: date | None = None,
) -> CreditLot:
    return CreditLot(
        lot_id=lot_id,
        minutes_granted=60,
        start_date=start,
        state=state,
        expiry_policy=policy,
        expiry_date=expiry,
    )


def test_lesson_with_positive_duration_passes() -> None:
    lesson = Lesson(lesson_id="l1", duration_minutes=60, delivery=Delivery.ONLINE)

    assert ensure_valid_lesson(lesson) is lesson


@pytest.mark.parametrize("duration", [0, -30])
def test_lesson_with_non_positive_duration_is_rejected(duration) -> None:
    lesson = Lesson(lesson_id="l1", duration_minutes=duration, delivery=Delivery.ONLINE)

    with pytest.raises(ContractViolation, match="lesson_duration_not_positive") as exc:
        ensure_valid_lesson(lesson)
    assert exc.value.code == "lesson_duration_not_positive"


def test_lesson_with_raw_length_string_is_rejected() -> None:
    lesson = Lesson(lesson_id="l1", duration_minutes=60, delivery=Delivery.ONLINE, length_cat="75")

    with pytest.raises(ContractViolation, match="unknown_length_category"):
        ensure_valid_lesson(lesson)


def test_closed_lot_is_rejected() -> None:
    lots = [_build_lot("a"), _build_lot("b", state=LotState.CLOSED)]

    with pytest.raises(ContractViolation, match="lot_not_open"):
        ensure_planner_input(lots)


def test_unsorted_lots_are_rejected() -> None:
    lots = [_build_lot("new", start=date(2026, 2, 1)), _build_lot("old", start=date(2026, 1, 1))]

    with pytest.raises(ContractViolation, match="lots_not_fifo_sorted"):
        ensure_planner_input(lots)


def test_undated_lot_does_not_hide_unsorted_neighbours() -> None:
    lots = [
        _build_lot("newer", start=date(2026, 2, 1)),
        _build_lot("undated", start=None),
        _build_lot("older", start=date(2026, 1, 1)),
    ]

    with pytest.raises(ContractViolation, match="lots_not_fifo_sorted"):
        ensure_planner_input(lots)


def test_undated_lots_must_come_last() -> None:
    undated_first = [_build_lot("undated", start=None), _build_lot("dated", start=date(2026, 1, 1))]
    undated_last = list(reversed(undated_first))

    with pytest.raises(ContractViolation, match="lots_not_fifo_sorted"):
        ensure_planner_input(undated_first)
    assert ensure_planner_input(undated_last) == undated_last


def test_duplicate_lot_ids_are_rejected() -> None:
    with pytest.raises(ContractViolation, match="duplicate_lot_id"):
        ensure_planner_input([_build_lot("a"), _build_lot("a")])


def test_sorted_open_lots_pass() -> None:
    lots = [_build_lot("a", start=date(2026, 1, 1)), _build_lot("b", start=date(2026, 1, 1))]

    assert ensure_planner_input(lots) == lots
    assert ensure_planner_input([]) == []


def test_prepare_open_lots_filters_and_sorts() -> None:
    lots = [
        _build_lot("c", start=date(2026, 3, 1)),
        _build_lot("closed", start=date(2025, 1, 1), state=LotState.CLOSED),
        _build_lot("b", start=date(2026, 1, 1)),
        _build_lot("a", start=date(2026, 1, 1)),
        _build_lot("undated", start=None),
    ]

    prepared = prepare_open_lots(lots, TODAY)

    assert [l.lot_id for l in prepared] == ["a", "b", "c", "undated"]
    assert ensure_planner_input(prepared) == prepared


def test_prepare_open_lots_drops_mandatory_expired_unless_override() -> None:
    lots = [
        _build_lot("hard-expired", policy=ExpiryPolicy.MANDATORY, expiry=date(2026, 3, 1)),
        _build_lot("soft-expired", policy=ExpiryPolicy.ADVISORY, expiry=date(2026, 3, 1)),
        _build_lot("hard-today", policy=ExpiryPolicy.MANDATORY, expiry=TODAY),
    ]

    normal = prepare_open_lots(lots, TODAY)
    overridden = prepare_open_lots(lots, TODAY, admin_override=True)

    assert [l.lot_id for l in normal] == ["hard-today", "soft-expired"]
    assert [l.lot_id for l in overridden] == ["hard-expired", "hard-today", "soft-expired"]


def test_length_category_enum_value_passes() -> None:
    lesson = Lesson(lesson_id="l1", duration_minutes=90, delivery=Delivery.F2F, length_cat=LengthCat.L90)

    assert ensure_valid_lesson(lesson) is lesson
