from __future__ import annotations

import random
from datetime import date, timedelta

from credit_engine.config import Delivery, LengthCat
from credit_engine.models import CreditLot, Lesson
from credit_engine.planner import AllocationPlanner


def _build_lesson(
    *,
    duration: int = 60,
    delivery: Delivery = Delivery.ONLINE,
    length_cat: LengthCat = LengthCat.L60,
) -> Lesson:
    return Lesson(
        lesson_id="lesson-1",
        duration_minutes=duration,
        delivery=delivery,
        length_cat=length_cat,
    )


def _build_lot(
    lot_id: str,
    *,
    remaining: int,
    start: date = date(2026, 1, 1),
    delivery: Delivery | None = None,
    length: LengthCat | None = None,
) -> CreditLot:
    return CreditLot(
        lot_id=lot_id,
        minutes_granted=max(remaining, 0) + 30,
        minutes_allocated=30 if remaining >= 0 else 30 - remaining,
        start_date=start,
        delivery_restriction=delivery,
        length_restriction=length,
    )


def _steps(plan) -> list[tuple]:
    return [(s.lot_id, s.from_remaining, s.allocate_minutes, s.to_remaining) for s in plan.steps]


# ── End-to-end scenarios ────────────────────────────────────────────────

def test_fifo_across_two_sufficient_exact_lots() -> None:
    lesson = _build_lesson(duration=90, length_cat=LengthCat.L90)
    lots = [
        _build_lot("L1", remaining=60, start=date(2026, 1, 1)),
        _build_lot("L2", remaining=60, start=date(2026, 1, 2), delivery=Delivery.ONLINE),
    ]

    plan = AllocationPlanner().plan(lesson, lots)

    assert _steps(plan) == [("L1", 60, 60, 0), ("L2", 60, 30, 30)]
    assert plan.negative_balance is False
    assert plan.counter_delivery is False
    assert plan.length_violation is False


def test_counter_delivery_lot_then_overdraft() -> None:
    lesson = _build_lesson(duration=60)
    lots = [_build_lot("L1", remaining=30, delivery=Delivery.F2F)]

    plan = AllocationPlanner().plan(lesson, lots)

    assert _steps(plan) == [("L1", 30, 30, 0), (None, 0, 30, -30)]
    assert plan.steps[0].counter_delivery is True
    assert plan.steps[1].is_overdraft
    assert plan.steps[1].counter_delivery is False
    assert plan.steps[1].length_violation is False
    assert plan.negative_balance is True
    assert plan.counter_delivery is True


def test_no_lots_yields_single_overdraft_step() -> None:
    plan = AllocationPlanner().plan(_build_lesson(duration=45), [])

    assert _steps(plan) == [(None, 0, 45, -45)]
    assert plan.negative_balance is True
    assert plan.overdraft_step is plan.steps[0]


# ── Ordering ────────────────────────────────────────────────────────────

def test_exact_lot_consumed_before_older_any_lot() -> None:
    lesson = _build_lesson(duration=60)
    lots = [
        _build_lot("old-mismatch", remaining=120, start=date(2025, 6, 1),
                   delivery=Delivery.F2F, length=LengthCat.L90),
        _build_lot("new-exact", remaining=120, start=date(2026, 1, 1)),
    ]

    plan = AllocationPlanner().plan(lesson, lots)

    assert _steps(plan) == [("new-exact", 120, 60, 60)]


def test_length_only_pool_precedes_any_pool() -> None:
    lesson = _build_lesson(duration=90)
    lots = [
        _build_lot("any", remaining=60, start=date(2025, 1, 1), length=LengthCat.L120),
        _build_lot("length-only", remaining=60, start=date(2025, 2, 1), delivery=Delivery.F2F),
    ]

    plan = AllocationPlanner().plan(lesson, lots)

    assert [s.lot_id for s in plan.steps] == ["length-only", "any"]
    assert plan.steps[0].counter_delivery is True
    assert plan.steps[0].length_violation is False
    assert plan.steps[1].counter_delivery is False
    assert plan.steps[1].length_violation is True
    assert plan.length_violation is True


def test_older_lot_first_within_same_pool() -> None:
    lesson = _build_lesson(duration=30)
    lots = [
        _build_lot("A", remaining=60, start=date(2026, 1, 1)),
        _build_lot("B", remaining=60, start=date(2026, 2, 1)),
    ]

    plan = AllocationPlanner().plan(lesson, lots)

    assert [s.lot_id for s in plan.steps] == ["A"]


def test_consumption_order_deduplicates_by_lot_id() -> None:
    lesson = _build_lesson()
    lots = [
        _build_lot("exact", remaining=60),
        _build_lot("f2f", remaining=60, delivery=Delivery.F2F),
    ]

    order = AllocationPlanner().consumption_order(lesson, lots)

    assert [l.lot_id for l in order] == ["exact", "f2f"]


def test_depleted_lots_never_produce_zero_steps() -> None:
    lesson = _build_lesson(duration=60)
    lots = [
        _build_lot("empty", remaining=0, start=date(2025, 1, 1)),
        _build_lot("negative", remaining=-20, start=date(2025, 2, 1)),
        _build_lot("good", remaining=90, start=date(2025, 3, 1)),
    ]

    plan = AllocationPlanner().plan(lesson, lots)

    assert _steps(plan) == [("good", 90, 60, 30)]


def test_overdraft_starts_from_last_real_step_remaining() -> None:
    lesson = _build_lesson(duration=100)
    lots = [
        _build_lot("A", remaining=40, start=date(2025, 1, 1)),
        _build_lot("B", remaining=25, start=date(2025, 2, 1)),
    ]

    plan = AllocationPlanner().plan(lesson, lots)

    assert _steps(plan) == [("A", 40, 40, 0), ("B", 25, 25, 0), (None, 0, 35, -35)]


# ── Properties ──────────────────────────────────────────────────────────

def _random_lot(rng: random.Random, index: int, start: date) -> CreditLot:
    return _build_lot(
        f"lot-{index}",
        remaining=rng.choice([-30, 0, 15, 30, 45, 60, 90, 120, 600]),
        start=start,
        delivery=rng.choice([None, Delivery.ONLINE, Delivery.F2F]),
        length=rng.choice([None, LengthCat.NONE, LengthCat.L60, LengthCat.L90, LengthCat.L120]),
    )


def _random_case(rng: random.Random) -> tuple[Lesson, list[CreditLot]]:
    start = date(2025, 1, 1)
    lots = []
    for i in range(rng.randint(0, 6)):
        start = start + timedelta(days=rng.randint(0, 20))
        lots.append(_random_lot(rng, i, start))
    lesson = _build_lesson(
        duration=rng.choice([15, 30, 45, 60, 90, 120, 240]),
        delivery=rng.choice(list(Delivery)),
        length_cat=rng.choice(list(LengthCat)),
    )
    return lesson, lots


def test_plan_properties_hold_for_random_ledgers() -> None:
    rng = random.Random(20260101)
    planner = AllocationPlanner()

    for _ in range(500):
        lesson, lots = _random_case(rng)
        plan = planner.plan(lesson, lots)

        assert plan.total_allocated == lesson.duration_minutes
        overdraft = [i for i, s in enumerate(plan.steps) if s.is_overdraft]
        assert len(overdraft) <= 1
        if overdraft:
            assert overdraft == [len(plan.steps) - 1]
            assert plan.negative_balance is True
            assert plan.steps[-1].to_remaining < 0
        else:
            assert plan.negative_balance is False

        real = [s for s in plan.steps if not s.is_overdraft]
        assert len({s.lot_id for s in real}) == len(real)
        for step in plan.steps:
            assert step.allocate_minutes > 0
            assert step.to_remaining == step.from_remaining - step.allocate_minutes
        for step in real:
            assert step.to_remaining >= 0
            assert step.from_remaining == step.lot.minutes_remaining

        assert plan.counter_delivery == any(s.counter_delivery for s in plan.steps)
        assert plan.length_violation == any(s.length_violation for s in plan.steps)


def test_plan_is_deterministic_and_leaves_input_untouched() -> None:
    rng = random.Random(7)
    planner = AllocationPlanner()

    for _ in range(100):
        lesson, lots = _random_case(rng)
        snapshot = [lot.to_dict() for lot in lots]

        first = planner.plan(lesson, lots)
        second = planner.plan(lesson, lots)

        assert first == second
        assert [lot.to_dict() for lot in lots] == snapshot
