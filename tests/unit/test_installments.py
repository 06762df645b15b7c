"""Unit tests for payment schedule generation"""

from datetime import date
from decimal import Decimal
from installment_engine.domain.amortization import compute_installment_amount
from installment_engine.domain.installments import generate_payment_schedule
from installment_engine.domain.models import PaymentStatus


def test_schedule_length_and_amounts():
    schedule = generate_payment_schedule(Decimal("1000"), Decimal("12"), 6, date(2025, 1, 15))
    expected_amount = compute_installment_amount(Decimal("1000"), Decimal("12"), 6)

    assert len(schedule) == 6
    assert all(p.amount_due == expected_amount for p in schedule)
    assert all(p.amount_paid == 0 for p in schedule)
    assert all(p.payment_date is None for p in schedule)
    assert all(p.status is PaymentStatus.PENDING for p in schedule)


def test_schedule_dates_start_one_month_after_start():
    schedule = generate_payment_schedule(Decimal("1000"), Decimal("0"), 6, date(2025, 1, 15))

    assert [p.due_date for p in schedule] == [
        date(2025, 2, 15),
        date(2025, 3, 15),
        date(2025, 4, 15),
        date(2025, 5, 15),
        date(2025, 6, 15),
        date(2025, 7, 15),
    ]


def test_schedule_clamps_to_month_end():
    """Each due date is offset from the start date, so Jan 31 does not drift to the 28th"""
    schedule = generate_payment_schedule(Decimal("900"), Decimal("0"), 3, date(2025, 1, 31))

    assert [p.due_date for p in schedule] == [
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
    ]


def test_schedule_has_no_final_rounding_correction():
    """1000 / 3 -> three payments of 333.33; the missing cent is not added to the last one"""
    schedule = generate_payment_schedule(Decimal("1000"), Decimal("0"), 3, date(2025, 1, 15))

    assert [p.amount_due for p in schedule] == [Decimal("333.33")] * 3
    assert sum(p.amount_due for p in schedule) == Decimal("999.99")


def test_schedule_is_restartable():
    first = generate_payment_schedule(Decimal("1500"), Decimal("9.5"), 4, date(2025, 3, 1))
    second = generate_payment_schedule(Decimal("1500"), Decimal("9.5"), 4, date(2025, 3, 1))

    assert first == second
    assert first is not second
