"""Unit tests for the SQLAlchemy plan repository"""

import uuid
from datetime import date
from decimal import Decimal
from installment_engine.domain.models import PaymentStatus, PlanStatus


def test_get_plan_by_id_malformed_or_unknown(repository):
    assert repository.get_plan_by_id("not-a-uuid") is None
    assert repository.get_plan_by_id(str(uuid.uuid4())) is None


def test_payments_keep_schedule_order(make_plan, repository):
    plan = make_plan(months=12)
    stored = repository.get_plan_by_id(plan.id)

    due_dates = [p.due_date for p in stored.payments]
    assert due_dates == sorted(due_dates)
    assert due_dates[0] == date(2025, 2, 15)
    assert len(due_dates) == 12


def test_update_plan_round_trip(make_plan, repository, clock):
    plan = make_plan()
    plan.payments[3].apply(Decimal("120.50"), clock.now(), clock.now())
    plan.total_paid += Decimal("120.50")
    plan.status = PlanStatus.DEFAULTED

    assert repository.update_plan(plan) is True

    stored = repository.get_plan_by_id(plan.id)
    assert stored.status is PlanStatus.DEFAULTED
    assert stored.total_paid == Decimal("320.50")
    assert stored.payments[3].amount_paid == Decimal("120.50")
    assert stored.payments[3].payment_date == clock.now()
    assert stored.payments[3].status is PaymentStatus.PENDING


def test_update_unknown_plan_returns_false(make_plan, repository):
    plan = make_plan()
    plan.id = str(uuid.uuid4())

    assert repository.update_plan(plan) is False


def test_filters_by_customer_sale_and_status(make_plan, repository):
    first = make_plan(customer_id="c-1", sale_id="s-1")
    second = make_plan(customer_id="c-1", sale_id="s-2")
    other = make_plan(customer_id="c-2", sale_id="s-3")
    other.status = PlanStatus.CANCELLED
    repository.update_plan(other)

    assert {p.id for p in repository.get_plans_by_customer_id("c-1")} == {first.id, second.id}
    assert [p.id for p in repository.get_plans_by_sale_id("s-2")] == [second.id]
    assert repository.get_plans_by_customer_id("nobody") == []
    assert [p.id for p in repository.get_plans_by_status(PlanStatus.CANCELLED)] == [other.id]
    assert len(repository.get_all_plans()) == 3
    assert repository.count_plans() == 3


def test_total_outstanding_counts_active_plans_only(make_plan, repository):
    assert repository.total_outstanding_amount() == Decimal("0")

    make_plan()  # 1000 outstanding
    make_plan(total_price="2200", down_payment="200", months=12, rate="5")  # 2100 outstanding
    cancelled = make_plan(total_price="600", down_payment="100")
    cancelled.status = PlanStatus.CANCELLED
    repository.update_plan(cancelled)

    assert repository.total_outstanding_amount() == Decimal("3100")


def test_fractional_rate_balance_is_stored_exactly(make_plan, repository):
    """1000.01 at 3.3333% carries interest to 8 decimal places"""
    plan = make_plan(total_price="1000.01", down_payment="0", rate="3.3333")

    assert plan.remaining_balance == Decimal("1033.34333333")
    assert plan.remaining_balance == plan.total_amount_with_interest

    stored = repository.get_plan_by_id(plan.id)
    assert stored.interest_rate == Decimal("3.3333")
    assert stored.total_price == Decimal("1000.01")
    assert stored.remaining_balance == Decimal("1033.34333333")
    assert stored.remaining_balance == stored.total_amount_with_interest
