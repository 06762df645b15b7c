"""Installment plan ledger - creation, payment settlement, and status transitions"""

import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterator, List, Optional

from installment_engine.domain.amortization import compute_installment_amount, to_decimal
from installment_engine.domain.exceptions import (
    InternalError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from installment_engine.domain.installments import generate_payment_schedule
from installment_engine.domain.models import (
    InstallmentPlan,
    PaymentStatus,
    PlanStatus,
    ZERO,
    change_plan_status,
)
from installment_engine.domain.results import Err, Ok, Result
from installment_engine.domain.store import PlanStore
from installment_engine.utils.clock import Clock, SystemClock
from installment_engine.utils.date_utils import add_months, overdue_cutoff


class PlanLocks:
    """
    In-process mutual exclusion keyed by plan id.

    Shared by every ledger in the process (request handlers and the overdue
    sweeper) so fetch-mutate-persist sequences on one plan never interleave.
    Writers in other processes are not covered.

    A plan's lock lives only while someone holds or waits for it, so the
    registry never outgrows the number of in-flight operations.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}

    def in_use(self) -> int:
        """Plan ids currently held or waited on"""
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, plan_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(plan_id, threading.Lock())
            self._holders[plan_id] = self._holders.get(plan_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._holders[plan_id] -= 1
                if not self._holders[plan_id]:
                    del self._holders[plan_id]
                    del self._locks[plan_id]


class PlanLedger:
    """Owns the mutable state of installment plans held in a PlanStore"""

    def __init__(
        self,
        store: PlanStore,
        clock: Clock | None = None,
        locks: PlanLocks | None = None,
        cap_overpayment_in_totals: bool = False,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.locks = locks if locks is not None else PlanLocks()
        # When True, plan totals move by the capped amount applied to the installment
        self.cap_overpayment_in_totals = cap_overpayment_in_totals

    def create_plan(
        self,
        sale_id: str,
        customer_id: str,
        product_id: str,
        total_price: Decimal,
        down_payment: Decimal,
        term_months: int,
        annual_rate_percent: Decimal,
        start_date: date,
    ) -> Result[InstallmentPlan]:
        """
        Create a plan with its full payment schedule and persist it.

        The down payment counts as already paid; the remaining balance starts at
        principal plus flat interest, principal * (1 + rate / 100).
        """
        total_price = to_decimal(total_price)
        down_payment = to_decimal(down_payment)
        annual_rate_percent = to_decimal(annual_rate_percent)

        if down_payment > total_price:
            return Err(ValidationError("Down payment cannot be greater than total price"))
        if term_months <= 0:
            return Err(ValidationError("Number of months must be greater than 0"))
        if annual_rate_percent < 0:
            return Err(ValidationError("Interest rate cannot be negative"))

        try:
            now = self.clock.now()
            principal = total_price - down_payment

            plan = InstallmentPlan(
                sale_id=sale_id,
                customer_id=customer_id,
                product_id=product_id,
                total_price=total_price,
                down_payment=down_payment,
                number_of_installments=term_months,
                installment_amount=compute_installment_amount(principal, annual_rate_percent, term_months),
                interest_rate=annual_rate_percent,
                start_date=start_date,
                end_date=add_months(start_date, term_months),
                status=PlanStatus.ACTIVE,
                payments=generate_payment_schedule(principal, annual_rate_percent, term_months, start_date),
                total_paid=down_payment,
                remaining_balance=principal + principal * annual_rate_percent / 100,
                created_at=now,
                updated_at=now,
            )
            for payment in plan.payments:
                payment.created_at = now
                payment.updated_at = now

            created = self.store.create_plan(plan)
        except Exception as e:
            return self._internal_error("creating installment plan", e, sale_id=sale_id)

        logging.info(
            f"Installment plan created successfully with ID: {created.id}",
            extra={"plan_id": created.id, "sale_id": sale_id, "customer_id": customer_id},
        )
        return Ok(created)

    def get_plan(self, plan_id: str) -> Result[InstallmentPlan]:
        try:
            plan = self.store.get_plan_by_id(plan_id)
        except Exception as e:
            return self._internal_error("retrieving installment plan", e, plan_id=plan_id)

        if plan is None:
            return Err(NotFoundError(f"Installment plan with ID {plan_id} not found"))
        return Ok(plan)

    def list_plans(self) -> List[InstallmentPlan]:
        return self.store.get_all_plans()

    def plans_for_customer(self, customer_id: str) -> List[InstallmentPlan]:
        return self.store.get_plans_by_customer_id(customer_id)

    def plans_for_sale(self, sale_id: str) -> List[InstallmentPlan]:
        return self.store.get_plans_by_sale_id(sale_id)

    def overdue_plans(self) -> List[InstallmentPlan]:
        return self.store.get_overdue_plans(overdue_cutoff(self.clock.now()))

    def record_payment(
        self,
        plan_id: str,
        installment_index: int,
        amount: Decimal,
        payment_date: Optional[datetime] = None,
    ) -> Result[InstallmentPlan]:
        """
        Apply a payment to one installment and recompute plan totals.

        Overpaying an installment caps its amount_paid at amount_due. Unless
        cap_overpayment_in_totals is set, plan.total_paid still grows by the
        full amount, so it can exceed the sum of per-installment payments.
        """
        amount = to_decimal(amount)

        with self.locks.hold(plan_id):
            try:
                plan = self.store.get_plan_by_id(plan_id)
                if plan is None:
                    return Err(NotFoundError(f"Installment plan with ID {plan_id} not found"))

                if plan.status is not PlanStatus.ACTIVE:
                    return Err(InvalidStateError(f"Cannot record payment for plan with status: {plan.status.value}"))

                if installment_index < 0 or installment_index >= len(plan.payments):
                    return Err(ValidationError(f"Invalid installment index: {installment_index}"))

                installment = plan.payments[installment_index]
                if installment.status is PaymentStatus.PAID:
                    return Err(InvalidStateError(f"Installment {installment_index + 1} is already paid"))

                if amount <= 0:
                    return Err(ValidationError("Payment amount must be greater than 0"))

                now = self.clock.now()
                applied = installment.apply(amount, payment_date or now, now)
                counted = applied if self.cap_overpayment_in_totals else amount

                plan.total_paid += counted
                plan.remaining_balance = max(ZERO, plan.remaining_balance - counted)

                if plan.is_completed:
                    plan.status = PlanStatus.COMPLETED
                    logging.info(f"Installment plan {plan_id} completed", extra={"plan_id": plan_id})

                plan.updated_at = now
                self.store.update_plan(plan)
            except Exception as e:
                return self._internal_error(
                    "recording payment", e, plan_id=plan_id, installment_index=installment_index
                )

        logging.info(
            f"Payment of {amount} recorded for installment {installment_index + 1} of plan {plan_id}",
            extra={"plan_id": plan_id, "installment_index": installment_index, "amount": str(amount)},
        )
        return Ok(plan)

    def validate_payment(self, plan_id: str, installment_index: int, amount: Decimal) -> bool:
        """
        Pre-flight check with no side effects.

        Stricter than record_payment: also rejects amounts that would overpay
        the installment. Plan status is not checked here.
        """
        amount = to_decimal(amount)
        try:
            plan = self.store.get_plan_by_id(plan_id)
        except Exception:
            logging.error(
                f"Error validating payment for plan {plan_id}",
                exc_info=True,
                extra={"plan_id": plan_id, "installment_index": installment_index},
            )
            return False

        if plan is None:
            return False
        if installment_index < 0 or installment_index >= len(plan.payments):
            return False

        installment = plan.payments[installment_index]
        if installment.status is PaymentStatus.PAID:
            return False

        return ZERO < amount <= installment.outstanding

    def complete_plan(self, plan_id: str) -> Result[InstallmentPlan]:
        """
        Administrative override: declare the plan fully settled.

        Every unpaid installment becomes Paid at its full amount and the plan
        totals are set as if the whole price was collected, whatever was
        actually received.
        """
        with self.locks.hold(plan_id):
            try:
                plan = self.store.get_plan_by_id(plan_id)
                if plan is None:
                    return Err(NotFoundError(f"Installment plan with ID {plan_id} not found"))

                now = self.clock.now()
                for payment in plan.payments:
                    if payment.status is not PaymentStatus.PAID:
                        payment.settle(now)

                plan.status = PlanStatus.COMPLETED
                plan.total_paid = plan.total_price
                plan.remaining_balance = ZERO
                plan.updated_at = now
                self.store.update_plan(plan)
            except Exception as e:
                return self._internal_error("completing installment plan", e, plan_id=plan_id)

        logging.info(f"Installment plan {plan_id} marked as completed", extra={"plan_id": plan_id})
        return Ok(plan)

    def update_status(self, plan_id: str, new_status: PlanStatus) -> bool:
        """Overwrite plan status; False when the plan does not exist"""
        with self.locks.hold(plan_id):
            plan = self.store.get_plan_by_id(plan_id)
            if plan is None:
                return False

            change_plan_status(plan, new_status, self.clock.now())
            return self.store.update_plan(plan)

    def sweep_overdue(self, now: Optional[datetime] = None) -> int:
        """
        Mark past-due Pending installments of Active plans as Overdue.

        Each plan is re-read under its lock and written once if anything
        changed. A failure on one plan is logged and the sweep moves on.
        Running again with the same `now` changes nothing.

        Returns:
            Number of installments moved to Overdue
        """
        now = now or self.clock.now()
        cutoff = overdue_cutoff(now)
        marked = 0

        for candidate in self.store.get_plans_by_status(PlanStatus.ACTIVE):
            try:
                with self.locks.hold(candidate.id):
                    plan = self.store.get_plan_by_id(candidate.id)
                    if plan is None or plan.status is not PlanStatus.ACTIVE:
                        continue

                    changed = plan.mark_overdue(cutoff, now)
                    if changed:
                        plan.updated_at = now
                        self.store.update_plan(plan)
                        marked += changed
            except Exception:
                logging.error(
                    f"Error marking overdue installments for plan {candidate.id}",
                    exc_info=True,
                    extra={"plan_id": candidate.id},
                )

        logging.info("Overdue status update completed", extra={"installments_marked": marked})
        return marked

    def portfolio_summary(self) -> Dict[str, object]:
        return {
            "total_plans": self.store.count_plans(),
            "active_plans": len(self.store.get_plans_by_status(PlanStatus.ACTIVE)),
            "total_outstanding_amount": self.store.total_outstanding_amount(),
        }

    def _internal_error(self, action: str, exc: Exception, **context) -> Err:
        logging.error(f"Error {action}: {exc}", exc_info=exc, extra=context)
        return Err(InternalError(f"An error occurred while {action}"))
