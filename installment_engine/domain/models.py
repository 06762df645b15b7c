"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

ZERO = Decimal("0")


class PlanStatus(str, Enum):
    """Lifecycle of an installment plan"""

    ACTIVE = "Active"
    COMPLETED = "Completed"
    DEFAULTED = "Defaulted"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    """Lifecycle of a single scheduled installment"""

    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"


@dataclass
class InstallmentPayment:
    """One scheduled obligation within a plan; its index in plan.payments is its identity"""

    due_date: date
    amount_due: Decimal
    amount_paid: Decimal = ZERO
    payment_date: Optional[datetime] = None
    status: PaymentStatus = PaymentStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.status is PaymentStatus.PAID

    @property
    def outstanding(self) -> Decimal:
        return self.amount_due - self.amount_paid

    def apply(self, amount: Decimal, paid_at: datetime, now: datetime) -> Decimal:
        """
        Add a contribution to this installment.

        Settles the installment once amount_paid reaches amount_due and caps
        amount_paid at amount_due; any excess is dropped. Works on Pending and
        Overdue installments alike.

        Returns:
            The part of `amount` that actually counted towards this installment
        """
        before = self.amount_paid
        self.amount_paid += amount
        self.payment_date = paid_at
        self.updated_at = now

        if self.amount_paid >= self.amount_due:
            self.status = PaymentStatus.PAID
            self.amount_paid = self.amount_due

        return self.amount_paid - before

    def settle(self, now: datetime) -> None:
        """Force full settlement regardless of what was collected"""
        self.status = PaymentStatus.PAID
        self.amount_paid = self.amount_due
        self.payment_date = now
        self.updated_at = now

    def is_past_due(self, cutoff: date) -> bool:
        """Pending and due before `cutoff` (see utils.date_utils.overdue_cutoff)"""
        return self.status is PaymentStatus.PENDING and self.due_date < cutoff


@dataclass
class InstallmentPlan:
    """A financed purchase paid off through a fixed monthly schedule"""

    sale_id: str
    customer_id: str
    product_id: str
    total_price: Decimal
    down_payment: Decimal
    number_of_installments: int
    installment_amount: Decimal
    interest_rate: Decimal  # annual percent, 5 means 5%
    start_date: date
    end_date: date
    status: PlanStatus = PlanStatus.ACTIVE
    payments: List[InstallmentPayment] = field(default_factory=list)
    total_paid: Decimal = ZERO
    remaining_balance: Decimal = ZERO
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def principal(self) -> Decimal:
        return self.total_price - self.down_payment

    @property
    def total_amount_with_interest(self) -> Decimal:
        # Flat interest on the financed amount; the installment amount itself is amortized
        return self.principal + self.principal * self.interest_rate / 100

    @property
    def paid_installments(self) -> int:
        return sum(1 for p in self.payments if p.status is PaymentStatus.PAID)

    @property
    def pending_installments(self) -> int:
        return sum(1 for p in self.payments if p.status is PaymentStatus.PENDING)

    @property
    def overdue_installments(self) -> int:
        return sum(1 for p in self.payments if p.status is PaymentStatus.OVERDUE)

    @property
    def is_completed(self) -> bool:
        return self.paid_installments == self.number_of_installments

    @property
    def next_due_date(self) -> Optional[date]:
        pending = [p.due_date for p in self.payments if p.status is PaymentStatus.PENDING]
        return min(pending) if pending else None

    def mark_overdue(self, cutoff: date, now: datetime) -> int:
        """Flip every Pending installment due before `cutoff` to Overdue; returns how many changed"""
        changed = 0
        for payment in self.payments:
            if payment.is_past_due(cutoff):
                payment.status = PaymentStatus.OVERDUE
                payment.updated_at = now
                changed += 1
        return changed


def change_plan_status(plan: InstallmentPlan, new_status: PlanStatus, now: datetime) -> None:
    """
    Administrative status change.

    Any status may follow any other (Completed -> Active included). Every
    administrative status write goes through here so a transition table can
    be enforced in one place.
    """
    plan.status = new_status
    plan.updated_at = now
