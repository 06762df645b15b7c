"""Data access layer for installment plans"""

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from installment_engine.infrastructure.database.models import InstallmentPlanRecord, InstallmentPaymentRecord
from installment_engine.domain.amortization import to_decimal
from installment_engine.domain.models import InstallmentPlan, InstallmentPayment, PaymentStatus, PlanStatus
from installment_engine.utils.date_utils import as_utc


def _parse_id(plan_id: str) -> Optional[uuid.UUID]:
    """Malformed ids are treated as absent rather than as errors"""
    try:
        return uuid.UUID(str(plan_id))
    except ValueError:
        return None


class PlanRepository:
    """Repository for installment plans; each write commits on its own"""

    def __init__(self, db: Session):
        self.db = db

    def create_plan(self, plan: InstallmentPlan) -> InstallmentPlan:
        """Persist plan with its full payment schedule"""
        db_plan = InstallmentPlanRecord(
            sale_id=plan.sale_id,
            customer_id=plan.customer_id,
            product_id=plan.product_id,
            total_price=plan.total_price,
            down_payment=plan.down_payment,
            number_of_installments=plan.number_of_installments,
            installment_amount=plan.installment_amount,
            interest_rate=plan.interest_rate,
            start_date=plan.start_date,
            end_date=plan.end_date,
            status=plan.status.value,
            total_paid=plan.total_paid,
            remaining_balance=plan.remaining_balance,
            created_at=plan.created_at,
            updated_at=plan.updated_at,
        )

        for position, payment in enumerate(plan.payments):
            db_plan.payments.append(
                InstallmentPaymentRecord(
                    position=position,
                    due_date=payment.due_date,
                    amount_due=payment.amount_due,
                    amount_paid=payment.amount_paid,
                    payment_date=payment.payment_date,
                    status=payment.status.value,
                    created_at=payment.created_at,
                    updated_at=payment.updated_at,
                )
            )

        self.db.add(db_plan)
        self._commit()
        return self._to_domain(db_plan)

    def get_plan_by_id(self, plan_id: str) -> Optional[InstallmentPlan]:
        """Fetch plan with installments, bypassing any stale copy held by the session"""
        db_plan = self._load(plan_id)
        return self._to_domain(db_plan) if db_plan else None

    def get_plans_by_customer_id(self, customer_id: str) -> List[InstallmentPlan]:
        return self._list(InstallmentPlanRecord.customer_id == customer_id)

    def get_plans_by_sale_id(self, sale_id: str) -> List[InstallmentPlan]:
        return self._list(InstallmentPlanRecord.sale_id == sale_id)

    def get_all_plans(self) -> List[InstallmentPlan]:
        return self._list()

    def get_plans_by_status(self, status: PlanStatus) -> List[InstallmentPlan]:
        return self._list(InstallmentPlanRecord.status == status.value)

    def get_overdue_plans(self, cutoff: date) -> List[InstallmentPlan]:
        """Active plans with an Overdue installment, or a Pending one already past due"""
        return self._list(
            InstallmentPlanRecord.status == PlanStatus.ACTIVE.value,
            InstallmentPlanRecord.payments.any(
                or_(
                    InstallmentPaymentRecord.status == PaymentStatus.OVERDUE.value,
                    (InstallmentPaymentRecord.status == PaymentStatus.PENDING.value)
                    & (InstallmentPaymentRecord.due_date < cutoff),
                )
            ),
        )

    def update_plan(self, plan: InstallmentPlan) -> bool:
        """Write back the mutable plan state; False when the plan does not exist"""
        db_plan = self._load(plan.id)
        if db_plan is None:
            return False

        db_plan.status = plan.status.value
        db_plan.installment_amount = plan.installment_amount
        db_plan.end_date = plan.end_date
        db_plan.total_paid = plan.total_paid
        db_plan.remaining_balance = plan.remaining_balance
        db_plan.updated_at = plan.updated_at

        for db_payment, payment in zip(db_plan.payments, plan.payments):
            db_payment.amount_paid = payment.amount_paid
            db_payment.payment_date = payment.payment_date
            db_payment.status = payment.status.value
            db_payment.updated_at = payment.updated_at

        self._commit()
        return True

    def count_plans(self) -> int:
        return self.db.query(func.count(InstallmentPlanRecord.id)).scalar() or 0

    def total_outstanding_amount(self) -> Decimal:
        """Sum of remaining balances across Active plans"""
        total = (
            self.db.query(func.sum(InstallmentPlanRecord.remaining_balance))
            .filter(InstallmentPlanRecord.status == PlanStatus.ACTIVE.value)
            .scalar()
        )
        return to_decimal(total) if total is not None else Decimal("0")

    def _load(self, plan_id: str) -> Optional[InstallmentPlanRecord]:
        plan_uuid = _parse_id(plan_id)
        if plan_uuid is None:
            return None

        return (
            self.db.query(InstallmentPlanRecord)
            .populate_existing()
            .options(selectinload(InstallmentPlanRecord.payments))
            .filter(InstallmentPlanRecord.id == plan_uuid)
            .first()
        )

    def _list(self, *criteria) -> List[InstallmentPlan]:
        """Newest plans first"""
        db_plans = (
            self.db.query(InstallmentPlanRecord)
            .populate_existing()
            .options(selectinload(InstallmentPlanRecord.payments))
            .filter(*criteria)
            .order_by(InstallmentPlanRecord.created_at.desc())
            .all()
        )
        return [self._to_domain(p) for p in db_plans]

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    @staticmethod
    def _to_domain(db_plan: InstallmentPlanRecord) -> InstallmentPlan:
        return InstallmentPlan(
            id=str(db_plan.id),
            sale_id=db_plan.sale_id,
            customer_id=db_plan.customer_id,
            product_id=db_plan.product_id,
            total_price=to_decimal(db_plan.total_price),
            down_payment=to_decimal(db_plan.down_payment),
            number_of_installments=db_plan.number_of_installments,
            installment_amount=to_decimal(db_plan.installment_amount),
            interest_rate=to_decimal(db_plan.interest_rate),
            start_date=db_plan.start_date,
            end_date=db_plan.end_date,
            status=PlanStatus(db_plan.status),
            payments=[
                InstallmentPayment(
                    due_date=p.due_date,
                    amount_due=to_decimal(p.amount_due),
                    amount_paid=to_decimal(p.amount_paid),
                    payment_date=as_utc(p.payment_date),
                    status=PaymentStatus(p.status),
                    created_at=as_utc(p.created_at),
                    updated_at=as_utc(p.updated_at),
                )
                for p in db_plan.payments
            ],
            total_paid=to_decimal(db_plan.total_paid),
            remaining_balance=to_decimal(db_plan.remaining_balance),
            created_at=as_utc(db_plan.created_at),
            updated_at=as_utc(db_plan.updated_at),
        )
