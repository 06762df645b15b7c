"""SQLAlchemy ORM models for installment plans and their payment schedules"""

import uuid
from sqlalchemy import Column, Text, Integer, Numeric, Date, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class InstallmentPlanRecord(Base):
    """Financed purchase with flat-interest balance tracking"""

    __tablename__ = "installment_plan"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sale_id = Column(Text, nullable=False, index=True)
    customer_id = Column(Text, nullable=False, index=True)
    product_id = Column(Text, nullable=False)
    total_price = Column(Numeric(14, 2), nullable=False)
    down_payment = Column(Numeric(14, 2), nullable=False)
    number_of_installments = Column(Integer, nullable=False)
    installment_amount = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(7, 4), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="Active", index=True)
    total_paid = Column(Numeric(14, 2), nullable=False)
    # principal (2 places) * rate (4 places) / 100 needs 8 places to stay exact
    remaining_balance = Column(Numeric(20, 8), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    payments = relationship(
        "InstallmentPaymentRecord",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="InstallmentPaymentRecord.position",
    )


class InstallmentPaymentRecord(Base):
    """Scheduled installment; position is its 0-based index within the plan"""

    __tablename__ = "installment_payment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("installment_plan.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_due = Column(Numeric(14, 2), nullable=False)
    amount_paid = Column(Numeric(14, 2), nullable=False, default=0)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(Text, nullable=False, default="Pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    plan = relationship("InstallmentPlanRecord", back_populates="payments")
