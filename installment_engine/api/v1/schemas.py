"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from installment_engine.config import settings
from installment_engine.domain.models import PaymentStatus, PlanStatus

# Money travels as a JSON number, not a string
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreatePlanRequest(CamelModel):
    """Request body for POST /installments/create"""

    sale_id: str = Field(..., min_length=1, description="Sale the plan finances")
    customer_id: str = Field(..., min_length=1, description="Customer identifier")
    product_id: str = Field(..., min_length=1, description="Product identifier")
    total_price: Decimal = Field(..., gt=0, decimal_places=2, description="Total price including the down payment")
    down_payment: Decimal = Field(..., ge=0, decimal_places=2, description="Amount paid up front")
    number_of_months: int = Field(..., ge=1, le=settings.max_installment_months)
    interest_rate: Decimal = Field(
        ..., ge=0, le=settings.max_interest_rate, decimal_places=4, description="Annual rate in percent"
    )
    start_date: date


class RecordPaymentRequest(CamelModel):
    """Request body for POST /installments/{planId}/payment/{installmentIndex}"""

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_date: Optional[datetime] = None


class PaymentSchema(CamelModel):
    """Single installment in a plan's schedule"""

    index: int
    due_date: date
    amount_due: Money
    amount_paid: Money
    payment_date: Optional[datetime] = None
    status: PaymentStatus


class PlanResponse(CamelModel):
    """Installment plan with schedule and derived progress figures"""

    id: str
    sale_id: str
    customer_id: str
    product_id: str
    total_price: Money
    down_payment: Money
    number_of_installments: int
    installment_amount: Money
    interest_rate: Money
    start_date: date
    end_date: date
    status: PlanStatus
    payments: List[PaymentSchema]
    total_paid: Money
    remaining_balance: Money
    total_amount_with_interest: Money
    paid_installments: int
    pending_installments: int
    overdue_installments: int
    next_due_date: Optional[date] = None
    is_completed: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CalculateInstallmentResponse(CamelModel):
    """Response for GET /installments/calculate-installment"""

    installment_amount: Money


class MessageResponse(CamelModel):
    message: str


class SweepResponse(CamelModel):
    """Response for POST /installments/update-overdue-status"""

    message: str
    installments_marked: int


class SummaryResponse(CamelModel):
    """Response for GET /installments/summary"""

    total_plans: int
    active_plans: int
    total_outstanding_amount: Money
