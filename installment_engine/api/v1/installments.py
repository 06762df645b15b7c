"""/installments - installment plan lifecycle endpoints"""

import time
import logging
from decimal import Decimal
from typing import List, NoReturn
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response

from installment_engine.api.v1.schemas import (
    CalculateInstallmentResponse,
    CreatePlanRequest,
    MessageResponse,
    PaymentSchema,
    PlanResponse,
    RecordPaymentRequest,
    SummaryResponse,
    SweepResponse,
)
from installment_engine.api.dependencies import get_clock, get_ledger, get_request_id
from installment_engine.domain.amortization import compute_installment_amount
from installment_engine.domain.exceptions import (
    DomainException,
    InternalError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from installment_engine.domain.ledger import PlanLedger
from installment_engine.domain.models import InstallmentPlan, PlanStatus
from installment_engine.domain.results import Ok, Result
from installment_engine.infrastructure.observability.logging import (
    log_payment_recorded,
    log_plan_created,
    log_sweep_completed,
)
from installment_engine.infrastructure.observability.metrics import (
    plans_completed_counter,
    plans_created_counter,
    record_payment,
    record_sweep,
    sweep_runs_counter,
)
from installment_engine.utils.clock import Clock

router = APIRouter()

VALID_STATUSES = [s.value for s in PlanStatus]


def _raise_for_error(error: DomainException, request_id: str) -> NoReturn:
    """Translate a ledger error into an HTTP error response"""
    if isinstance(error, NotFoundError):
        logging.warning(f"Not found: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(error))
    elif isinstance(error, (ValidationError, InvalidStateError)):
        logging.warning(f"Rejected: {error}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(error))
    elif isinstance(error, InternalError):
        raise HTTPException(status_code=500, detail=str(error))
    else:
        logging.error(f"Unmapped ledger error: {error!r}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


def _unwrap(result: Result[InstallmentPlan], request_id: str) -> InstallmentPlan:
    if isinstance(result, Ok):
        return result.value
    _raise_for_error(result.error, request_id)


def _to_response(plan: InstallmentPlan) -> PlanResponse:
    return PlanResponse(
        id=plan.id,
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
        status=plan.status,
        payments=[
            PaymentSchema(
                index=i,
                due_date=p.due_date,
                amount_due=p.amount_due,
                amount_paid=p.amount_paid,
                payment_date=p.payment_date,
                status=p.status,
            )
            for i, p in enumerate(plan.payments)
        ],
        total_paid=plan.total_paid,
        remaining_balance=plan.remaining_balance,
        total_amount_with_interest=plan.total_amount_with_interest,
        paid_installments=plan.paid_installments,
        pending_installments=plan.pending_installments,
        overdue_installments=plan.overdue_installments,
        next_due_date=plan.next_due_date,
        is_completed=plan.is_completed,
        created_at=plan.created_at,
        updated_at=plan.updated_at,
    )


@router.post("/create", response_model=PlanResponse, status_code=201)
def create_installment_plan(
    request_body: CreatePlanRequest,
    request: Request,
    response: Response,
    ledger: PlanLedger = Depends(get_ledger),
):
    """
    Create an installment plan and its monthly payment schedule.

    Flow:
    1. Reject plans with nothing to finance
    2. Compute the amortized installment amount and schedule
    3. Persist plan; down payment counts as already paid
    """
    request_id = get_request_id(request)

    if request_body.down_payment > request_body.total_price:
        raise HTTPException(status_code=400, detail="Down payment cannot be greater than total price")

    if request_body.total_price - request_body.down_payment <= 0:
        raise HTTPException(
            status_code=400,
            detail="Principal amount (Total Price - Down Payment) must be greater than 0",
        )

    result = ledger.create_plan(
        sale_id=request_body.sale_id,
        customer_id=request_body.customer_id,
        product_id=request_body.product_id,
        total_price=request_body.total_price,
        down_payment=request_body.down_payment,
        term_months=request_body.number_of_months,
        annual_rate_percent=request_body.interest_rate,
        start_date=request_body.start_date,
    )
    plan = _unwrap(result, request_id)

    plans_created_counter.inc()
    log_plan_created(request_id, plan.id, plan.customer_id, plan.number_of_installments)

    response.headers["Location"] = f"/installments/{plan.id}"
    return _to_response(plan)


@router.get("/calculate-installment", response_model=CalculateInstallmentResponse)
def calculate_installment_amount(
    principal_amount: Decimal = Query(..., alias="principalAmount"),
    interest_rate: Decimal = Query(..., alias="interestRate"),
    number_of_months: int = Query(..., alias="numberOfMonths"),
):
    """Preview the monthly installment for a principal, annual rate and term"""
    if principal_amount <= 0:
        raise HTTPException(status_code=400, detail="Principal amount must be greater than 0")

    if interest_rate < 0:
        raise HTTPException(status_code=400, detail="Interest rate cannot be negative")

    if number_of_months <= 0:
        raise HTTPException(status_code=400, detail="Number of months must be greater than 0")

    amount = compute_installment_amount(principal_amount, interest_rate, number_of_months)
    return CalculateInstallmentResponse(installment_amount=amount)


@router.get("", response_model=List[PlanResponse])
def get_all_installment_plans(ledger: PlanLedger = Depends(get_ledger)):
    """All plans, newest first"""
    return [_to_response(p) for p in ledger.list_plans()]


@router.get("/overdue", response_model=List[PlanResponse])
def get_overdue_installment_plans(ledger: PlanLedger = Depends(get_ledger)):
    """Active plans with an Overdue or past-due Pending installment"""
    return [_to_response(p) for p in ledger.overdue_plans()]


@router.get("/summary", response_model=SummaryResponse)
def get_portfolio_summary(ledger: PlanLedger = Depends(get_ledger)):
    summary = ledger.portfolio_summary()
    return SummaryResponse(**summary)


@router.get("/customer/{customer_id}", response_model=List[PlanResponse])
def get_installment_plans_by_customer(customer_id: str, ledger: PlanLedger = Depends(get_ledger)):
    return [_to_response(p) for p in ledger.plans_for_customer(customer_id)]


@router.get("/sale/{sale_id}", response_model=List[PlanResponse])
def get_installment_plans_by_sale(sale_id: str, ledger: PlanLedger = Depends(get_ledger)):
    return [_to_response(p) for p in ledger.plans_for_sale(sale_id)]


@router.post("/update-overdue-status", response_model=SweepResponse)
def update_overdue_status(
    request: Request,
    ledger: PlanLedger = Depends(get_ledger),
    clock: Clock = Depends(get_clock),
):
    """Run the overdue sweep now instead of waiting for the daily schedule"""
    request_id = get_request_id(request)
    start_time = time.time()

    try:
        marked = ledger.sweep_overdue(clock.now())
    except Exception as e:
        sweep_runs_counter.labels(outcome="failure").inc()
        logging.error(f"Error updating overdue status: {e}", exc_info=True, extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="An error occurred while updating overdue status")

    duration = time.time() - start_time
    record_sweep(marked, duration)
    log_sweep_completed(marked, duration * 1000, trigger="manual")

    return SweepResponse(message="Overdue status updated successfully", installments_marked=marked)


@router.get("/{plan_id}", response_model=PlanResponse)
def get_installment_plan(plan_id: str, request: Request, ledger: PlanLedger = Depends(get_ledger)):
    plan = _unwrap(ledger.get_plan(plan_id), get_request_id(request))
    return _to_response(plan)


@router.post("/{plan_id}/payment/{installment_index}", response_model=PlanResponse)
def record_installment_payment(
    plan_id: str,
    installment_index: int,
    request_body: RecordPaymentRequest,
    request: Request,
    ledger: PlanLedger = Depends(get_ledger),
):
    """
    Record a payment against one installment (0-based index).

    Payments larger than what is still owed on the installment are rejected
    here, before reaching the ledger.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    _unwrap(ledger.get_plan(plan_id), request_id)

    if not ledger.validate_payment(plan_id, installment_index, request_body.amount):
        logging.warning(
            "Payment rejected by pre-flight validation",
            extra={"request_id": request_id, "plan_id": plan_id, "installment_index": installment_index},
        )
        raise HTTPException(status_code=400, detail="Invalid payment details or installment already paid")

    result = ledger.record_payment(
        plan_id,
        installment_index,
        request_body.amount,
        request_body.payment_date,
    )
    plan = _unwrap(result, request_id)

    settled = plan.payments[installment_index].is_paid
    duration_ms = (time.time() - start_time) * 1000
    record_payment(settled, plan.status is PlanStatus.COMPLETED)
    log_payment_recorded(request_id, plan_id, installment_index, str(request_body.amount), settled, duration_ms)

    return _to_response(plan)


@router.put("/{plan_id}/status", response_model=MessageResponse)
def update_installment_plan_status(
    plan_id: str,
    request: Request,
    status: str = Body(..., description="One of Active, Completed, Defaulted, Cancelled"),
    ledger: PlanLedger = Depends(get_ledger),
):
    """Administrative status override; any status may follow any other"""
    request_id = get_request_id(request)

    if not status or not status.strip():
        raise HTTPException(status_code=400, detail="Status cannot be empty")

    if status not in VALID_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Valid statuses are: {', '.join(VALID_STATUSES)}",
        )

    try:
        updated = ledger.update_status(plan_id, PlanStatus(status))
    except Exception as e:
        logging.error(
            f"Error updating status for installment plan {plan_id}: {e}",
            exc_info=True,
            extra={"request_id": request_id, "plan_id": plan_id},
        )
        raise HTTPException(status_code=500, detail="An error occurred while updating the plan status")

    if not updated:
        raise HTTPException(status_code=404, detail=f"Installment plan with ID {plan_id} not found")

    logging.info(
        f"Installment plan {plan_id} status updated to {status}",
        extra={"request_id": request_id, "plan_id": plan_id},
    )
    return MessageResponse(message="Status updated successfully")


@router.post("/{plan_id}/complete", response_model=PlanResponse)
def complete_installment_plan(plan_id: str, request: Request, ledger: PlanLedger = Depends(get_ledger)):
    """Mark every remaining installment as paid and close the plan"""
    plan = _unwrap(ledger.complete_plan(plan_id), get_request_id(request))
    plans_completed_counter.labels(trigger="manual").inc()
    return _to_response(plan)
