"""Payment schedule generation for installment plans"""

from datetime import date
from decimal import Decimal
from typing import List

from installment_engine.domain.amortization import compute_installment_amount
from installment_engine.domain.models import InstallmentPayment, PaymentStatus, ZERO
from installment_engine.utils.date_utils import add_months


def generate_payment_schedule(
    principal: Decimal,
    annual_rate_percent: Decimal,
    term_months: int,
    start_date: date,
) -> List[InstallmentPayment]:
    """
    Generate the monthly payment schedule for a financed amount.

    Requirements:
    - One installment per month, `term_months` in total
    - First installment due one month after `start_date`, not on it
    - Every installment carries the same amortized amount; no final-period
      correction for rounding drift

    Args:
        principal: Amount financed (total price minus down payment)
        annual_rate_percent: Annual interest rate, 5 means 5%
        term_months: Number of monthly installments
        start_date: Plan start date

    Returns:
        List of Pending InstallmentPayment objects in due-date order

    Example:
        1000 at 0% over 5 months from 2025-01-15 ->
        5 x 200.00 due 2025-02-15, 2025-03-15, ..., 2025-06-15
    """
    amount = compute_installment_amount(principal, annual_rate_percent, term_months)

    schedule = []
    for i in range(term_months):
        schedule.append(
            InstallmentPayment(
                due_date=add_months(start_date, i + 1),
                amount_due=amount,
                amount_paid=ZERO,
                payment_date=None,
                status=PaymentStatus.PENDING,
            )
        )

    return schedule
