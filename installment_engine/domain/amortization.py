"""Fixed monthly installment calculation for amortized plans"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Coerce int, float, str or Decimal to Decimal without binary float noise"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(amount: Decimal) -> Decimal:
    """Round to cents, half away from zero (ROUND_HALF_UP)"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_installment_amount(principal, annual_rate_percent, term_months: int) -> Decimal:
    """
    Calculate the fixed periodic payment that retires `principal` over `term_months`.

    - 0% interest: equal split, principal / term
    - Otherwise the standard annuity formula with monthly rate r = annual / 100 / 12:
      payment = P * r * (1 + r)^n / ((1 + r)^n - 1)

    Inputs are assumed validated by the caller (principal >= 0, rate >= 0,
    term >= 1). The result is rounded to cents with ROUND_HALF_UP.

    Example:
        compute_installment_amount(1000, 12, 12) -> Decimal("88.85")
    """
    if term_months < 1:
        raise ValueError(f"term_months must be at least 1, got {term_months}")

    principal = to_decimal(principal)
    rate = to_decimal(annual_rate_percent)

    if rate == 0:
        return round_currency(principal / term_months)

    monthly_rate = rate / 100 / 12
    growth = (1 + monthly_rate) ** term_months
    denominator = growth - 1

    # Only reachable if the rate underflows the decimal context
    if denominator == 0:
        return round_currency(principal / term_months)

    return round_currency(principal * monthly_rate * growth / denominator)
