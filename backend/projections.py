from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = 12

DEFAULT_ANNUAL_RATE = Decimal("0.12")
DEFAULT_YEARS = 10
DEFAULT_CONTRIBUTION_RATIO = Decimal("0.5")

# (threshold, rate) pairs, highest threshold first.
TAX_BRACKETS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("80000"), Decimal("0.30")),
    (Decimal("40000"), Decimal("0.20")),
    (Decimal("10000"), Decimal("0.10")),
)

TAX_ESTIMATE_DISCLAIMER = (
    "Illustrative estimate using simplified progressive brackets. "
    "This is not a jurisdiction-accurate tax calculation."
)


@dataclass(frozen=True)
class SipProjection:
    monthly_contribution: Decimal
    annual_rate: Decimal
    years: int
    months: int
    invested: Decimal
    future_value: Decimal
    wealth_gain: Decimal


@dataclass(frozen=True)
class TaxEstimate:
    annual_income: Decimal
    tax: Decimal
    effective_rate: Decimal
    net_income: Decimal
    disclaimer: str = TAX_ESTIMATE_DISCLAIMER


def suggested_contribution(
    monthly_savings: Decimal,
    ratio: Decimal = DEFAULT_CONTRIBUTION_RATIO,
) -> Decimal:
    if ratio < ZERO:
        raise ValueError("ratio must not be negative.")
    return max(ZERO, _coerce_amount(monthly_savings)) * ratio


def project_sip(
    monthly_contribution: Decimal,
    annual_rate: Decimal = DEFAULT_ANNUAL_RATE,
    years: int = DEFAULT_YEARS,
) -> SipProjection:
    """Future value of a monthly contribution made at the start of each month."""
    if years <= 0:
        raise ValueError("years must be greater than zero.")
    if annual_rate < ZERO:
        raise ValueError("annual_rate must not be negative.")

    contribution = _coerce_amount(monthly_contribution)
    months = years * MONTHS_PER_YEAR
    if contribution <= ZERO:
        return SipProjection(
            monthly_contribution=ZERO,
            annual_rate=annual_rate,
            years=years,
            months=months,
            invested=ZERO,
            future_value=ZERO,
            wealth_gain=ZERO,
        )

    monthly_rate = annual_rate / MONTHS_PER_YEAR
    invested = contribution * months
    if monthly_rate == ZERO:
        future_value = invested
    else:
        growth = (ONE + monthly_rate) ** months
        future_value = contribution * (growth - ONE) / monthly_rate * (ONE + monthly_rate)

    return SipProjection(
        monthly_contribution=contribution,
        annual_rate=annual_rate,
        years=years,
        months=months,
        invested=invested,
        future_value=future_value,
        wealth_gain=future_value - invested,
    )


def estimate_tax(
    annual_income: Decimal,
    brackets: tuple[tuple[Decimal, Decimal], ...] = TAX_BRACKETS,
) -> TaxEstimate:
    income = _coerce_amount(annual_income)
    if income < ZERO:
        raise ValueError("annual_income must not be negative.")

    tax = ZERO
    remaining = income
    for threshold, rate in sorted(brackets, key=lambda bracket: bracket[0], reverse=True):
        if remaining > threshold:
            tax += (remaining - threshold) * rate
            remaining = threshold

    effective_rate = tax / income * HUNDRED if income > ZERO else ZERO
    return TaxEstimate(
        annual_income=income,
        tax=tax,
        effective_rate=effective_rate,
        net_income=income - tax,
    )


def _coerce_amount(amount: Decimal) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))
