from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from backend.currency_conversion import StaticRateProvider, convert_amount
from backend.models import Expense, Income

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")
TREND_MONTHS = 6
RECENT_DAYS = 7


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: Decimal


@dataclass(frozen=True)
class MonthlyCurrencyTotals:
    month: str
    totals: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class CategoryTrend:
    category: str
    points: list[tuple[str, Decimal]]
    total: Decimal
    average: Decimal
    direction: str


@dataclass(frozen=True)
class HealthStatus:
    label: str
    message: str


@dataclass(frozen=True)
class CashFlowSummary:
    annual_income: Decimal
    monthly_gross: Decimal
    monthly_expenses: Decimal
    monthly_savings: Decimal
    savings_rate: Decimal
    expense_ratio: Decimal
    health: HealthStatus


def category_universe(declared: Sequence[str], expenses: Iterable[Expense]) -> list[str]:
    """Declared categories in order, followed by any category only used by a transaction."""
    seen: dict[str, None] = dict.fromkeys(declared)
    for expense in expenses:
        seen.setdefault(expense.category, None)
    return list(seen)


def normalized_amount(
    expense: Expense,
    display_currency: str,
    default_currency: Optional[str] = None,
    rate_provider: StaticRateProvider | None = None,
) -> Decimal:
    source = expense.currency_or(default_currency or display_currency)
    return convert_amount(expense.amount, source, display_currency, rate_provider=rate_provider)


def totals_by_category(
    expenses: Iterable[Expense],
    categories: Sequence[str],
    display_currency: str,
    default_currency: Optional[str] = None,
    rate_provider: StaticRateProvider | None = None,
) -> dict[str, Decimal]:
    expense_list = list(expenses)
    totals = {name: ZERO for name in category_universe(categories, expense_list)}
    for expense in expense_list:
        totals[expense.category] += normalized_amount(
            expense, display_currency, default_currency, rate_provider
        )
    return totals


def totals_in_window(
    expenses: Iterable[Expense],
    categories: Sequence[str],
    display_currency: str,
    start_date: date,
    end_date: date,
    default_currency: Optional[str] = None,
    rate_provider: StaticRateProvider | None = None,
) -> dict[str, Decimal]:
    if start_date > end_date:
        raise ValueError("start_date must be on or before end_date.")
    expense_list = list(expenses)
    totals = {name: ZERO for name in category_universe(categories, expense_list)}
    for expense in expense_list:
        if not _within(parse_expense_date(expense.date), start_date, end_date):
            continue
        totals[expense.category] += normalized_amount(
            expense, display_currency, default_currency, rate_provider
        )
    return totals


def total_spend(
    expenses: Iterable[Expense],
    display_currency: str,
    default_currency: Optional[str] = None,
    rate_provider: StaticRateProvider | None = None,
) -> Decimal:
    return sum(
        (
            normalized_amount(expense, display_currency, default_currency, rate_provider)
            for expense in expenses
        ),
        ZERO,
    )


def chart_data(totals: Mapping[str, Decimal]) -> list[CategoryTotal]:
    entries = [
        CategoryTotal(category=name, amount=amount)
        for name, amount in totals.items()
        if amount > ZERO
    ]
    return sorted(entries, key=lambda entry: entry.amount, reverse=True)


def top_categories(totals: Mapping[str, Decimal], limit: int) -> list[str]:
    return [entry.category for entry in chart_data(totals)[:limit]]


def last_days_window(today: date, days: int = RECENT_DAYS) -> tuple[date, date]:
    return today - timedelta(days=days), today


def month_window(month: str) -> tuple[date, date]:
    try:
        start = datetime.strptime(month.strip(), "%Y-%m").date()
    except ValueError as exc:
        raise ValueError("Invalid month format. Use YYYY-MM.") from exc
    return start, start.replace(day=monthrange(start.year, start.month)[1])


def recent_month_keys(today: date, count: int = TREND_MONTHS) -> list[str]:
    month_index = today.year * 12 + today.month - 1
    keys = []
    for offset in range(count - 1, -1, -1):
        year, month = divmod(month_index - offset, 12)
        keys.append(f"{year:04d}-{month + 1:02d}")
    return keys


def currency_trend(
    expenses: Iterable[Expense],
    default_currency: str,
    today: date,
    months: int = TREND_MONTHS,
) -> list[MonthlyCurrencyTotals]:
    """Raw, unconverted spend per currency for each of the trailing months."""
    expense_list = list(expenses)
    currencies = list(
        dict.fromkeys(expense.currency_or(default_currency) for expense in expense_list)
    )
    trend = []
    for key in recent_month_keys(today, months):
        totals = {code: ZERO for code in currencies}
        for expense in expense_list:
            if expense.date.startswith(key):
                totals[expense.currency_or(default_currency)] += expense.amount
        trend.append(MonthlyCurrencyTotals(month=key, totals=totals))
    return trend


def category_trend(
    expenses: Iterable[Expense],
    category: str,
    display_currency: str,
    today: date,
    default_currency: Optional[str] = None,
    rate_provider: StaticRateProvider | None = None,
    months: int = TREND_MONTHS,
) -> CategoryTrend:
    matching = [expense for expense in expenses if expense.category == category]
    points = []
    for key in recent_month_keys(today, months):
        month_total = total_spend(
            (expense for expense in matching if expense.date.startswith(key)),
            display_currency,
            default_currency,
            rate_provider,
        )
        points.append((key, month_total))

    total = sum((value for _, value in points), ZERO)
    average = total / Decimal(months) if months else ZERO
    if total == ZERO:
        direction = "flat"
    elif points[-1][1] > average:
        direction = "up"
    else:
        direction = "down"
    return CategoryTrend(
        category=category,
        points=points,
        total=total,
        average=average,
        direction=direction,
    )


def summarize_cash_flow(
    income: Income,
    expenses: Iterable[Expense],
    display_currency: str,
    default_currency: Optional[str] = None,
    rate_provider: StaticRateProvider | None = None,
) -> CashFlowSummary:
    monthly_gross = income.annual_total / MONTHS_PER_YEAR
    monthly_expenses = total_spend(expenses, display_currency, default_currency, rate_provider)
    monthly_savings = monthly_gross - monthly_expenses
    if monthly_gross > ZERO:
        savings_rate = monthly_savings / monthly_gross * HUNDRED
        expense_ratio = monthly_expenses / monthly_gross * HUNDRED
    else:
        savings_rate = ZERO
        expense_ratio = ZERO
    return CashFlowSummary(
        annual_income=income.annual_total,
        monthly_gross=monthly_gross,
        monthly_expenses=monthly_expenses,
        monthly_savings=monthly_savings,
        savings_rate=savings_rate,
        expense_ratio=expense_ratio,
        health=classify_health(expense_ratio),
    )


def classify_health(expense_ratio: Decimal) -> HealthStatus:
    if expense_ratio > 100:
        return HealthStatus(
            label="Critical",
            message="Your expenses exceed your income. Immediate action required to cut costs.",
        )
    if expense_ratio > 85:
        return HealthStatus(
            label="Vulnerable",
            message="You are living paycheck to paycheck. Try to increase your savings buffer.",
        )
    if expense_ratio > 60:
        return HealthStatus(
            label="Healthy",
            message="Your finances are balanced. Consider optimizing for investments.",
        )
    return HealthStatus(
        label="Excellent",
        message="You are a high saver! Excellent potential for wealth building.",
    )


def parse_expense_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None


def _within(value: date | None, start_date: date, end_date: date) -> bool:
    return value is not None and start_date <= value <= end_date
