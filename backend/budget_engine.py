from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional, Sequence

ZERO = Decimal("0")
HUNDRED = Decimal("100")
WARNING_THRESHOLD = Decimal("80")

STATUS_UNSET = "unset"
STATUS_OK = "ok"
STATUS_WARNING = "warning"
STATUS_OVER = "over"


@dataclass(frozen=True)
class BudgetEvaluation:
    spent: Decimal
    limit: Decimal
    percentage: Decimal
    remaining: Decimal
    overage: Decimal
    status: str
    category: Optional[str] = None


def evaluate_budget(
    spent: Decimal,
    limit: Decimal,
    category: Optional[str] = None,
) -> BudgetEvaluation:
    """Compare a category's spend against its monthly limit (0 means no limit)."""
    spent = _coerce_amount(spent)
    limit = _coerce_amount(limit)
    if limit < ZERO:
        raise ValueError("limit must not be negative.")

    percentage = spent / limit * HUNDRED if limit > ZERO else ZERO
    if limit == ZERO:
        status = STATUS_UNSET
    elif percentage > HUNDRED:
        status = STATUS_OVER
    elif percentage > WARNING_THRESHOLD:
        status = STATUS_WARNING
    else:
        status = STATUS_OK

    return BudgetEvaluation(
        spent=spent,
        limit=limit,
        percentage=percentage,
        remaining=max(ZERO, limit - spent),
        overage=spent - limit if status == STATUS_OVER else ZERO,
        status=status,
        category=category,
    )


def evaluate_budgets(
    totals: Mapping[str, Decimal],
    budgets: Mapping[str, Decimal],
    categories: Sequence[str],
) -> list[BudgetEvaluation]:
    """Evaluate every listed category, including those with no spend yet."""
    return [
        evaluate_budget(
            totals.get(category, ZERO),
            budgets.get(category, ZERO),
            category=category,
        )
        for category in categories
    ]


def _coerce_amount(amount: Decimal) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))
