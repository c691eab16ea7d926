from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from backend.models import SavingsGoal

ZERO = Decimal("0")
HUNDRED = Decimal("100")
QUICK_ADD_STEPS = (Decimal("100"), Decimal("500"))

GOAL_LABELS: dict[str, str] = {
    "Emergency": "Emergency Fund",
    "Travel": "Travel",
    "Home": "Housing",
    "Vehicle": "Car/Vehicle",
    "Education": "Education",
    "Gadget": "Tech/Gadgets",
    "Investment": "Investment",
    "Other": "Other",
}


@dataclass(frozen=True)
class GoalEvaluation:
    goal_id: str
    progress: Decimal
    remaining: Decimal
    months_remaining: Optional[int]
    monthly_need: Optional[Decimal]
    is_complete: bool


def goal_progress(saved_amount: Decimal, target_amount: Decimal) -> Decimal:
    """Percent complete for display, clamped at 100."""
    if target_amount <= ZERO:
        return ZERO
    return min(saved_amount / target_amount * HUNDRED, HUNDRED)


def months_until(deadline: date, today: date) -> int:
    """Whole calendar months between two dates, ignoring the day of month."""
    return (deadline.year - today.year) * 12 + (deadline.month - today.month)


def monthly_need(
    target_amount: Decimal,
    saved_amount: Decimal,
    deadline: Optional[date],
    today: date,
) -> Optional[Decimal]:
    if deadline is None:
        return None
    months = months_until(deadline, today)
    if months <= 0:
        return ZERO
    return max(ZERO, target_amount - saved_amount) / Decimal(months)


def evaluate_goal(goal: SavingsGoal, today: date) -> GoalEvaluation:
    return GoalEvaluation(
        goal_id=goal.id,
        progress=goal_progress(goal.saved_amount, goal.target_amount),
        remaining=max(ZERO, goal.target_amount - goal.saved_amount),
        months_remaining=months_until(goal.deadline, today) if goal.deadline else None,
        monthly_need=monthly_need(goal.target_amount, goal.saved_amount, goal.deadline, today),
        is_complete=goal.saved_amount >= goal.target_amount,
    )


def quick_add(goal: SavingsGoal, step: Decimal) -> SavingsGoal:
    """Return a copy of the goal with ``step`` added; saved amounts may pass the target."""
    if step <= ZERO:
        raise ValueError("Contribution must be greater than zero.")
    return goal.model_copy(update={"saved_amount": goal.saved_amount + step})
