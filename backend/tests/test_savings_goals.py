import unittest
from datetime import date
from decimal import Decimal

from backend.models import SavingsGoal
from backend.savings_goals import evaluate_goal, goal_progress, monthly_need, months_until, quick_add


class SavingsGoalTests(unittest.TestCase):
    def setUp(self) -> None:
        self.goal = SavingsGoal(
            id="goal-1",
            name="Emergency Fund",
            target_amount=Decimal("5000"),
            saved_amount=Decimal("1000"),
            deadline=date(2024, 9, 1),
            category="Emergency",
        )

    def test_monthly_need_spreads_remaining_over_months(self) -> None:
        evaluation = evaluate_goal(self.goal, date(2024, 1, 15))

        self.assertEqual(evaluation.months_remaining, 8)
        self.assertEqual(evaluation.monthly_need, Decimal("500"))
        self.assertEqual(evaluation.progress, Decimal("20"))
        self.assertEqual(evaluation.remaining, Decimal("4000"))
        self.assertFalse(evaluation.is_complete)

    def test_past_deadline_needs_nothing_monthly(self) -> None:
        self.assertEqual(
            monthly_need(Decimal("5000"), Decimal("0"), date(2024, 1, 1), date(2024, 3, 1)),
            Decimal("0"),
        )

    def test_goal_without_deadline_has_no_monthly_need(self) -> None:
        goal = self.goal.model_copy(update={"deadline": None})

        evaluation = evaluate_goal(goal, date(2024, 1, 15))

        self.assertIsNone(evaluation.monthly_need)
        self.assertIsNone(evaluation.months_remaining)

    def test_months_until_ignores_day_of_month(self) -> None:
        self.assertEqual(months_until(date(2025, 2, 1), date(2024, 11, 30)), 3)

    def test_progress_is_clamped(self) -> None:
        self.assertEqual(goal_progress(Decimal("7000"), Decimal("5000")), Decimal("100"))

    def test_quick_add_can_pass_target(self) -> None:
        updated = quick_add(self.goal, Decimal("4500"))

        self.assertEqual(updated.saved_amount, Decimal("5500"))
        self.assertEqual(self.goal.saved_amount, Decimal("1000"))
        self.assertTrue(evaluate_goal(updated, date(2024, 1, 15)).is_complete)

    def test_quick_add_requires_positive_step(self) -> None:
        with self.assertRaises(ValueError):
            quick_add(self.goal, Decimal("0"))

    def test_style_is_derived_from_category(self) -> None:
        self.assertEqual(self.goal.icon, "Emergency")
        self.assertEqual(self.goal.color, "bg-red-500")


if __name__ == "__main__":
    unittest.main()
