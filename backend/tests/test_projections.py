import unittest
from decimal import Decimal

from backend.projections import estimate_tax, project_sip, suggested_contribution


class SipProjectionTests(unittest.TestCase):
    def test_monthly_contribution_compounds_at_start_of_month(self) -> None:
        projection = project_sip(Decimal("1000"), Decimal("0.12"), 1)

        self.assertEqual(projection.months, 12)
        self.assertEqual(projection.invested, Decimal("12000"))
        self.assertAlmostEqual(projection.future_value, Decimal("12809.33"), places=2)
        self.assertAlmostEqual(projection.wealth_gain, Decimal("809.33"), places=2)

    def test_zero_rate_returns_invested_amount(self) -> None:
        projection = project_sip(Decimal("250"), Decimal("0"), 2)

        self.assertEqual(projection.future_value, Decimal("6000"))
        self.assertEqual(projection.wealth_gain, Decimal("0"))

    def test_non_positive_contribution_projects_nothing(self) -> None:
        projection = project_sip(Decimal("-50"))

        self.assertEqual(projection.invested, Decimal("0"))
        self.assertEqual(projection.future_value, Decimal("0"))
        self.assertEqual(projection.months, 120)

    def test_years_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            project_sip(Decimal("100"), Decimal("0.12"), 0)

    def test_suggested_contribution_ignores_deficit(self) -> None:
        self.assertEqual(suggested_contribution(Decimal("2735")), Decimal("1367.5"))
        self.assertEqual(suggested_contribution(Decimal("-300")), Decimal("0"))


class TaxEstimateTests(unittest.TestCase):
    def test_income_is_taxed_in_slices(self) -> None:
        estimate = estimate_tax(Decimal("50000"))

        self.assertEqual(estimate.tax, Decimal("5000"))
        self.assertEqual(estimate.effective_rate, Decimal("10"))
        self.assertEqual(estimate.net_income, Decimal("45000"))
        self.assertTrue(estimate.disclaimer)

    def test_top_bracket_applies_above_eighty_thousand(self) -> None:
        self.assertEqual(estimate_tax(Decimal("100000")).tax, Decimal("17000"))

    def test_income_below_first_threshold_is_untaxed(self) -> None:
        estimate = estimate_tax(Decimal("9000"))

        self.assertEqual(estimate.tax, Decimal("0"))
        self.assertEqual(estimate.effective_rate, Decimal("0"))

    def test_negative_income_raises(self) -> None:
        with self.assertRaises(ValueError):
            estimate_tax(Decimal("-1"))


if __name__ == "__main__":
    unittest.main()
