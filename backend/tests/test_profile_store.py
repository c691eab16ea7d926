import json
import threading
import time
import unittest
from datetime import date
from decimal import Decimal

from backend.audit_log import AuditLog
from backend.csv_parser import parse_transactions_csv
from backend.profile_store import ProfileStore, ProfileValidationError, RecordNotFoundError
from backend.storage import PROFILE_KEY, InMemoryStore


class SlowStore(InMemoryStore):
    def set(self, key: str, value: str) -> None:
        time.sleep(0.05)
        super().set(key, value)


class ProfileStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryStore()
        self.audit_log = AuditLog(self.store)
        self.profiles = ProfileStore(self.store, self.audit_log)

    def actions(self) -> list[str]:
        return [entry.action for entry in self.audit_log.entries()]

    def test_first_run_uses_sample_profile(self) -> None:
        profile = self.profiles.profile

        self.assertEqual(profile.income.gross_annual_salary, Decimal("60000"))
        self.assertEqual(len(profile.expenses), 4)
        self.assertEqual(profile.currency, "USD")
        self.assertEqual(profile.goals, [])

    def test_corrupt_blob_falls_back_to_defaults(self) -> None:
        self.store.set(PROFILE_KEY, '{"income": "broken"')

        profile = ProfileStore(self.store, self.audit_log, default_currency="INR").profile

        self.assertEqual(profile.currency, "INR")
        self.assertEqual(len(profile.expenses), 4)

    def test_blob_is_persisted_with_camel_case_keys(self) -> None:
        self.profiles.set_income(Decimal("72000"), Decimal("1200"))

        blob = json.loads(self.store.get(PROFILE_KEY))

        self.assertEqual(blob["income"]["grossAnnualSalary"], "72000")
        self.assertEqual(blob["expenses"][0]["name"], "Rent")
        reloaded = ProfileStore(self.store, self.audit_log).profile
        self.assertEqual(reloaded.income.annual_total, Decimal("73200"))

    def test_older_blob_without_goals_or_budgets_loads(self) -> None:
        self.store.set(
            PROFILE_KEY,
            json.dumps(
                {
                    "income": {"grossAnnualSalary": 1000, "otherIncome": 0},
                    "expenses": [
                        {"id": "a", "name": "Tea", "amount": 2, "category": "Food", "date": "2024-01-01"}
                    ],
                    "currency": "GBP",
                    "budgets": None,
                    "goals": None,
                }
            ),
        )

        profile = self.profiles.profile

        self.assertEqual(profile.budgets, {})
        self.assertEqual(profile.goals, [])
        self.assertIsNone(profile.expenses[0].currency)

    def test_add_expense_prepends_and_audits(self) -> None:
        expense = self.profiles.add_expense("Lunch", Decimal("12.5"), "2024-03-01", category="Food")

        self.assertEqual(self.profiles.profile.expenses[0].id, expense.id)
        self.assertEqual(expense.currency, "USD")
        self.assertIn("EXPENSE_ADDED", self.actions())

    def test_add_expense_rejects_invalid_input(self) -> None:
        with self.assertRaises(ProfileValidationError):
            self.profiles.add_expense("Lunch", Decimal("0"), "2024-03-01")
        with self.assertRaises(ProfileValidationError):
            self.profiles.add_expense("Lunch", Decimal("5"), "2024-03-01", category="Pets")
        self.assertEqual(len(self.profiles.profile.expenses), 4)

    def test_delete_expense(self) -> None:
        self.profiles.delete_expense("1")

        self.assertNotIn("1", [expense.id for expense in self.profiles.profile.expenses])
        with self.assertRaises(RecordNotFoundError):
            self.profiles.delete_expense("1")

    def test_import_prepends_rows(self) -> None:
        result = parse_transactions_csv("2024-03-02,Coffee,Food,3.20\n2024-03-03,Tea,Food,2", "USD")

        count = self.profiles.import_expenses(result.rows, source="Sheet")

        self.assertEqual(count, 2)
        self.assertEqual(
            [expense.description for expense in self.profiles.profile.expenses[:2]],
            ["Coffee", "Tea"],
        )
        self.assertEqual(self.audit_log.entries()[0].details, "Imported 2 records via Sheet")

    def test_import_of_nothing_changes_nothing(self) -> None:
        self.assertEqual(self.profiles.import_expenses([]), 0)
        self.assertIsNone(self.store.get(PROFILE_KEY))

    def test_category_management(self) -> None:
        self.profiles.add_category("Pets")
        with self.assertRaises(ProfileValidationError):
            self.profiles.add_category("Pets")

        self.profiles.move_category(len(self.profiles.profile.categories) - 1, 0)
        self.assertEqual(self.profiles.profile.categories[0], "Pets")

        self.profiles.remove_category("Pets")
        self.assertNotIn("Pets", self.profiles.profile.categories)
        with self.assertRaises(RecordNotFoundError):
            self.profiles.remove_category("Pets")
        with self.assertRaises(ProfileValidationError):
            self.profiles.move_category(0, 99)

    def test_removing_category_keeps_its_expenses(self) -> None:
        self.profiles.remove_category("Housing")

        self.assertIn("Housing", [expense.category for expense in self.profiles.profile.expenses])

    def test_budget_and_settings(self) -> None:
        self.profiles.set_budget("Food", Decimal("300"))
        self.profiles.set_currency("eur")
        self.profiles.set_language("fr-FR")

        profile = self.profiles.profile
        self.assertEqual(profile.budgets, {"Food": Decimal("300")})
        self.assertEqual(profile.currency, "EUR")
        self.assertEqual(profile.language, "fr-FR")
        with self.assertRaises(ProfileValidationError):
            self.profiles.set_budget("Food", Decimal("-1"))
        with self.assertRaises(ProfileValidationError):
            self.profiles.set_currency("euro")
        with self.assertRaises(ProfileValidationError):
            self.profiles.set_language("tlh")

    def test_goal_lifecycle(self) -> None:
        goal = self.profiles.add_goal(
            "Holiday", Decimal("2000"), deadline=date(2025, 6, 1), category="Travel"
        )

        updated = self.profiles.contribute_to_goal(goal.id, Decimal("500"))
        self.assertEqual(updated.saved_amount, Decimal("500"))

        updated = self.profiles.set_goal_saved(goal.id, Decimal("2500"))
        self.assertEqual(self.profiles.profile.goals[0].saved_amount, Decimal("2500"))

        self.profiles.delete_goal(goal.id)
        self.assertEqual(self.profiles.profile.goals, [])
        self.assertEqual(
            self.actions()[:4], ["GOAL_DELETED", "GOAL_UPDATED", "GOAL_UPDATED", "GOAL_ADDED"]
        )

    def test_goal_validation(self) -> None:
        with self.assertRaises(ProfileValidationError):
            self.profiles.add_goal("Holiday", Decimal("0"))
        with self.assertRaises(ProfileValidationError):
            self.profiles.add_goal("Holiday", Decimal("100"), category="Yacht")
        with self.assertRaises(RecordNotFoundError):
            self.profiles.contribute_to_goal("missing", Decimal("100"))

    def test_contributions_use_preset_steps(self) -> None:
        goal = self.profiles.add_goal("Laptop", Decimal("1500"), category="Gadget")

        with self.assertRaises(ProfileValidationError):
            self.profiles.contribute_to_goal(goal.id, Decimal("250"))

        updated = self.profiles.contribute_to_goal(goal.id, Decimal("100.00"))
        self.assertEqual(updated.saved_amount, Decimal("100"))

    def test_concurrent_commands_keep_every_expense(self) -> None:
        store = SlowStore()
        profiles = ProfileStore(store, AuditLog(store))
        workers = [
            threading.Thread(
                target=profiles.add_expense,
                args=(f"Snack {index}", Decimal("3"), "2024-03-01"),
            )
            for index in range(2)
        ]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=5)

        reloaded = ProfileStore(store, AuditLog(store)).profile

        self.assertEqual(len(reloaded.expenses), 6)
        self.assertEqual(
            [entry.action for entry in AuditLog(store).entries()],
            ["EXPENSE_ADDED", "EXPENSE_ADDED"],
        )

    def test_reset_restores_defaults(self) -> None:
        self.profiles.delete_expense("1")

        profile = self.profiles.reset()

        self.assertEqual(len(profile.expenses), 4)
        self.assertEqual(self.actions()[0], "DATA_RESET")


if __name__ == "__main__":
    unittest.main()
