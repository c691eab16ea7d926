"""
Application state container for the single local profile.

The profile is loaded once, and every mutation goes through one of the
command methods below: each builds a new profile value, persists the whole
blob and records an audit entry. Validation happens before anything is
written.
"""

from __future__ import annotations

import functools
import threading
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

import structlog
from pydantic import ValidationError

from backend.audit_log import AuditAction, AuditLog
from backend.currency_conversion import normalize_currency
from backend.models import (
    OTHER_CATEGORY,
    Expense,
    FinancialProfile,
    Income,
    SavingsGoal,
    default_profile,
    new_record_id,
)
from backend.savings_goals import QUICK_ADD_STEPS, quick_add
from backend.storage import PROFILE_KEY, KeyValueStore
from backend.validation import (
    ValidationResult,
    validate_budget_limit,
    validate_category_name,
    validate_expense_input,
    validate_goal_input,
    validate_language,
)

logger = structlog.get_logger(__name__)


class ProfileValidationError(ValueError):
    """A command was rejected before reaching storage."""


class RecordNotFoundError(LookupError):
    """No expense, goal or category matches the given identifier."""


def _require(result: ValidationResult) -> None:
    if not result.valid:
        raise ProfileValidationError(result.reason)


def _serialized(method):
    """Run a command under the store lock so read, commit and audit stay atomic."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class ProfileStore:
    def __init__(
        self,
        store: KeyValueStore,
        audit_log: AuditLog,
        key: str = PROFILE_KEY,
        default_currency: str = "USD",
    ) -> None:
        self._store = store
        self._audit_log = audit_log
        self._key = key
        self._default_currency = default_currency
        self._profile: Optional[FinancialProfile] = None
        self._lock = threading.RLock()

    @property
    @_serialized
    def profile(self) -> FinancialProfile:
        if self._profile is None:
            self._profile = self._load()
        return self._profile

    def _load(self) -> FinancialProfile:
        raw = self._store.get(self._key)
        if not raw:
            return default_profile(self._default_currency)
        try:
            return FinancialProfile.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("profile_load_failed", error=str(exc))
            return default_profile(self._default_currency)

    def _commit(self, profile: FinancialProfile) -> FinancialProfile:
        self._store.set(self._key, profile.model_dump_json(by_alias=True))
        self._profile = profile
        return profile

    def _update(self, **changes) -> FinancialProfile:
        return self._commit(self.profile.model_copy(update=changes))

    @_serialized
    def set_income(self, gross_annual_salary: Decimal, other_income: Decimal) -> FinancialProfile:
        if gross_annual_salary < 0 or other_income < 0:
            raise ProfileValidationError("Income must not be negative")
        profile = self._update(
            income=Income(gross_annual_salary=gross_annual_salary, other_income=other_income)
        )
        self._audit_log.record(AuditAction.PROFILE_UPDATE, "Income updated")
        return profile

    @_serialized
    def set_currency(self, currency: str) -> FinancialProfile:
        try:
            code = normalize_currency(currency)
        except ValueError as exc:
            raise ProfileValidationError(str(exc)) from exc
        profile = self._update(currency=code)
        self._audit_log.record(AuditAction.PROFILE_UPDATE, f"Currency changed to {code}")
        return profile

    @_serialized
    def set_language(self, language: str) -> FinancialProfile:
        _require(validate_language(language))
        profile = self._update(language=language)
        self._audit_log.record(AuditAction.SETTINGS_CHANGE, f"Language changed to {language}")
        return profile

    @_serialized
    def set_budget(self, category: str, limit: Decimal) -> FinancialProfile:
        _require(validate_budget_limit(limit))
        budgets = {**self.profile.budgets, category: limit}
        profile = self._update(budgets=budgets)
        self._audit_log.record(AuditAction.PROFILE_UPDATE, f"Budget for {category} set to {limit}")
        return profile

    @_serialized
    def add_category(self, name: str) -> FinancialProfile:
        _require(validate_category_name(name, self.profile.categories))
        cleaned = name.strip()
        profile = self._update(categories=[*self.profile.categories, cleaned])
        self._audit_log.record(AuditAction.PROFILE_UPDATE, f"Added category: {cleaned}")
        return profile

    @_serialized
    def remove_category(self, name: str) -> FinancialProfile:
        if name not in self.profile.categories:
            raise RecordNotFoundError(f"Category not found: {name}")
        categories = [category for category in self.profile.categories if category != name]
        profile = self._update(categories=categories)
        self._audit_log.record(AuditAction.PROFILE_UPDATE, f"Removed category: {name}")
        return profile

    @_serialized
    def move_category(self, from_index: int, to_index: int) -> FinancialProfile:
        categories = list(self.profile.categories)
        if not (0 <= from_index < len(categories) and 0 <= to_index < len(categories)):
            raise ProfileValidationError("Category position out of range")
        if from_index == to_index:
            return self.profile
        moved = categories.pop(from_index)
        categories.insert(to_index, moved)
        profile = self._update(categories=categories)
        self._audit_log.record(AuditAction.PROFILE_UPDATE, f"Reordered category: {moved}")
        return profile

    @_serialized
    def add_expense(
        self,
        description: str,
        amount: Decimal,
        date: str,
        category: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> Expense:
        category = (category or OTHER_CATEGORY).strip() or OTHER_CATEGORY
        _require(
            validate_expense_input(description, amount, category, self.profile.categories)
        )
        if currency:
            try:
                currency = normalize_currency(currency)
            except ValueError as exc:
                raise ProfileValidationError(str(exc)) from exc
        expense = Expense(
            id=new_record_id(),
            description=description.strip(),
            amount=amount,
            category=category,
            date=date,
            currency=currency or self.profile.currency,
        )
        self._update(expenses=[expense, *self.profile.expenses])
        self._audit_log.record(AuditAction.EXPENSE_ADDED, f"Added expense: {expense.description}")
        return expense

    @_serialized
    def delete_expense(self, expense_id: str) -> FinancialProfile:
        expenses = [expense for expense in self.profile.expenses if expense.id != expense_id]
        if len(expenses) == len(self.profile.expenses):
            raise RecordNotFoundError(f"Expense not found: {expense_id}")
        profile = self._update(expenses=expenses)
        self._audit_log.record(AuditAction.EXPENSE_DELETED, f"Deleted expense ID: {expense_id}")
        return profile

    @_serialized
    def import_expenses(self, expenses: Iterable[Expense], source: str = "CSV") -> int:
        imported = list(expenses)
        if not imported:
            return 0
        self._update(expenses=[*imported, *self.profile.expenses])
        self._audit_log.record(
            AuditAction.DATA_IMPORT, f"Imported {len(imported)} records via {source}"
        )
        return len(imported)

    @_serialized
    def add_goal(
        self,
        name: str,
        target_amount: Decimal,
        saved_amount: Decimal = Decimal("0"),
        deadline: Optional[date] = None,
        category: str = "Other",
    ) -> SavingsGoal:
        _require(validate_goal_input(name, target_amount, saved_amount))
        try:
            goal = SavingsGoal(
                id=new_record_id(),
                name=name.strip(),
                target_amount=target_amount,
                saved_amount=saved_amount,
                deadline=deadline,
                category=category,
            )
        except ValidationError as exc:
            raise ProfileValidationError(str(exc)) from exc
        self._update(goals=[*self.profile.goals, goal])
        self._audit_log.record(AuditAction.GOAL_ADDED, f"Added goal: {goal.name}")
        return goal

    @_serialized
    def delete_goal(self, goal_id: str) -> FinancialProfile:
        self._find_goal(goal_id)
        goals = [goal for goal in self.profile.goals if goal.id != goal_id]
        profile = self._update(goals=goals)
        self._audit_log.record(AuditAction.GOAL_DELETED, f"Deleted goal ID: {goal_id}")
        return profile

    @_serialized
    def contribute_to_goal(self, goal_id: str, step: Decimal) -> SavingsGoal:
        if step not in QUICK_ADD_STEPS:
            allowed = ", ".join(str(preset) for preset in QUICK_ADD_STEPS)
            raise ProfileValidationError(f"Contribution must be one of: {allowed}")
        try:
            updated = quick_add(self._find_goal(goal_id), step)
        except ValueError as exc:
            raise ProfileValidationError(str(exc)) from exc
        self._replace_goal(updated)
        self._audit_log.record(
            AuditAction.GOAL_UPDATED, f"Added {step} to goal: {updated.name}"
        )
        return updated

    @_serialized
    def set_goal_saved(self, goal_id: str, saved_amount: Decimal) -> SavingsGoal:
        if saved_amount < 0:
            raise ProfileValidationError("Saved amount must not be negative")
        updated = self._find_goal(goal_id).model_copy(update={"saved_amount": saved_amount})
        self._replace_goal(updated)
        self._audit_log.record(
            AuditAction.GOAL_UPDATED, f"Set saved amount for goal: {updated.name}"
        )
        return updated

    @_serialized
    def reset(self) -> FinancialProfile:
        profile = self._commit(default_profile(self._default_currency))
        self._audit_log.record(AuditAction.DATA_RESET, "App data reset to defaults")
        return profile

    @_serialized
    def forget(self) -> None:
        """Drop the cached profile so the next access reloads from storage."""
        self._profile = None

    def _find_goal(self, goal_id: str) -> SavingsGoal:
        for goal in self.profile.goals:
            if goal.id == goal_id:
                return goal
        raise RecordNotFoundError(f"Goal not found: {goal_id}")

    def _replace_goal(self, updated: SavingsGoal) -> None:
        goals = [updated if goal.id == updated.id else goal for goal in self.profile.goals]
        self._update(goals=goals)
