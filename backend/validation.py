from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from backend.models import OTHER_CATEGORY, SUPPORTED_LANGUAGES

CATEGORY_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s]+$")


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, reason: str) -> "ValidationResult":
        return cls(valid=False, reason=reason)


def validate_category_name(name: str, existing: Iterable[str]) -> ValidationResult:
    if not name or not name.strip():
        return ValidationResult.fail("Category name cannot be empty")
    if not CATEGORY_NAME_PATTERN.match(name):
        return ValidationResult.fail("Only letters and numbers allowed")
    if name.strip() in set(existing):
        return ValidationResult.fail("Category already exists")
    return ValidationResult.ok()


def validate_expense_input(
    description: str,
    amount: Optional[Decimal],
    category: str,
    known_categories: Iterable[str],
) -> ValidationResult:
    if not description or not description.strip():
        return ValidationResult.fail("Description is required")
    if amount is None or amount == 0:
        return ValidationResult.fail("Amount is required")
    if amount < 0:
        return ValidationResult.fail("Amount must not be negative")
    if category != OTHER_CATEGORY and category not in set(known_categories):
        return ValidationResult.fail(f"Unknown category: {category}")
    return ValidationResult.ok()


def validate_goal_input(
    name: str,
    target_amount: Optional[Decimal],
    saved_amount: Optional[Decimal] = None,
) -> ValidationResult:
    if not name or not name.strip():
        return ValidationResult.fail("Goal name is required")
    if target_amount is None or target_amount <= 0:
        return ValidationResult.fail("Target amount must be greater than zero")
    if saved_amount is not None and saved_amount < 0:
        return ValidationResult.fail("Saved amount must not be negative")
    return ValidationResult.ok()


def validate_budget_limit(limit: Decimal) -> ValidationResult:
    if limit < 0:
        return ValidationResult.fail("Budget limit must not be negative")
    return ValidationResult.ok()


def validate_language(code: str) -> ValidationResult:
    if code not in SUPPORTED_LANGUAGES:
        return ValidationResult.fail(f"Unsupported language: {code}")
    return ValidationResult.ok()
