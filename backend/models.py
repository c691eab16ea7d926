from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

GoalCategory = Literal[
    "Emergency",
    "Travel",
    "Home",
    "Vehicle",
    "Education",
    "Gadget",
    "Investment",
    "Other",
]

GOAL_COLORS: dict[str, str] = {
    "Emergency": "bg-red-500",
    "Travel": "bg-blue-500",
    "Home": "bg-indigo-500",
    "Vehicle": "bg-orange-500",
    "Education": "bg-green-500",
    "Gadget": "bg-purple-500",
    "Investment": "bg-teal-500",
    "Other": "bg-gray-500",
}

OTHER_CATEGORY = "Other"

DEFAULT_CATEGORIES = [
    "Housing",
    "Food",
    "Transport",
    "Utilities",
    "Entertainment",
    "Health",
    "Debt",
    OTHER_CATEGORY,
]

SUPPORTED_LANGUAGES: dict[str, str] = {
    "en-US": "English (US)",
    "en-GB": "English (UK)",
    "hi-IN": "Hindi",
    "es-ES": "Spanish",
    "fr-FR": "French",
    "de-DE": "German",
    "ja-JP": "Japanese",
    "zh-CN": "Chinese",
}

DEFAULT_LANGUAGE = "en-US"


def new_record_id() -> str:
    return uuid4().hex


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Expense(CamelModel):
    id: str = Field(default_factory=new_record_id)
    description: str = Field(alias="name")
    amount: Decimal = Field(ge=0)
    category: str = OTHER_CATEGORY
    date: str
    currency: str | None = None

    def currency_or(self, default_currency: str) -> str:
        return self.currency or default_currency


class Income(CamelModel):
    gross_annual_salary: Decimal = Field(default=Decimal("0"), ge=0)
    other_income: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def annual_total(self) -> Decimal:
        return self.gross_annual_salary + self.other_income


class SavingsGoal(CamelModel):
    id: str = Field(default_factory=new_record_id)
    name: str
    target_amount: Decimal = Field(gt=0)
    saved_amount: Decimal = Field(default=Decimal("0"), ge=0)
    deadline: date | None = None
    category: GoalCategory = "Other"
    icon: str | None = None
    color: str | None = None

    @field_validator("deadline", mode="before")
    @classmethod
    def blank_deadline_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def derive_style(self) -> "SavingsGoal":
        if not self.icon:
            self.icon = self.category
        if not self.color:
            self.color = GOAL_COLORS[self.category]
        return self


class FinancialProfile(CamelModel):
    income: Income = Field(default_factory=Income)
    expenses: list[Expense] = Field(default_factory=list)
    currency: str = "USD"
    language: str = DEFAULT_LANGUAGE
    budgets: dict[str, Decimal] = Field(default_factory=dict)
    categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    goals: list[SavingsGoal] = Field(default_factory=list)

    @field_validator("budgets", "goals", mode="before")
    @classmethod
    def null_collections_are_empty(cls, value, info):
        if value is None:
            return {} if info.field_name == "budgets" else []
        return value


def sample_expenses() -> list[Expense]:
    return [
        Expense(id="1", description="Rent", amount=Decimal("1500"), category="Housing", date="2023-10-01", currency="USD"),
        Expense(id="2", description="Groceries", amount=Decimal("400"), category="Food", date="2023-10-05", currency="USD"),
        Expense(id="3", description="Car Loan", amount=Decimal("350"), category="Debt", date="2023-10-10", currency="USD"),
        Expense(id="4", description="Netflix", amount=Decimal("15"), category="Entertainment", date="2023-10-15", currency="USD"),
    ]


def default_profile(currency: str = "USD") -> FinancialProfile:
    return FinancialProfile(
        income=Income(gross_annual_salary=Decimal("60000"), other_income=Decimal("0")),
        expenses=sample_expenses(),
        currency=currency,
        language=DEFAULT_LANGUAGE,
        budgets={},
        categories=list(DEFAULT_CATEGORIES),
        goals=[],
    )
