"""
Narrative financial plan from a large language model.

The prompt is built deterministically from the profile; the model's answer is
passed back untouched. Any failure of the model call turns into a fixed
fallback message. Only one report may be in flight at a time.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional, Protocol

import google.generativeai as genai
import structlog

from backend.audit_log import AuditAction, AuditLog
from backend.currency_conversion import StaticRateProvider, currency_name, format_money
from backend.expense_aggregation import (
    chart_data,
    summarize_cash_flow,
    top_categories,
    totals_by_category,
)
from backend.models import FinancialProfile

DEFAULT_MODEL_NAME = "gemini-2.5-flash"
RECENT_TRANSACTION_LIMIT = 25
TOP_CATEGORY_COUNT = 2
CONTEXT_CATEGORY_COUNT = 3
CONTEXT_INSTRUMENT_COUNT = 5

EMPTY_RESPONSE_MESSAGE = "Unable to generate analysis at this time."
CONNECTION_ERROR_MESSAGE = "Error connecting to AI advisor. Please try again later."

TAX_INSTRUMENTS: dict[str, list[str]] = {
    "USD": [
        "401(k) / 403(b)",
        "Roth IRA / Traditional IRA",
        "HSA (Health Savings Account)",
        "529 Plans",
        "Student Loan Interest Deduction",
    ],
    "INR": [
        "Section 80C (PPF, ELSS, EPF)",
        "Section 80D (Health Insurance)",
        "NPS (National Pension System)",
        "HRA (House Rent Allowance)",
        "LTA (Leave Travel Allowance)",
    ],
    "GBP": [
        "ISA (Individual Savings Account)",
        "SIPP (Self-Invested Personal Pension)",
        "Workplace Pension",
        "Marriage Allowance",
    ],
    "CAD": [
        "RRSP (Registered Retirement Savings Plan)",
        "TFSA (Tax-Free Savings Account)",
        "FHSA (First Home Savings Account)",
        "Canada Child Benefit",
    ],
    "AUD": [
        "Superannuation (Concessional Contributions)",
        "Franking Credits",
        "Negative Gearing",
    ],
    "SGD": ["CPF Top-ups", "SRS (Supplementary Retirement Scheme)"],
    "EUR": [
        "Private Pension Plans",
        "Life Insurance Wrappers",
        "Sustainable Investment Tax Credits",
    ],
}

PARTNER_TOOLS: dict[str, list[tuple[str, str, str]]] = {
    "USD": [
        ("Robinhood", "Commission-free stock trading & IRAs.", "Invest"),
        ("TurboTax", "File your US taxes with confidence.", "Tax"),
        ("Coinbase", "Buy, sell, and store cryptocurrency.", "Bank"),
    ],
    "INR": [
        ("Zerodha", "India's #1 discount broker for stocks & SIPs.", "Invest"),
        ("ClearTax", "Easiest way to e-file IT returns in India.", "Tax"),
        ("CRED", "Pay credit card bills and earn rewards.", "Bank"),
    ],
    "GBP": [
        ("Vanguard UK", "Low-cost index funds and ISAs.", "Invest"),
        ("TaxScouts", "Certified accountants to sort your tax.", "Tax"),
        ("Monzo", "The bank that lives on your smartphone.", "Bank"),
    ],
}
# Used for every currency without its own list.
DEFAULT_PARTNER_TOOLS: list[tuple[str, str, str]] = [
    ("Interactive Brokers", "Global trading access to 150 markets.", "Invest"),
    ("Wise", "International money transfers at low cost.", "Bank"),
]

logger = structlog.get_logger(__name__)


class AdviceClient(Protocol):
    def generate_advice(self, prompt: str) -> str: ...


class AdvisorUnavailable(RuntimeError):
    """Raised when no model client can be used."""


class AdvisorBusyError(RuntimeError):
    """Raised when a report is requested while another is still running."""


class GeminiAdviceClient:
    def __init__(self, api_key: Optional[str], model_name: str = DEFAULT_MODEL_NAME) -> None:
        self._api_key = api_key
        self._model_name = model_name
        self._model = None

    def _get_model(self):
        if not self._api_key:
            raise AdvisorUnavailable("GEMINI_API_KEY is not configured.")
        if self._model is None:
            genai.configure(api_key=self._api_key)
            self._model = genai.GenerativeModel(model_name=self._model_name)
        return self._model

    def generate_advice(self, prompt: str) -> str:
        response = self._get_model().generate_content(prompt)
        return response.text or ""


@dataclass(frozen=True)
class AdviceResult:
    text: str
    succeeded: bool


@dataclass(frozen=True)
class PartnerTool:
    name: str
    description: str
    kind: str


@dataclass(frozen=True)
class AdvisorContext:
    currency: str
    currency_name: str
    tax_instruments: list[str]
    top_categories: list[str]
    partner_tools: list[PartnerTool]


def build_advice_prompt(
    profile: FinancialProfile,
    rate_provider: StaticRateProvider | None = None,
) -> str:
    currency = profile.currency
    name = currency_name(currency)
    summary = summarize_cash_flow(
        profile.income, profile.expenses, currency, rate_provider=rate_provider
    )
    breakdown = chart_data(
        totals_by_category(profile.expenses, [], currency, rate_provider=rate_provider)
    )

    def money(value) -> str:
        return format_money(value, currency)

    category_lines = "\n".join(
        f"- {entry.category}: {money(entry.amount)}" for entry in breakdown
    )
    recent = profile.expenses[:RECENT_TRANSACTION_LIMIT]
    transaction_lines = "\n".join(
        f"- {expense.description} ({expense.category}): "
        f"{format_money(expense.amount, expense.currency_or(currency))}"
        for expense in recent
    )
    hidden = len(profile.expenses) - len(recent)
    if hidden > 0:
        transaction_lines += f"\n...and {hidden} more transactions."

    top_spending = " and ".join(
        entry.category for entry in breakdown[:TOP_CATEGORY_COUNT]
    ) or "no recorded categories"

    instruments = TAX_INSTRUMENTS.get(currency)
    if instruments:
        instrument_hint = (
            "Specifically evaluate the relevance of these instruments for the user: "
            f"{', '.join(instruments)}."
        )
    else:
        instrument_hint = (
            "Suggest relevant local tax-advantaged accounts, pension schemes, "
            "and deductions available in this region."
        )

    savings_rate = f"{summary.savings_rate:.1f}%"
    return f"""You are a senior financial advisor and tax planner.

**User Profile:**
- **Currency:** {name} ({currency})
- **Annual Income:** {money(summary.annual_income)}
- **Monthly Income:** {money(summary.monthly_gross)}
- **Monthly Expenses:** {money(summary.monthly_expenses)}
- **Monthly Savings:** {money(summary.monthly_savings)} ({savings_rate})

**Spending Breakdown:**
{category_lines}

**Detailed Transactions (Recent):**
{transaction_lines}

**Task:**
Provide a personalized financial plan in Markdown format, specifically tailored to the tax laws and investment options associated with **{name} ({currency})**.

**Required Sections:**

1. **Financial Health Check**
   - Assess the savings rate (Current: {savings_rate}).
   - Comment on the balance between fixed expenses (Housing, Debt) and discretionary spending.

2. **Tax Saving Opportunities (Region-Specific)**
   - **Context:** The user operates in {name}. {instrument_hint}
   - **Targeted Analysis:** The user's highest spending categories are **{top_spending}**.
   - **Action:**
     - Investigate if there are specific tax deductions, credits, or allowances available for **{top_spending}** in this region.
     - Provide actionable steps to utilize the mentioned instruments to reduce tax liability based on their income level of {money(summary.annual_income)}.

3. **Investment Strategy (SIP/DCA)**
   - Recommend an asset allocation mix (Equity vs Debt) based on maintaining a long-term portfolio.
   - Suggest specific market indices or fund types available in {currency}.
   - Calculate a recommended monthly SIP amount based on their {money(summary.monthly_savings)} savings (usually 20-50% of savings).

4. **Optimization Tips**
   - Highlight 1-2 categories where spending seems high compared to income.
   - Suggest actionable ways to reduce these costs.

**Tone:** Professional, insightful, and strictly personalized to the provided data and currency region.
"""


def partner_tools(currency: str) -> list[PartnerTool]:
    rows = PARTNER_TOOLS.get(currency, DEFAULT_PARTNER_TOOLS)
    return [PartnerTool(name, description, kind) for name, description, kind in rows]


def advisor_context(
    profile: FinancialProfile,
    rate_provider: StaticRateProvider | None = None,
) -> AdvisorContext:
    totals = totals_by_category(
        profile.expenses, [], profile.currency, rate_provider=rate_provider
    )
    return AdvisorContext(
        currency=profile.currency,
        currency_name=currency_name(profile.currency),
        tax_instruments=TAX_INSTRUMENTS.get(profile.currency, [])[:CONTEXT_INSTRUMENT_COUNT],
        top_categories=top_categories(totals, CONTEXT_CATEGORY_COUNT),
        partner_tools=partner_tools(profile.currency),
    )


class FinancialAdvisor:
    def __init__(
        self,
        client: AdviceClient,
        audit_log: Optional[AuditLog] = None,
        rate_provider: StaticRateProvider | None = None,
    ) -> None:
        self._client = client
        self._audit_log = audit_log
        self._rate_provider = rate_provider
        self._in_flight = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    def analyze(self, profile: FinancialProfile) -> AdviceResult:
        if not self._in_flight.acquire(blocking=False):
            raise AdvisorBusyError("A report is already being generated.")
        try:
            prompt = build_advice_prompt(profile, self._rate_provider)
            if self._audit_log is not None:
                self._audit_log.record(AuditAction.AI_REPORT_REQUESTED, profile.currency)
            try:
                text = self._client.generate_advice(prompt)
            except Exception as exc:
                logger.error("advisor_request_failed", error=str(exc))
                return AdviceResult(text=CONNECTION_ERROR_MESSAGE, succeeded=False)
            if not text or not text.strip():
                return AdviceResult(text=EMPTY_RESPONSE_MESSAGE, succeeded=False)
            return AdviceResult(text=text, succeeded=True)
        finally:
            self._in_flight.release()
