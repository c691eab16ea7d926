import datetime
import os
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

import structlog
from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from backend.advisor import (
    DEFAULT_MODEL_NAME,
    AdviceClient,
    AdvisorBusyError,
    FinancialAdvisor,
    GeminiAdviceClient,
    advisor_context,
)
from backend.audit_log import AuditAction, AuditLog, AuditLogEntry
from backend.auth import MOCK_OTP_CODE, AuthenticationError, MockOtpAuthenticator
from backend.budget_engine import evaluate_budgets
from backend.csv_parser import (
    CSV_MEDIA_TYPE,
    RowIssue,
    export_filename,
    export_transactions_csv,
    parse_transactions_csv,
)
from backend.currency_conversion import normalize_currency
from backend.expense_aggregation import (
    category_trend,
    category_universe,
    chart_data,
    currency_trend,
    last_days_window,
    month_window,
    parse_expense_date,
    summarize_cash_flow,
    totals_by_category,
    totals_in_window,
)
from backend.logging_config import configure_logging
from backend.models import Expense, FinancialProfile, SavingsGoal
from backend.profile_store import ProfileStore, ProfileValidationError, RecordNotFoundError
from backend.projections import (
    DEFAULT_ANNUAL_RATE,
    DEFAULT_CONTRIBUTION_RATIO,
    DEFAULT_YEARS,
    TAX_ESTIMATE_DISCLAIMER,
    estimate_tax,
    project_sip,
    suggested_contribution,
)
from backend.savings_goals import GOAL_LABELS, QUICK_ADD_STEPS, evaluate_goal
from backend.storage import THEME_KEY, BooleanFlag, KeyValueStore, create_store

configure_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = structlog.get_logger(__name__)

app = FastAPI()

frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

database_url = os.getenv("DATABASE_URL", "sqlite:///./smartfinance.db")


def get_system_default_currency() -> str:
    raw = os.getenv("DEFAULT_CURRENCY", "USD")
    try:
        return normalize_currency(raw)
    except ValueError:
        return "USD"


def get_decimal_setting(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        return default
    return value if value.is_finite() and value >= 0 else default


def get_int_setting(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default


SYSTEM_DEFAULT_CURRENCY = get_system_default_currency()
SIP_CONTRIBUTION_RATIO = get_decimal_setting("SIP_CONTRIBUTION_RATIO", DEFAULT_CONTRIBUTION_RATIO)
SIP_ANNUAL_RATE = get_decimal_setting("SIP_ANNUAL_RATE", DEFAULT_ANNUAL_RATE)
SIP_YEARS = get_int_setting("SIP_YEARS", DEFAULT_YEARS)
EXPENSE_SORT_KEYS = {"date", "description", "category", "amount", "currency"}
CATEGORY_WINDOWS = {"all", "7d", "month"}


@dataclass
class AppServices:
    store: KeyValueStore
    audit_log: AuditLog
    profiles: ProfileStore
    auth: MockOtpAuthenticator
    advisor: FinancialAdvisor
    theme: BooleanFlag
    today: Callable[[], date] = field(default=date.today)


def build_services(
    store: KeyValueStore,
    advice_client: Optional[AdviceClient] = None,
    today: Callable[[], date] = date.today,
) -> AppServices:
    audit_log = AuditLog(store)
    client = advice_client or GeminiAdviceClient(
        api_key=os.getenv("GEMINI_API_KEY"),
        model_name=os.getenv("GEMINI_MODEL", DEFAULT_MODEL_NAME),
    )
    return AppServices(
        store=store,
        audit_log=audit_log,
        profiles=ProfileStore(store, audit_log, default_currency=SYSTEM_DEFAULT_CURRENCY),
        auth=MockOtpAuthenticator(
            store, audit_log, otp_code=os.getenv("MOCK_OTP_CODE", MOCK_OTP_CODE)
        ),
        advisor=FinancialAdvisor(client, audit_log=audit_log),
        theme=BooleanFlag(store, THEME_KEY),
        today=today,
    )


_services: Optional[AppServices] = None


def get_services() -> AppServices:
    global _services
    if _services is None:
        _services = build_services(create_store(database_url))
    return _services


def require_session(services: AppServices = Depends(get_services)) -> AppServices:
    if not services.auth.is_authenticated():
        raise HTTPException(status_code=401, detail="Login required.")
    return services


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_error",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Something went wrong. The application encountered an unexpected error.",
            "recovery": {
                "reload": "/profile",
                "reset": "/recovery/reset",
            },
        },
    )


class OtpRequestPayload(BaseModel):
    phone: str


class OtpVerifyPayload(BaseModel):
    phone: str
    otp: str


class SessionResponse(BaseModel):
    authenticated: bool


class ThemePayload(BaseModel):
    dark_mode: bool


class IncomePayload(BaseModel):
    gross_annual_salary: Decimal
    other_income: Decimal = Decimal("0")


class CurrencyPayload(BaseModel):
    currency: str


class LanguagePayload(BaseModel):
    language: str


class CategoryPayload(BaseModel):
    name: str


class CategoryMovePayload(BaseModel):
    from_index: int
    to_index: int


class CategoriesResponse(BaseModel):
    categories: list[str]
    all_categories: list[str]


class BudgetPayload(BaseModel):
    limit: Decimal


class BudgetEvaluationResponse(BaseModel):
    category: str
    spent: Decimal
    limit: Decimal
    percentage: Decimal
    remaining: Decimal
    overage: Decimal
    status: str


class ExpensePayload(BaseModel):
    description: str
    amount: Decimal
    date: Optional[datetime.date] = None
    category: Optional[str] = None
    currency: Optional[str] = None


class ImportResponse(BaseModel):
    imported_count: int
    message: str
    issues: list[RowIssue]


class CashFlowResponse(BaseModel):
    currency: str
    annual_income: Decimal
    monthly_gross: Decimal
    monthly_expenses: Decimal
    monthly_savings: Decimal
    savings_rate: Decimal
    expense_ratio: Decimal
    health_label: str
    health_message: str


class CategoryAmount(BaseModel):
    category: str
    amount: Decimal


class CategoryBreakdownResponse(BaseModel):
    window: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    categories: list[CategoryAmount]
    average: Decimal


class CurrencyTrendBucket(BaseModel):
    month: str
    totals: dict[str, Decimal]


class CurrencyTrendResponse(BaseModel):
    currencies: list[str]
    months: list[CurrencyTrendBucket]


class TrendPoint(BaseModel):
    month: str
    amount: Decimal


class CategoryTrendResponse(BaseModel):
    category: str
    points: list[TrendPoint]
    total: Decimal
    average: Decimal
    direction: str


class GoalPayload(BaseModel):
    name: str
    target_amount: Decimal
    saved_amount: Decimal = Decimal("0")
    deadline: Optional[date] = None
    category: str = "Other"


class ContributionPayload(BaseModel):
    amount: Decimal = QUICK_ADD_STEPS[0]


class SavedAmountPayload(BaseModel):
    saved_amount: Decimal


class GoalResponse(BaseModel):
    id: str
    name: str
    target_amount: Decimal
    saved_amount: Decimal
    deadline: Optional[date] = None
    category: str
    label: str
    icon: Optional[str] = None
    color: Optional[str] = None
    progress: Decimal
    remaining: Decimal
    months_remaining: Optional[int] = None
    monthly_need: Optional[Decimal] = None
    is_complete: bool


class SipProjectionResponse(BaseModel):
    monthly_savings: Decimal
    contribution_ratio: Decimal
    monthly_contribution: Decimal
    annual_rate: Decimal
    years: int
    months: int
    invested: Decimal
    future_value: Decimal
    wealth_gain: Decimal


class TaxEstimateResponse(BaseModel):
    currency: str
    annual_income: Decimal
    tax: Decimal
    effective_rate: Decimal
    net_income: Decimal
    disclaimer: str = TAX_ESTIMATE_DISCLAIMER


class AdviceResponse(BaseModel):
    text: str
    succeeded: bool


class PartnerToolResponse(BaseModel):
    name: str
    description: str
    kind: str


class AdvisorContextResponse(BaseModel):
    currency: str
    currency_name: str
    tax_instruments: list[str]
    top_categories: list[str]
    partner_tools: list[PartnerToolResponse]


def to_goal_response(goal: SavingsGoal, today: date) -> GoalResponse:
    evaluation = evaluate_goal(goal, today)
    return GoalResponse(
        id=goal.id,
        name=goal.name,
        target_amount=goal.target_amount,
        saved_amount=goal.saved_amount,
        deadline=goal.deadline,
        category=goal.category,
        label=GOAL_LABELS.get(goal.category, goal.category),
        icon=goal.icon,
        color=goal.color,
        progress=evaluation.progress,
        remaining=evaluation.remaining,
        months_remaining=evaluation.months_remaining,
        monthly_need=evaluation.monthly_need,
        is_complete=evaluation.is_complete,
    )


def filter_expenses(
    expenses: list[Expense],
    category: Optional[str],
    search: Optional[str],
    window: Optional[tuple[date, date]],
) -> list[Expense]:
    query = (search or "").strip().lower()
    filtered = []
    for expense in expenses:
        if category and expense.category != category:
            continue
        if query and query not in expense.description.lower():
            continue
        if window is not None:
            expense_date = parse_expense_date(expense.date)
            if expense_date is None or not window[0] <= expense_date <= window[1]:
                continue
        filtered.append(expense)
    return filtered


def sort_expenses(
    expenses: list[Expense], sort_by: str, direction: str, default_currency: str
) -> list[Expense]:
    normalized_key = sort_by.strip().lower()
    if normalized_key not in EXPENSE_SORT_KEYS:
        raise ValueError("Invalid sort key.")
    normalized_direction = direction.strip().lower()
    if normalized_direction not in {"asc", "desc"}:
        raise ValueError("Invalid sort direction.")

    def sort_value(expense: Expense):
        if normalized_key == "currency":
            return expense.currency_or(default_currency)
        return getattr(expense, normalized_key)

    return sorted(expenses, key=sort_value, reverse=normalized_direction == "desc")


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/auth/otp/request")
def request_otp(
    payload: OtpRequestPayload, services: AppServices = Depends(get_services)
) -> dict:
    try:
        services.auth.request_otp(payload.phone)
    except AuthenticationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"status": "sent"}


@app.post("/auth/otp/verify", response_model=SessionResponse)
def verify_otp(
    payload: OtpVerifyPayload, services: AppServices = Depends(get_services)
) -> SessionResponse:
    try:
        verified = services.auth.verify_otp(payload.phone, payload.otp)
    except AuthenticationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not verified:
        raise HTTPException(status_code=401, detail="Invalid OTP. Please try again.")
    return SessionResponse(authenticated=True)


@app.post("/auth/logout", response_model=SessionResponse)
def logout(services: AppServices = Depends(get_services)) -> SessionResponse:
    services.auth.logout()
    return SessionResponse(authenticated=False)


@app.get("/auth/session", response_model=SessionResponse)
def get_session(services: AppServices = Depends(get_services)) -> SessionResponse:
    return SessionResponse(authenticated=services.auth.is_authenticated())


@app.get("/preferences/theme", response_model=ThemePayload)
def get_theme(services: AppServices = Depends(get_services)) -> ThemePayload:
    return ThemePayload(dark_mode=services.theme.get())


@app.put("/preferences/theme", response_model=ThemePayload)
def update_theme(
    payload: ThemePayload, services: AppServices = Depends(get_services)
) -> ThemePayload:
    services.theme.set(payload.dark_mode)
    return ThemePayload(dark_mode=payload.dark_mode)


@app.get("/profile", response_model=FinancialProfile, response_model_by_alias=False)
def get_profile(services: AppServices = Depends(require_session)) -> FinancialProfile:
    return services.profiles.profile


@app.post("/profile/reset", response_model=FinancialProfile, response_model_by_alias=False)
def reset_profile(services: AppServices = Depends(require_session)) -> FinancialProfile:
    return services.profiles.reset()


@app.put("/profile/income", response_model=FinancialProfile, response_model_by_alias=False)
def update_income(
    payload: IncomePayload, services: AppServices = Depends(require_session)
) -> FinancialProfile:
    try:
        return services.profiles.set_income(payload.gross_annual_salary, payload.other_income)
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.put("/profile/currency", response_model=FinancialProfile, response_model_by_alias=False)
def update_currency(
    payload: CurrencyPayload, services: AppServices = Depends(require_session)
) -> FinancialProfile:
    try:
        return services.profiles.set_currency(payload.currency)
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.put("/profile/language", response_model=FinancialProfile, response_model_by_alias=False)
def update_language(
    payload: LanguagePayload, services: AppServices = Depends(require_session)
) -> FinancialProfile:
    try:
        return services.profiles.set_language(payload.language)
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/categories", response_model=CategoriesResponse)
def list_categories(services: AppServices = Depends(require_session)) -> CategoriesResponse:
    profile = services.profiles.profile
    return CategoriesResponse(
        categories=profile.categories,
        all_categories=category_universe(profile.categories, profile.expenses),
    )


@app.post("/categories", response_model=CategoriesResponse)
def create_category(
    payload: CategoryPayload, services: AppServices = Depends(require_session)
) -> CategoriesResponse:
    try:
        profile = services.profiles.add_category(payload.name)
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return CategoriesResponse(
        categories=profile.categories,
        all_categories=category_universe(profile.categories, profile.expenses),
    )


@app.put("/categories/order", response_model=CategoriesResponse)
def move_category(
    payload: CategoryMovePayload, services: AppServices = Depends(require_session)
) -> CategoriesResponse:
    try:
        profile = services.profiles.move_category(payload.from_index, payload.to_index)
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return CategoriesResponse(
        categories=profile.categories,
        all_categories=category_universe(profile.categories, profile.expenses),
    )


@app.delete("/categories/{name}", response_model=CategoriesResponse)
def delete_category(
    name: str, services: AppServices = Depends(require_session)
) -> CategoriesResponse:
    try:
        profile = services.profiles.remove_category(name)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Category not found.") from exc
    return CategoriesResponse(
        categories=profile.categories,
        all_categories=category_universe(profile.categories, profile.expenses),
    )


@app.get("/budgets", response_model=list[BudgetEvaluationResponse])
def list_budgets(
    services: AppServices = Depends(require_session),
) -> list[BudgetEvaluationResponse]:
    profile = services.profiles.profile
    totals = totals_by_category(profile.expenses, profile.categories, profile.currency)
    return [
        BudgetEvaluationResponse(
            category=evaluation.category,
            spent=evaluation.spent,
            limit=evaluation.limit,
            percentage=evaluation.percentage,
            remaining=evaluation.remaining,
            overage=evaluation.overage,
            status=evaluation.status,
        )
        for evaluation in evaluate_budgets(totals, profile.budgets, profile.categories)
    ]


@app.put("/budgets/{category}", response_model=list[BudgetEvaluationResponse])
def update_budget(
    category: str,
    payload: BudgetPayload,
    services: AppServices = Depends(require_session),
) -> list[BudgetEvaluationResponse]:
    try:
        services.profiles.set_budget(category, payload.limit)
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return list_budgets(services)


@app.get("/expenses", response_model=list[Expense], response_model_by_alias=False)
def list_expenses(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    last_7_days: bool = Query(False),
    sort_by: str = Query("date"),
    direction: str = Query("desc"),
    services: AppServices = Depends(require_session),
) -> list[Expense]:
    profile = services.profiles.profile
    window = last_days_window(services.today()) if last_7_days else None
    filtered = filter_expenses(profile.expenses, category, search, window)
    try:
        return sort_expenses(filtered, sort_by, direction, profile.currency)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/expenses", response_model=Expense, response_model_by_alias=False)
def create_expense(
    payload: ExpensePayload, services: AppServices = Depends(require_session)
) -> Expense:
    expense_date = payload.date or services.today()
    try:
        return services.profiles.add_expense(
            description=payload.description,
            amount=payload.amount,
            date=expense_date.isoformat(),
            category=payload.category,
            currency=payload.currency,
        )
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.delete("/expenses/{expense_id}")
def delete_expense(expense_id: str, services: AppServices = Depends(require_session)) -> dict:
    try:
        services.profiles.delete_expense(expense_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Expense not found.") from exc
    return {"status": "deleted"}


@app.post("/expenses/import", response_model=ImportResponse)
async def import_expenses(
    file: UploadFile = File(...),
    services: AppServices = Depends(require_session),
) -> ImportResponse:
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="CSV file required.")

    contents = await file.read()
    try:
        decoded = contents.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded.") from exc

    result = parse_transactions_csv(decoded, services.profiles.profile.currency)
    services.profiles.import_expenses(result.rows, source="Sheet")
    return ImportResponse(
        imported_count=result.imported_count,
        message=result.summary_message(),
        issues=result.issues,
    )


@app.get("/expenses/export")
def export_expenses(services: AppServices = Depends(require_session)) -> Response:
    profile = services.profiles.profile
    content = export_transactions_csv(profile.expenses, profile.currency)
    filename = export_filename(services.today())
    services.audit_log.record(AuditAction.DATA_EXPORT, "Exported transactions via Sheet")
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/dashboard/summary", response_model=CashFlowResponse)
def dashboard_summary(services: AppServices = Depends(require_session)) -> CashFlowResponse:
    profile = services.profiles.profile
    summary = summarize_cash_flow(profile.income, profile.expenses, profile.currency)
    return CashFlowResponse(
        currency=profile.currency,
        annual_income=summary.annual_income,
        monthly_gross=summary.monthly_gross,
        monthly_expenses=summary.monthly_expenses,
        monthly_savings=summary.monthly_savings,
        savings_rate=summary.savings_rate,
        expense_ratio=summary.expense_ratio,
        health_label=summary.health.label,
        health_message=summary.health.message,
    )


@app.get("/dashboard/categories", response_model=CategoryBreakdownResponse)
def dashboard_categories(
    window: str = Query("all"),
    month: Optional[str] = Query(None),
    services: AppServices = Depends(require_session),
) -> CategoryBreakdownResponse:
    normalized_window = window.strip().lower()
    if normalized_window not in CATEGORY_WINDOWS:
        raise HTTPException(status_code=400, detail="Invalid window.")

    profile = services.profiles.profile
    start_date = end_date = None
    if normalized_window == "all":
        totals = totals_by_category(profile.expenses, profile.categories, profile.currency)
    else:
        if normalized_window == "7d":
            start_date, end_date = last_days_window(services.today())
        else:
            if not month:
                raise HTTPException(status_code=400, detail="Month required.")
            try:
                start_date, end_date = month_window(month)
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
        totals = totals_in_window(
            profile.expenses, profile.categories, profile.currency, start_date, end_date
        )

    entries = chart_data(totals)
    average = (
        sum((entry.amount for entry in entries), Decimal("0")) / len(entries)
        if entries
        else Decimal("0")
    )
    return CategoryBreakdownResponse(
        window=normalized_window,
        start_date=start_date,
        end_date=end_date,
        categories=[
            CategoryAmount(category=entry.category, amount=entry.amount) for entry in entries
        ],
        average=average,
    )


@app.get("/dashboard/currency-trend", response_model=CurrencyTrendResponse)
def dashboard_currency_trend(
    months: int = Query(6, ge=1, le=24),
    services: AppServices = Depends(require_session),
) -> CurrencyTrendResponse:
    profile = services.profiles.profile
    trend = currency_trend(profile.expenses, profile.currency, services.today(), months)
    currencies = list(trend[0].totals) if trend else []
    return CurrencyTrendResponse(
        currencies=currencies,
        months=[CurrencyTrendBucket(month=bucket.month, totals=bucket.totals) for bucket in trend],
    )


@app.get("/dashboard/category-trends", response_model=list[CategoryTrendResponse])
def dashboard_category_trends(
    services: AppServices = Depends(require_session),
) -> list[CategoryTrendResponse]:
    profile = services.profiles.profile
    today = services.today()
    responses = []
    for category in profile.categories:
        trend = category_trend(profile.expenses, category, profile.currency, today)
        responses.append(
            CategoryTrendResponse(
                category=trend.category,
                points=[TrendPoint(month=month, amount=amount) for month, amount in trend.points],
                total=trend.total,
                average=trend.average,
                direction=trend.direction,
            )
        )
    return responses


@app.get("/goals", response_model=list[GoalResponse])
def list_goals(services: AppServices = Depends(require_session)) -> list[GoalResponse]:
    today = services.today()
    return [to_goal_response(goal, today) for goal in services.profiles.profile.goals]


@app.post("/goals", response_model=GoalResponse)
def create_goal(
    payload: GoalPayload, services: AppServices = Depends(require_session)
) -> GoalResponse:
    try:
        goal = services.profiles.add_goal(
            name=payload.name,
            target_amount=payload.target_amount,
            saved_amount=payload.saved_amount,
            deadline=payload.deadline,
            category=payload.category,
        )
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return to_goal_response(goal, services.today())


@app.delete("/goals/{goal_id}")
def delete_goal(goal_id: str, services: AppServices = Depends(require_session)) -> dict:
    try:
        services.profiles.delete_goal(goal_id)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Goal not found.") from exc
    return {"status": "deleted"}


@app.post("/goals/{goal_id}/contributions", response_model=GoalResponse)
def contribute_to_goal(
    goal_id: str,
    payload: ContributionPayload,
    services: AppServices = Depends(require_session),
) -> GoalResponse:
    try:
        goal = services.profiles.contribute_to_goal(goal_id, payload.amount)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Goal not found.") from exc
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return to_goal_response(goal, services.today())


@app.put("/goals/{goal_id}/saved", response_model=GoalResponse)
def update_goal_saved(
    goal_id: str,
    payload: SavedAmountPayload,
    services: AppServices = Depends(require_session),
) -> GoalResponse:
    try:
        goal = services.profiles.set_goal_saved(goal_id, payload.saved_amount)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Goal not found.") from exc
    except ProfileValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return to_goal_response(goal, services.today())


@app.get("/planning/sip", response_model=SipProjectionResponse)
def planning_sip(services: AppServices = Depends(require_session)) -> SipProjectionResponse:
    profile = services.profiles.profile
    summary = summarize_cash_flow(profile.income, profile.expenses, profile.currency)
    contribution = suggested_contribution(summary.monthly_savings, SIP_CONTRIBUTION_RATIO)
    projection = project_sip(contribution, SIP_ANNUAL_RATE, SIP_YEARS)
    return SipProjectionResponse(
        monthly_savings=max(Decimal("0"), summary.monthly_savings),
        contribution_ratio=SIP_CONTRIBUTION_RATIO,
        monthly_contribution=projection.monthly_contribution,
        annual_rate=projection.annual_rate,
        years=projection.years,
        months=projection.months,
        invested=projection.invested,
        future_value=projection.future_value,
        wealth_gain=projection.wealth_gain,
    )


@app.get("/planning/tax", response_model=TaxEstimateResponse)
def planning_tax(
    salary: Optional[Decimal] = Query(None, ge=0),
    other: Optional[Decimal] = Query(None, ge=0),
    services: AppServices = Depends(require_session),
) -> TaxEstimateResponse:
    profile = services.profiles.profile
    gross = salary if salary is not None else profile.income.gross_annual_salary
    other_income = other if other is not None else profile.income.other_income
    estimate = estimate_tax(gross + other_income)
    return TaxEstimateResponse(
        currency=profile.currency,
        annual_income=estimate.annual_income,
        tax=estimate.tax,
        effective_rate=estimate.effective_rate,
        net_income=estimate.net_income,
        disclaimer=estimate.disclaimer,
    )


@app.post("/advisor/report", response_model=AdviceResponse)
def advisor_report(services: AppServices = Depends(require_session)) -> AdviceResponse:
    try:
        result = services.advisor.analyze(services.profiles.profile)
    except AdvisorBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return AdviceResponse(text=result.text, succeeded=result.succeeded)


@app.get("/advisor/context", response_model=AdvisorContextResponse)
def get_advisor_context(
    services: AppServices = Depends(require_session),
) -> AdvisorContextResponse:
    context = advisor_context(services.profiles.profile)
    return AdvisorContextResponse(
        currency=context.currency,
        currency_name=context.currency_name,
        tax_instruments=context.tax_instruments,
        top_categories=context.top_categories,
        partner_tools=[
            PartnerToolResponse(name=tool.name, description=tool.description, kind=tool.kind)
            for tool in context.partner_tools
        ],
    )


@app.get("/audit-log", response_model=list[AuditLogEntry])
def list_audit_log(services: AppServices = Depends(require_session)) -> list[AuditLogEntry]:
    return services.audit_log.entries()


@app.delete("/audit-log")
def clear_audit_log(services: AppServices = Depends(require_session)) -> dict:
    services.audit_log.clear()
    return {"status": "cleared"}


@app.post("/recovery/reset")
def recovery_reset(services: AppServices = Depends(get_services)) -> dict:
    services.store.clear()
    services.profiles.forget()
    logger.warning("local_data_wiped")
    return {"status": "reset"}
