from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

# Base units (USD) per one unit of each currency.
DEFAULT_RATES: dict[str, Decimal] = {
    "USD": Decimal("1"),
    "EUR": Decimal("1.08"),
    "GBP": Decimal("1.27"),
    "INR": Decimal("0.012"),
    "JPY": Decimal("0.0067"),
    "CAD": Decimal("0.74"),
    "AUD": Decimal("0.66"),
    "CNY": Decimal("0.14"),
    "SGD": Decimal("0.74"),
    "CHF": Decimal("1.13"),
    "HKD": Decimal("0.13"),
    "NZD": Decimal("0.61"),
    "SEK": Decimal("0.096"),
    "KRW": Decimal("0.00075"),
    "MXN": Decimal("0.059"),
    "BRL": Decimal("0.20"),
    "RUB": Decimal("0.011"),
    "ZAR": Decimal("0.053"),
    "TRY": Decimal("0.031"),
    "AED": Decimal("0.27"),
    "SAR": Decimal("0.27"),
}

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
    "CNY": "¥",
    "SGD": "S$",
    "CHF": "Fr",
    "HKD": "HK$",
    "NZD": "NZ$",
    "SEK": "kr",
    "KRW": "₩",
    "MXN": "$",
    "BRL": "R$",
    "RUB": "₽",
    "ZAR": "R",
    "TRY": "₺",
    "AED": "dh",
    "SAR": "SR",
}

CURRENCY_NAMES: dict[str, str] = {
    "USD": "US Dollar",
    "EUR": "Euro",
    "GBP": "British Pound",
    "INR": "Indian Rupee",
    "JPY": "Japanese Yen",
    "CAD": "Canadian Dollar",
    "AUD": "Australian Dollar",
    "CNY": "Chinese Yuan",
    "SGD": "Singapore Dollar",
    "CHF": "Swiss Franc",
    "HKD": "Hong Kong Dollar",
    "NZD": "New Zealand Dollar",
    "SEK": "Swedish Krona",
    "KRW": "South Korean Won",
    "MXN": "Mexican Peso",
    "BRL": "Brazilian Real",
    "RUB": "Russian Ruble",
    "ZAR": "South African Rand",
    "TRY": "Turkish Lira",
    "AED": "UAE Dirham",
    "SAR": "Saudi Riyal",
}

UNKNOWN_CURRENCY_RATE = Decimal("1")
CENTS = Decimal("0.01")


class UnsupportedCurrencyError(ValueError):
    """Raised by a strict rate provider for codes missing from its table."""


@dataclass(frozen=True)
class StaticRateProvider:
    """Deterministic, in-memory FX rates.

    Rates are expressed as base units (USD) per one unit of the currency.
    Unknown codes are treated as already being in the base unit unless
    ``strict`` is set, so stored data tagged with an unlisted code still
    renders.
    """

    rates: Mapping[str, Decimal] = None
    strict: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "rates", dict(self.rates or DEFAULT_RATES))

    def get_rate(self, currency: str) -> Decimal:
        code = _clean_code(currency)
        try:
            return self.rates[code]
        except KeyError as exc:
            if self.strict:
                raise UnsupportedCurrencyError(f"Unsupported currency: {code}") from exc
            return UNKNOWN_CURRENCY_RATE


DEFAULT_PROVIDER = StaticRateProvider()


def convert_amount(
    amount: Decimal | int | float | str,
    source_currency: str,
    target_currency: str,
    rate_provider: StaticRateProvider | None = None,
) -> Decimal:
    """Express an amount in another currency via the base unit.

    No rounding happens here; formatting is a display concern.
    """
    provider = rate_provider or DEFAULT_PROVIDER
    coerced_amount = _coerce_amount(amount)
    source = _clean_code(source_currency)
    target = _clean_code(target_currency)

    if source == target:
        return coerced_amount

    source_rate = provider.get_rate(source)
    target_rate = provider.get_rate(target)
    return coerced_amount * source_rate / target_rate


def normalize_currency(value: str) -> str:
    normalized = value.strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        raise ValueError("Currency must be a 3-letter ISO 4217 code.")
    return normalized


def currency_symbol(code: str) -> str:
    return CURRENCY_SYMBOLS.get(_clean_code(code), "$")


def currency_name(code: str) -> str:
    cleaned = _clean_code(code)
    return CURRENCY_NAMES.get(cleaned, cleaned)


def format_money(amount: Decimal | int | float | str, currency: str) -> str:
    rounded = _coerce_amount(amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{currency_symbol(currency)}{abs(rounded):,.2f}"


def _clean_code(value: str) -> str:
    return (value or "").strip().upper()


def _coerce_amount(amount: Decimal | int | float | str) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))
