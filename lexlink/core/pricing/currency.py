"""Conversion between canonical amounts and display amounts.

Canonical amounts are integer minor units (bani) of the base currency (RON).
Display amounts are expressed in full units of the requester's currency using a
static exchange-rate table. Every currency is shown with enough decimal places
that one display step is worth at most one ban, so a display -> canonical round
trip lands within one minor unit of the original amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from lexlink.common.exceptions import UnknownCurrencyError, ValidationError
from lexlink.common.logging import get_logger
from lexlink.config import settings

logger = get_logger("pricing.currency")

MINOR_UNITS_PER_UNIT = 100

# Amounts are stored as signed 64-bit integers
MAX_AMOUNT_MINOR = 2**63 - 1


@dataclass(frozen=True)
class CurrencyConfig:
    code: str
    symbol: str
    name: str
    exchange_rate: Decimal  # units of this currency per 1 RON
    decimal_places: int
    is_fallback: bool = False


CURRENCIES: dict[str, CurrencyConfig] = {
    "RON": CurrencyConfig("RON", "RON ", "Romanian Leu", Decimal("1"), 2),
    "EUR": CurrencyConfig("EUR", "€", "Euro", Decimal("0.20"), 3),
    "USD": CurrencyConfig("USD", "$", "US Dollar", Decimal("0.22"), 3),
}

COUNTRY_CURRENCIES: dict[str, str] = {
    "RO": "RON",
    "DE": "EUR",
    "US": "USD",
}


def get_currency(code: str | None, strict: bool = False) -> CurrencyConfig:
    """Look up a currency by ISO currency code or ISO country code.

    Unknown codes fall back to the base currency with a warning, unless ``strict``.
    """
    key = (code or "").strip().upper()
    key = COUNTRY_CURRENCIES.get(key, key)
    currency = CURRENCIES.get(key)
    if currency is not None:
        return currency

    if strict:
        raise UnknownCurrencyError(code or "")

    base = CURRENCIES[settings.BASE_CURRENCY]
    logger.warning("Unknown currency %r, falling back to %s", code, base.code)
    return CurrencyConfig(
        code=base.code,
        symbol=base.symbol,
        name=base.name,
        exchange_rate=base.exchange_rate,
        decimal_places=base.decimal_places,
        is_fallback=True,
    )


def _quantize(value: Decimal, places: int) -> Decimal:
    # ROUND_HALF_UP on Decimal rounds half away from zero
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def _check_range(amount_minor) -> None:
    if abs(amount_minor) > MAX_AMOUNT_MINOR:
        raise ValidationError("Amount is too large")


def _to_target(amount_minor: int, currency: CurrencyConfig) -> Decimal:
    _check_range(amount_minor)
    units = Decimal(int(amount_minor)) / MINOR_UNITS_PER_UNIT
    return _quantize(units * currency.exchange_rate, currency.decimal_places)


def to_display_value(amount_minor: int, currency_code: str | None = None) -> str:
    """Format without the symbol, e.g. for prefilled input fields."""
    currency = get_currency(currency_code or settings.DEFAULT_DISPLAY_CURRENCY)
    return f"{_to_target(amount_minor, currency):.{currency.decimal_places}f}"


def to_display(amount_minor: int | None, currency_code: str | None = None) -> str:
    if amount_minor is None:
        return "N/A"
    currency = get_currency(currency_code or settings.DEFAULT_DISPLAY_CURRENCY)
    value = _to_target(amount_minor, currency)
    sign = "-" if value < 0 else ""
    return f"{sign}{currency.symbol}{abs(value):,.{currency.decimal_places}f}"


def _parse_amount(display_amount: str | int | float | Decimal, currency: CurrencyConfig) -> Decimal:
    if isinstance(display_amount, bool):
        raise ValidationError(f"Invalid amount: {display_amount!r}")
    if isinstance(display_amount, str):
        cleaned = display_amount.strip()
        for token in (currency.symbol.strip(), currency.code, ","):
            cleaned = cleaned.replace(token, "")
        cleaned = cleaned.strip()
    else:
        cleaned = str(display_amount)
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {display_amount!r}")
    if not value.is_finite():
        raise ValidationError(f"Invalid amount: {display_amount!r}")
    if value < 0:
        raise ValidationError("Amount must not be negative")
    return value


def to_canonical(display_amount: str | int | float | Decimal, currency_code: str | None = None) -> int:
    """Parse a full-unit display amount into canonical minor units of the base currency."""
    currency = get_currency(currency_code or settings.DEFAULT_DISPLAY_CURRENCY)
    value = _parse_amount(display_amount, currency)
    try:
        minor = value / currency.exchange_rate * MINOR_UNITS_PER_UNIT
    except ArithmeticError:
        raise ValidationError("Amount is too large")
    _check_range(minor)
    return int(_quantize(minor, 0))


def platform_fee(total_amount: int, rate: float | None = None) -> int:
    if total_amount < 0:
        raise ValidationError("total_amount must not be negative")
    _check_range(total_amount)
    fee_rate = Decimal(str(settings.PLATFORM_FEE_RATE if rate is None else rate))
    if not Decimal(0) <= fee_rate <= Decimal(1):
        raise ValidationError("Platform fee rate must be between 0 and 1")
    return int(_quantize(Decimal(total_amount) * fee_rate, 0))

