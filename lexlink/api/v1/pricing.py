from decimal import Decimal

from fastapi import APIRouter, Query
from pydantic import BaseModel

from lexlink.core.pricing.currency import (
    CURRENCIES,
    MAX_AMOUNT_MINOR,
    get_currency,
    to_canonical,
    to_display,
    to_display_value,
)

router = APIRouter(prefix="/pricing", tags=["Pricing"])


# ---------- Schemas ----------


class QuoteResponse(BaseModel):
    amount: int
    currency: str
    display: str
    value: str
    is_fallback: bool


class CanonicalRequest(BaseModel):
    amount: str | Decimal
    currency: str


class CanonicalResponse(BaseModel):
    amount: int
    currency: str
    is_fallback: bool


class CurrencyResponse(BaseModel):
    code: str
    symbol: str
    name: str
    exchange_rate: Decimal
    decimal_places: int


# ---------- Endpoints ----------


@router.get("/quote", response_model=QuoteResponse)
async def quote_amount(
    amount: int = Query(..., ge=0, le=MAX_AMOUNT_MINOR, description="Canonical amount in minor units"),
    currency: str = Query("RON", description="Display currency or country code"),
):
    config = get_currency(currency)
    return QuoteResponse(
        amount=amount,
        currency=config.code,
        display=to_display(amount, config.code),
        value=to_display_value(amount, config.code),
        is_fallback=config.is_fallback,
    )


@router.post("/canonical", response_model=CanonicalResponse)
async def canonical_amount(body: CanonicalRequest):
    config = get_currency(body.currency)
    return CanonicalResponse(
        amount=to_canonical(body.amount, config.code),
        currency=config.code,
        is_fallback=config.is_fallback,
    )


@router.get("/currencies", response_model=list[CurrencyResponse])
async def list_currencies():
    return [
        CurrencyResponse(
            code=c.code,
            symbol=c.symbol.strip(),
            name=c.name,
            exchange_rate=c.exchange_rate,
            decimal_places=c.decimal_places,
        )
        for c in CURRENCIES.values()
    ]
