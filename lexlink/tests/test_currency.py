from decimal import Decimal
from unittest.mock import patch

import pytest

from lexlink.common.exceptions import UnknownCurrencyError, ValidationError
from lexlink.core.pricing import currency
from lexlink.core.pricing.currency import (
    get_currency,
    platform_fee,
    to_canonical,
    to_display,
    to_display_value,
)


def test_display_in_base_currency():
    assert to_display(150000, "RON") == "RON 1,500.00"


def test_display_in_euro_and_dollar():
    assert to_display(15000, "EUR") == "€30.000"
    assert to_display(15000, "USD") == "$33.000"


def test_display_of_missing_amount():
    assert to_display(None, "EUR") == "N/A"


def test_display_value_has_no_symbol():
    assert to_display_value(15000, "EUR") == "30.000"


def test_country_code_resolves_currency():
    assert get_currency("DE").code == "EUR"
    assert get_currency("us").code == "USD"
    assert to_display(15000, "RO") == "RON 150.00"


def test_unknown_currency_falls_back_with_warning():
    with patch.object(currency.logger, "warning") as warning:
        result = get_currency("XYZ")

    assert result.code == "RON"
    assert result.is_fallback is True
    warning.assert_called_once()
    assert to_display(1000, "XYZ") == "RON 10.00"


def test_unknown_currency_strict_raises():
    with pytest.raises(UnknownCurrencyError) as exc_info:
        get_currency("XYZ", strict=True)
    assert exc_info.value.status_code == 400


def test_to_canonical_parses_display_strings():
    assert to_canonical("€30.00", "EUR") == 15000
    assert to_canonical("$33", "USD") == 15000
    assert to_canonical("RON 1,500.00", "RON") == 150000
    assert to_canonical(Decimal("12.5"), "RON") == 1250


def test_to_canonical_rounds_half_away_from_zero():
    assert to_canonical("0.005", "RON") == 1
    assert to_canonical("0.004", "RON") == 0


@pytest.mark.parametrize("bad", ["abc", "", "1.2.3", "NaN", "-5", True])
def test_to_canonical_rejects_malformed_input(bad):
    with pytest.raises(ValidationError):
        to_canonical(bad, "RON")


@pytest.mark.parametrize("code", ["RON", "EUR", "USD"])
def test_round_trip_stays_within_one_minor_unit(code):
    amounts = list(range(1000)) + [15000, 123457, 10_000_001, 987_654_321]
    worst = max(abs(to_canonical(to_display(amount, code), code) - amount) for amount in amounts)
    assert worst <= 1


def test_display_precision_per_currency():
    assert get_currency("RON").decimal_places == 2
    assert to_display(1, "EUR") == "€0.002"
    assert to_display(1, "USD") == "$0.002"


@pytest.mark.parametrize("huge", ["1e30", "1e999999999", Decimal("9" * 40)])
def test_to_canonical_rejects_amounts_beyond_storage(huge):
    with pytest.raises(ValidationError):
        to_canonical(huge, "RON")


def test_to_display_rejects_amounts_beyond_storage():
    with pytest.raises(ValidationError):
        to_display(10**40, "EUR")
    assert to_display(currency.MAX_AMOUNT_MINOR, "RON").startswith("RON 92,233,720,368,547,758")


def test_platform_fee_is_ten_percent_rounded():
    assert platform_fee(15000) == 1500
    assert platform_fee(15) == 2
    assert platform_fee(14) == 1
    assert platform_fee(0) == 0


def test_platform_fee_rejects_negative_amount():
    with pytest.raises(ValidationError):
        platform_fee(-1)


def test_platform_fee_rejects_amount_beyond_storage():
    with pytest.raises(ValidationError):
        platform_fee(2**63)
