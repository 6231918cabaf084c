"""
FX policy tests.

Verifies:
- requires_fx_rate is False for equal codes and True otherwise
- A required rate must be present and strictly positive
- Same-currency conversion uses rate 1 regardless of the supplied rate
- convert() is exact Decimal multiplication
"""

from decimal import Decimal

import pytest

from gl_kernel.domain.fx_policy import FxPolicy, is_currency_code, normalize_currency
from gl_kernel.exceptions import FxRateRequiredError, InvalidExchangeRateError


@pytest.fixture
def fx() -> FxPolicy:
    return FxPolicy("MYR")


class TestRequiresRate:
    def test_same_currency(self, fx):
        assert fx.requires_fx_rate("MYR", "MYR") is False

    def test_case_insensitive(self, fx):
        assert fx.requires_fx_rate("MYR", "myr") is False

    def test_different_currency(self, fx):
        assert fx.requires_fx_rate("MYR", "USD") is True


class TestValidateRate:
    def test_same_currency_returns_one(self, fx):
        assert fx.validate_rate("MYR", "MYR", None) == Decimal("1")

    def test_same_currency_ignores_supplied_rate(self, fx):
        assert fx.validate_rate("MYR", "MYR", Decimal("-3")) == Decimal("1")

    def test_missing_rate(self, fx):
        with pytest.raises(FxRateRequiredError) as exc_info:
            fx.validate_rate("MYR", "USD", None)
        assert exc_info.value.code == "INVALID_CURRENCY"
        assert "USD to MYR" in str(exc_info.value)

    @pytest.mark.parametrize("rate", [Decimal("0"), Decimal("-4.2")])
    def test_non_positive_rate(self, fx, rate):
        with pytest.raises(InvalidExchangeRateError) as exc_info:
            fx.validate_rate("MYR", "usd", rate)
        assert exc_info.value.code == "INVALID_CURRENCY"
        assert exc_info.value.transaction_currency == "USD"

    @pytest.mark.parametrize("rate", [Decimal("NaN"), Decimal("Infinity"), Decimal("-Infinity")])
    def test_non_finite_rate(self, fx, rate):
        with pytest.raises(InvalidExchangeRateError) as exc_info:
            fx.validate_rate("MYR", "USD", rate)
        assert exc_info.value.code == "INVALID_CURRENCY"

    def test_positive_rate_returned(self, fx):
        assert fx.validate_rate("MYR", "USD", Decimal("4.2")) == Decimal("4.2")


class TestConvert:
    def test_exact_multiplication(self):
        assert FxPolicy.convert(Decimal("1000.00"), Decimal("4.2")) == Decimal("4200.00")

    def test_no_rounding(self):
        assert FxPolicy.convert(Decimal("0.01"), Decimal("0.3333")) == Decimal("0.003333")


class TestCurrencyCodes:
    @pytest.mark.parametrize("code", ["MYR", "usd", " eur "])
    def test_valid(self, code):
        assert is_currency_code(code)

    @pytest.mark.parametrize("code", [None, "", "US", "USDX", "U$D", "123"])
    def test_invalid(self, code):
        assert not is_currency_code(code)

    def test_normalize(self):
        assert normalize_currency(" usd ") == "USD"
        assert normalize_currency(None) == ""

    def test_base_currency_normalized(self):
        assert FxPolicy("myr").base_currency == "MYR"
        assert FxPolicy().base_currency is None
