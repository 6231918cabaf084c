"""
FxPolicy -- Base-currency conversion policy.

Responsibility:
    Decides whether a transaction needs an exchange rate to reach the base
    currency, validates a supplied rate, and converts amounts.  All GL
    posting happens in base currency; transaction-currency amounts are
    informational only.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - requires_fx_rate(X, X) is False and requires_fx_rate(X, Y) is True
      for X != Y (codes compared case-insensitively).
    - A required rate must be present, finite and strictly positive.
    - convert() is exact Decimal multiplication; rounding is left to the
      caller so that converted debits and credits stay balanced.

Failure modes:
    - FxRateRequiredError when conversion is required and no rate is given.
    - InvalidExchangeRateError when a required rate is zero, negative or
      not a finite number.
"""

from decimal import Decimal

from gl_kernel.exceptions import FxRateRequiredError, InvalidExchangeRateError

ONE = Decimal("1")


def normalize_currency(code: str | None) -> str:
    return (code or "").strip().upper()


def is_currency_code(code: str | None) -> bool:
    """True for a 3-letter alphabetic code."""
    normalized = normalize_currency(code)
    return len(normalized) == 3 and normalized.isascii() and normalized.isalpha()


class FxPolicy:
    """
    Stateless FX policy.

    ``base_currency`` is optional so one instance can serve several
    companies; methods take the base explicitly when it differs.
    """

    def __init__(self, base_currency: str | None = None):
        self.base_currency = normalize_currency(base_currency) or None

    def requires_fx_rate(self, base_currency: str, transaction_currency: str) -> bool:
        return normalize_currency(base_currency) != normalize_currency(transaction_currency)

    def validate_rate(
        self,
        base_currency: str,
        transaction_currency: str,
        supplied_rate: Decimal | None,
    ) -> Decimal:
        """
        Return the effective rate for converting into base currency.

        Same currency -> 1 (any supplied rate is ignored).

        Raises:
            FxRateRequiredError: Conversion required and rate absent.
            InvalidExchangeRateError: Conversion required and rate <= 0 or
                not finite.
        """
        if not self.requires_fx_rate(base_currency, transaction_currency):
            return ONE
        base = normalize_currency(base_currency)
        tx = normalize_currency(transaction_currency)
        if supplied_rate is None:
            raise FxRateRequiredError(tx, base)
        if not supplied_rate.is_finite() or supplied_rate <= 0:
            raise InvalidExchangeRateError(tx, base, supplied_rate)
        return supplied_rate

    @staticmethod
    def convert(amount: Decimal, rate: Decimal) -> Decimal:
        return amount * rate
