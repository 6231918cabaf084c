"""
Module: gl_kernel.db.types
Responsibility: Money precision constants and the sanctioned conversion and
    rounding helpers for monetary values.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and engines.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere.  to_decimal() refuses float input outright
      and rejects NaN and infinities.
    - round_money() is the ONLY sanctioned rounding function (ROUND_HALF_UP,
      2 decimal places by default).
    - MONEY_TOLERANCE (0.01) is the single tolerance used for balance,
      tax and allocation comparisons.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Exchange rate: 38 digits total, 18 decimal places
Rate = Annotated[Decimal, Numeric(38, 18)]

# ISO 4217 style currency code
Currency = Annotated[str, String(3)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")
CENT = Decimal("0.01")
MONEY_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | str | None, default: Decimal | None = None) -> Decimal:
    """
    Coerce a value to Decimal without ever passing through float.

    Args:
        value: Decimal, int or numeric string.  None returns `default`.
        default: Value returned for None (ZERO when not given).

    Raises:
        TypeError: If value is a float (or bool).
        ValueError: If a string is not numeric, or the value is NaN or infinite.
    """
    if value is None:
        return ZERO if default is None else default
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(
            f"Monetary values must not be float; got {type(value).__name__} {value!r}"
        )
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a numeric amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
) -> Decimal:
    """Round a monetary value half-up to `decimal_places`."""
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=DEFAULT_ROUNDING)


def within_tolerance(a: Decimal, b: Decimal, tolerance: Decimal = MONEY_TOLERANCE) -> bool:
    """True when |a - b| <= tolerance."""
    return abs(a - b) <= tolerance
