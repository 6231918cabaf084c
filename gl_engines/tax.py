"""
Tax Engine - per-line and per-document tax arithmetic.

Pure functions with no I/O; rates are passed in as Decimals (0.06 for 6%).

Rounding policy: half-up to 2 decimals.  Per-line tax is rounded when it
is computed on its own; document totals sum the raw line values and round
only the final sums, never the intermediate terms.

Usage:
    from decimal import Decimal
    from gl_engines.tax import compute_line_tax, totals

    compute_line_tax(Decimal("100.00"), Decimal("0.06"))   # Decimal("6.00")
    totals(lines).total_amount
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from gl_engines.tracer import traced_engine
from gl_kernel.db.types import MONEY_TOLERANCE, ZERO, round_money
from gl_kernel.exceptions import TaxMismatchError
from gl_kernel.logging_config import get_logger

logger = get_logger("engines.tax")


class TaxableLine(Protocol):
    """Any document line with a net amount and an optional tax amount."""

    line_amount: Decimal
    tax_amount: Decimal | None


class TaxAmountLine(Protocol):
    tax_amount: Decimal


@dataclass(frozen=True)
class DocumentTotals:
    """
    Rounded document totals.

    total_amount == subtotal + tax_amount exactly.
    """

    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def compute_line_tax(line_amount: Decimal, tax_rate: Decimal) -> Decimal:
    """Tax for one line, rounded half-up to 2 decimals."""
    return round_money(line_amount * tax_rate)


def validate_line_tax(
    line_amount: Decimal,
    tax_rate: Decimal,
    supplied_tax_amount: Decimal,
) -> Decimal:
    """
    Check a supplied tax amount against line_amount * tax_rate.

    Returns:
        The computed (rounded) tax amount.

    Raises:
        TaxMismatchError: If |line_amount * tax_rate - supplied| > 0.01.
    """
    expected = line_amount * tax_rate
    if abs(expected - supplied_tax_amount) > MONEY_TOLERANCE:
        logger.debug(
            "tax_mismatch",
            extra={
                "line_amount": line_amount,
                "tax_rate": tax_rate,
                "expected": expected,
                "supplied": supplied_tax_amount,
            },
        )
        raise TaxMismatchError(line_amount, tax_rate, round_money(expected), supplied_tax_amount)
    return round_money(expected)


@traced_engine("tax.totals", "1.0", fingerprint_fields=("lines", "tax_lines"))
def totals(
    lines: Iterable[TaxableLine],
    tax_lines: Iterable[TaxAmountLine] = (),
) -> DocumentTotals:
    """
    Reduce document lines to rounded totals.

    Args:
        lines: Lines carrying ``line_amount`` and optional ``tax_amount``.
        tax_lines: Extra document-level tax lines (``tax_amount`` only).
    """
    raw_subtotal = ZERO
    raw_tax = ZERO
    for line in lines:
        raw_subtotal += line.line_amount
        raw_tax += line.tax_amount or ZERO
    for tax_line in tax_lines:
        raw_tax += tax_line.tax_amount

    subtotal = round_money(raw_subtotal)
    tax_amount = round_money(raw_tax)
    return DocumentTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=subtotal + tax_amount,
    )
