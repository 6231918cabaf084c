"""
Document line arithmetic checks shared by the sub-ledger adapters.

Each line must satisfy:
    line_amount == quantity * unit_price        (within 0.01)
    tax_amount  == line_amount * tax_rate       (within 0.01, when a rate > 0 is given)
    quantity > 0, unit_price >= 0, line_amount >= 0

All problems are collected; nothing short-circuits.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from gl_engines.tax import validate_line_tax
from gl_engines.tracer import traced_engine
from gl_kernel.db.types import MONEY_TOLERANCE, ZERO
from gl_kernel.exceptions import TaxMismatchError


class PricedLine(Protocol):
    line_number: int
    quantity: Decimal
    unit_price: Decimal
    line_amount: Decimal
    tax_rate: Decimal | None
    tax_amount: Decimal | None


@dataclass(frozen=True)
class LineValidation:
    valid: bool
    errors: tuple[str, ...] = ()


@traced_engine("document_lines.validate", "1.0", fingerprint_fields=("lines",))
def validate_document_lines(lines: Iterable[PricedLine]) -> LineValidation:
    errors: list[str] = []
    for line in lines:
        n = line.line_number

        expected_amount = line.quantity * line.unit_price
        if abs(expected_amount - line.line_amount) > MONEY_TOLERANCE:
            errors.append(
                f"Line {n}: Line amount {line.line_amount} does not match "
                f"quantity × unit price {expected_amount}"
            )

        if line.tax_rate is not None and line.tax_rate > 0:
            try:
                validate_line_tax(line.line_amount, line.tax_rate, line.tax_amount or ZERO)
            except TaxMismatchError as exc:
                errors.append(
                    f"Line {n}: Tax amount {exc.supplied} does not match "
                    f"line amount × tax rate {line.line_amount * line.tax_rate}"
                )

        if line.quantity <= 0:
            errors.append(f"Line {n}: Quantity must be positive")
        if line.unit_price < 0:
            errors.append(f"Line {n}: Unit price cannot be negative")
        if line.line_amount < 0:
            errors.append(f"Line {n}: Line amount cannot be negative")

    return LineValidation(valid=not errors, errors=tuple(errors))
