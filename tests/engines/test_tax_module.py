"""
Tax engine tests.

Verifies:
- Per-line tax is line_amount * rate rounded half-up to cents
- Supplied tax must be within 0.01 of the computed tax
- Document totals round only the final sums, and total = subtotal + tax
- Each totals() call emits a GL_ENGINE_TRACE record
"""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from gl_engines.tax import DocumentTotals, compute_line_tax, totals, validate_line_tax
from gl_kernel.exceptions import TaxMismatchError


@dataclass(frozen=True)
class _Line:
    line_amount: Decimal
    tax_amount: Decimal | None = None


@dataclass(frozen=True)
class _TaxLine:
    tax_amount: Decimal


class TestComputeLineTax:
    def test_six_percent(self):
        assert compute_line_tax(Decimal("100.00"), Decimal("0.06")) == Decimal("6.00")

    def test_rounds_half_up(self):
        # 10.25 * 0.06 = 0.615
        assert compute_line_tax(Decimal("10.25"), Decimal("0.06")) == Decimal("0.62")

    def test_zero_rate(self):
        assert compute_line_tax(Decimal("250.00"), Decimal("0")) == Decimal("0.00")


class TestValidateLineTax:
    def test_exact_match(self):
        assert validate_line_tax(Decimal("100.00"), Decimal("0.06"), Decimal("6.00")) == Decimal(
            "6.00"
        )

    def test_within_tolerance(self):
        assert validate_line_tax(Decimal("10.25"), Decimal("0.06"), Decimal("0.61")) == Decimal(
            "0.62"
        )

    def test_mismatch(self):
        with pytest.raises(TaxMismatchError) as exc_info:
            validate_line_tax(Decimal("100.00"), Decimal("0.06"), Decimal("6.50"))
        exc = exc_info.value
        assert exc.code == "TAX_MISMATCH"
        assert exc.expected == Decimal("6.00")
        assert exc.supplied == Decimal("6.50")


class TestTotals:
    def test_lines_only(self):
        result = totals([_Line(Decimal("1000")), _Line(Decimal("500"))])
        assert result == DocumentTotals(
            subtotal=Decimal("1500.00"),
            tax_amount=Decimal("0.00"),
            total_amount=Decimal("1500.00"),
        )

    def test_line_tax_and_tax_lines_added(self):
        result = totals(
            [_Line(Decimal("100.00"), Decimal("6.00")), _Line(Decimal("50.00"))],
            [_TaxLine(Decimal("3.00"))],
        )
        assert result.subtotal == Decimal("150.00")
        assert result.tax_amount == Decimal("9.00")
        assert result.total_amount == Decimal("159.00")

    def test_rounds_final_sums_only(self):
        # Three lines of 0.333 sum to 0.999 -> 1.00; per-line rounding would give 0.99.
        result = totals([_Line(Decimal("0.333"))] * 3)
        assert result.subtotal == Decimal("1.00")

    def test_total_is_exact_sum_of_rounded_parts(self):
        result = totals(
            [_Line(Decimal("10.005"), Decimal("0.6003"))],
        )
        assert result.total_amount == result.subtotal + result.tax_amount

    def test_emits_engine_trace(self, captured_logs):
        totals([_Line(Decimal("1.00"))])
        traces = [r for r in captured_logs() if r["message"] == "GL_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "tax.totals"
        assert len(traces[0]["input_fingerprint"]) == 16

    def test_fingerprint_is_deterministic(self, captured_logs):
        lines = [_Line(Decimal("12.34"), Decimal("0.74"))]
        totals(lines)
        totals(list(lines))
        traces = [r for r in captured_logs() if r["message"] == "GL_ENGINE_TRACE"]
        assert traces[0]["input_fingerprint"] == traces[1]["input_fingerprint"]
