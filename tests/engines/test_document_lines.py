"""
Document line arithmetic tests.

Verifies:
- line_amount must equal quantity * unit_price within 0.01
- tax_amount must equal line_amount * tax_rate within 0.01 when a rate is set
- Quantity, unit price and line amount sign rules
- Every problem is reported; nothing short-circuits
"""

from decimal import Decimal

from gl_engines.document_lines import validate_document_lines
from gl_services._posting_types import BillLineInput, InvoiceLineInput


def _invoice_line(n=1, quantity="2", unit_price="50.00", line_amount="100.00", **kwargs):
    return InvoiceLineInput(
        line_number=n,
        description=f"Item {n}",
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
        line_amount=Decimal(line_amount),
        revenue_account_id="rev",
        **kwargs,
    )


class TestValidLines:
    def test_simple_line(self):
        result = validate_document_lines([_invoice_line()])
        assert result.valid
        assert result.errors == ()

    def test_taxed_line(self):
        line = _invoice_line(tax_code="SST", tax_rate=Decimal("0.06"), tax_amount=Decimal("6.00"))
        assert validate_document_lines([line]).valid

    def test_rounding_within_tolerance(self):
        line = _invoice_line(quantity="3", unit_price="33.333", line_amount="100.00")
        assert validate_document_lines([line]).valid

    def test_zero_rate_ignores_tax_amount(self):
        line = _invoice_line(tax_rate=Decimal("0"), tax_amount=Decimal("99"))
        assert validate_document_lines([line]).valid

    def test_bill_lines_accepted(self):
        line = BillLineInput(
            line_number=1,
            description="Paper",
            quantity=Decimal("10"),
            unit_price=Decimal("2.50"),
            line_amount=Decimal("25.00"),
            expense_account_id="exp",
        )
        assert validate_document_lines([line]).valid


class TestInvalidLines:
    def test_amount_mismatch(self):
        result = validate_document_lines([_invoice_line(line_amount="90.00")])
        assert not result.valid
        assert result.errors[0].startswith("Line 1: Line amount 90.00 does not match")

    def test_tax_mismatch(self):
        line = _invoice_line(tax_rate=Decimal("0.06"), tax_amount=Decimal("7.00"))
        result = validate_document_lines([line])
        assert not result.valid
        assert "Line 1: Tax amount 7.00 does not match" in result.errors[0]

    def test_missing_tax_amount_with_rate(self):
        result = validate_document_lines([_invoice_line(tax_rate=Decimal("0.06"))])
        assert not result.valid

    def test_non_positive_quantity(self):
        result = validate_document_lines(
            [_invoice_line(quantity="0", unit_price="50.00", line_amount="0")]
        )
        assert "Line 1: Quantity must be positive" in result.errors

    def test_negative_price_and_amount(self):
        result = validate_document_lines(
            [_invoice_line(quantity="1", unit_price="-5.00", line_amount="-5.00")]
        )
        assert "Line 1: Unit price cannot be negative" in result.errors
        assert "Line 1: Line amount cannot be negative" in result.errors

    def test_all_errors_collected(self):
        result = validate_document_lines(
            [
                _invoice_line(1, line_amount="1.00"),
                _invoice_line(2, quantity="-1", unit_price="10", line_amount="-10"),
            ]
        )
        assert not result.valid
        assert any(e.startswith("Line 1:") for e in result.errors)
        assert sum(e.startswith("Line 2:") for e in result.errors) == 2
