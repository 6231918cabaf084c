"""
AP bill posting adapter tests.

Verifies:
- Bill maps to Dr expense per line / Dr input tax per tax line / Cr AP (total)
- The journal number is BILL-<bill number>
- Same rejection mapping as the invoice adapter
"""

from datetime import date
from decimal import Decimal

import pytest

from gl_services._posting_types import BillLineInput, BillPostingInput, TaxLineInput, TaxType
from gl_services.subledger_ap import (
    BillPostingAdapter,
    calculate_bill_totals,
    generate_bill_description,
    validate_bill_lines,
)


@pytest.fixture
def adapter(validator) -> BillPostingAdapter:
    return BillPostingAdapter(validator)


@pytest.fixture
def make_bill(accounts):
    def _make(lines=None, tax_lines=(), currency="MYR", exchange_rate=None, **overrides):
        if lines is None:
            lines = [
                BillLineInput(
                    line_number=1,
                    description="Stationery",
                    quantity=Decimal("4"),
                    unit_price=Decimal("25.00"),
                    line_amount=Decimal("100.00"),
                    expense_account_id=accounts["expense"],
                ),
                BillLineInput(
                    line_number=2,
                    description="Freight",
                    quantity=Decimal("1"),
                    unit_price=Decimal("40.00"),
                    line_amount=Decimal("40.00"),
                    expense_account_id=accounts["cogs"],
                ),
            ]
        fields = dict(
            tenant_id="tenant-1",
            company_id="company-1",
            bill_id="bill-1",
            bill_number="B-77",
            supplier_id="sup-1",
            supplier_name="Paper Co",
            bill_date=date(2024, 6, 3),
            currency=currency,
            ap_account_id=accounts["ap"],
            lines=lines,
            tax_lines=tax_lines,
            exchange_rate=exchange_rate,
            due_date=date(2024, 7, 3),
        )
        fields.update(overrides)
        return BillPostingInput(**fields)

    return _make


class TestBillJournal:
    def test_bill_lines(self, adapter, make_bill, accounts):
        result = adapter.post_bill(make_bill(), user_id="user-1", user_role="accountant")

        assert result.validated is True
        assert result.total_expense == Decimal("140.00")
        assert result.total_amount == Decimal("140.00")

        journal = result.journal_input
        assert journal.journal_number == "BILL-B-77"
        assert journal.description == "Bill B-77 - Paper Co"

        expense, freight, ap = journal.lines
        assert expense.account_id == accounts["expense"]
        assert expense.debit == Decimal("100.00")
        assert expense.description == "Expense - Stationery"
        assert freight.debit == Decimal("40.00")
        assert ap.account_id == accounts["ap"]
        assert ap.credit == Decimal("140.00")
        assert ap.description == "AP - Paper Co - B-77"
        assert result.coa_warnings == ()

    def test_input_tax_debited(self, adapter, make_bill, accounts):
        tax_lines = [
            TaxLineInput(
                tax_code="SST",
                tax_account_id=accounts["input_tax"],
                tax_amount=Decimal("8.40"),
                tax_type=TaxType.INPUT,
            )
        ]
        result = adapter.post_bill(make_bill(tax_lines=tax_lines), user_id="u", user_role="accountant")

        assert result.validated is True
        assert result.total_tax == Decimal("8.40")
        assert result.total_amount == Decimal("148.40")
        tax = result.journal_input.lines[2]
        assert tax.account_id == accounts["input_tax"]
        assert tax.debit == Decimal("8.40")
        assert tax.description == "SST Input Tax - B-77"
        assert result.journal_input.lines[-1].credit == Decimal("148.40")

    def test_foreign_currency_bill(self, adapter, make_bill):
        result = adapter.post_bill(
            make_bill(currency="SGD", exchange_rate=Decimal("3.5")),
            user_id="u",
            user_role="accountant",
        )
        assert result.validated is True
        assert result.journal_input.lines[-1].credit == Decimal("490.00")
        assert result.total_amount == Decimal("140.00")

    def test_tax_type_parsed_from_payload(self):
        line = TaxLineInput.from_mapping(
            {"taxCode": "GST", "taxAccountId": "x", "taxAmount": "1.00", "taxType": "input"}
        )
        assert line.tax_type is TaxType.INPUT


class TestBillRejections:
    def test_missing_ap_account(self, adapter, make_bill):
        result = adapter.post_bill(make_bill(ap_account_id=""), user_id="u", user_role="accountant")
        assert result.code == "INVALID_AMOUNTS"
        assert result.error == "Missing required fields: bill_id, ap_account_id, or lines"

    def test_non_positive_expense(self, adapter, make_bill, accounts):
        lines = [
            BillLineInput(
                line_number=1,
                description="Credit",
                quantity=Decimal("1"),
                unit_price=Decimal("0"),
                line_amount=Decimal("0"),
                expense_account_id=accounts["expense"],
            )
        ]
        result = adapter.post_bill(make_bill(lines=lines), user_id="u", user_role="accountant")
        assert result.code == "INVALID_AMOUNTS"
        assert result.error == "Bill expense must be positive"

    def test_header_expense_account(self, adapter, make_bill, accounts):
        lines = [
            BillLineInput(
                line_number=1,
                description="Misposted",
                quantity=Decimal("1"),
                unit_price=Decimal("10"),
                line_amount=Decimal("10"),
                expense_account_id=accounts["current_assets"],
            )
        ]
        result = adapter.post_bill(make_bill(lines=lines), user_id="u", user_role="accountant")
        assert result.code == "INVALID_ACCOUNTS"
        assert result.details["header_account_ids"] == [accounts["current_assets"]]

    def test_future_bill_date(self, adapter, make_bill):
        result = adapter.post_bill(
            make_bill(bill_date=date(2024, 7, 1)), user_id="u", user_role="accountant"
        )
        assert result.code == "BUSINESS_RULE_VIOLATION"
        assert result.details["journal_code"] == "BUSINESS_RULE_VIOLATION"
        assert result.details["rule"] == "future_date"


class TestBillHelpers:
    def test_totals_and_validation(self, make_bill):
        bill = make_bill()
        assert calculate_bill_totals(bill.lines).subtotal == Decimal("140.00")
        assert validate_bill_lines(bill.lines).valid

    def test_description(self):
        assert (
            generate_bill_description("B-1", "Paper Co", Decimal("99.999"), "MYR")
            == "Bill B-1 - Paper Co - MYR 100.00"
        )
