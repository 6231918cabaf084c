"""
gl_services.subledger_ap -- AP bill to GL journal adapter.

Responsibility:
    Map a supplier bill onto a base-currency journal and validate it:

        Dr  Expense             one per bill line
        Dr  Input tax           one per declared tax line
            Cr  Accounts Payable    total (lines + line tax + tax lines)

    The journal number is ``BILL-<bill number>``.  Invoices use the bare
    number; the two adapters intentionally differ here.

Architecture position:
    Services layer; mirror of ``gl_services.subledger_ar``.

Failure modes:
    Same codes as the AR adapter (INVALID_AMOUNTS, INVALID_CURRENCY,
    INVALID_ACCOUNTS, BUSINESS_RULE_VIOLATION).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from gl_engines.document_lines import LineValidation, validate_document_lines
from gl_engines.tax import DocumentTotals, totals
from gl_kernel.db.types import ZERO, round_money
from gl_kernel.domain.dtos import JournalLine
from gl_kernel.exceptions import GLKernelError, InvalidDocumentAmountsError, error_details
from gl_kernel.logging_config import LogContext, get_logger
from gl_services._posting_helpers import DocumentPostingAdapter, document_rejection
from gl_services._posting_types import (
    BillLineInput,
    BillPostingAccepted,
    BillPostingInput,
    BillPostingResult,
    DocumentPostingRejected,
)

logger = get_logger("services.subledger.ap")

BILL_JOURNAL_PREFIX = "BILL-"


class BillPostingAdapter(DocumentPostingAdapter):
    """Bill -> validated journal.  Never raises for business failures."""

    def post_bill(
        self, bill: BillPostingInput, user_id: str, user_role: str
    ) -> BillPostingResult:
        with LogContext.bind(
            tenant_id=bill.tenant_id or None,
            company_id=bill.company_id or None,
            actor_id=user_id or None,
            journal_number=f"{BILL_JOURNAL_PREFIX}{bill.bill_number}",
        ):
            try:
                result = self._post(bill, user_id, user_role)
            except GLKernelError as exc:
                result = DocumentPostingRejected(
                    code=exc.code, error=str(exc), details=error_details(exc)
                )

            if result.validated:
                logger.info(
                    "bill_posting_validated",
                    extra={
                        "bill_id": bill.bill_id,
                        "total_amount": result.total_amount,
                        "currency": bill.currency,
                        "requires_approval": result.requires_approval,
                    },
                )
            else:
                logger.warning(
                    "bill_posting_rejected",
                    extra={"bill_id": bill.bill_id, "code": result.code, "error": result.error},
                )
            return result

    def _post(self, bill: BillPostingInput, user_id: str, user_role: str) -> BillPostingResult:
        if not bill.bill_id or not bill.ap_account_id or not bill.lines:
            raise InvalidDocumentAmountsError(
                "Missing required fields: bill_id, ap_account_id, or lines"
            )

        doc_totals = calculate_bill_totals(bill.lines, bill.tax_lines)
        if doc_totals.subtotal <= 0:
            raise InvalidDocumentAmountsError(
                "Bill expense must be positive", total_expense=doc_totals.subtotal
            )
        if doc_totals.total_amount <= 0:
            raise InvalidDocumentAmountsError(
                "Bill total amount must be positive", total_amount=doc_totals.total_amount
            )

        rate = self._document_rate(bill.currency, bill.exchange_rate)
        number = bill.bill_number

        lines = [
            JournalLine(
                account_id=line.expense_account_id,
                debit=self._convert(line.line_amount, rate),
                description=f"Expense - {line.description}",
                reference=number,
            )
            for line in bill.lines
        ]
        lines.extend(
            JournalLine(
                account_id=tax_line.tax_account_id,
                debit=self._convert(tax_line.tax_amount, rate),
                description=f"{tax_line.tax_code} Input Tax - {number}",
                reference=number,
            )
            for tax_line in bill.tax_lines
        )
        lines.append(
            JournalLine(
                account_id=bill.ap_account_id,
                credit=self._convert(doc_totals.total_amount, rate),
                description=f"AP - {bill.supplier_name} - {number}",
                reference=number,
            )
        )

        journal_input = self._journal(
            journal_number=f"{BILL_JOURNAL_PREFIX}{number}",
            journal_date=bill.bill_date,
            lines=lines,
            context=self._context(bill.tenant_id, bill.company_id, user_id, user_role),
            description=bill.description or f"Bill {number} - {bill.supplier_name}",
        )

        checked = self._validator.validate_journal(journal_input)
        if not checked.validated:
            return document_rejection(checked)

        return BillPostingAccepted(
            journal_input=journal_input,
            total_expense=doc_totals.subtotal,
            total_tax=doc_totals.tax_amount,
            total_amount=doc_totals.total_amount,
            requires_approval=checked.requires_approval,
            approver_roles=checked.approver_roles,
            coa_warnings=checked.coa_warnings,
        )


def calculate_bill_totals(
    lines: Sequence[BillLineInput], tax_lines: Iterable = ()
) -> DocumentTotals:
    return totals(lines, tax_lines)


def validate_bill_lines(lines: Iterable[BillLineInput]) -> LineValidation:
    return validate_document_lines(lines)


def generate_bill_description(
    bill_number: str, supplier_name: str, total_amount, currency: str
) -> str:
    return f"Bill {bill_number} - {supplier_name} - {currency} {round_money(total_amount or ZERO)}"
