"""
gl_services.subledger_ar -- AR invoice to GL journal adapter.

Responsibility:
    Map a customer invoice onto a base-currency journal and validate it:

        Dr  Accounts Receivable     total (lines + line tax + tax lines)
            Cr  Revenue             one per invoice line
            Cr  Output tax          one per declared tax line

    The journal number is the bare invoice number.

Architecture position:
    Services layer.  Delegates every accounting rule to JournalValidator;
    this module only shapes lines and pre-checks the document header.

Failure modes (DocumentPostingRejected codes):
    - INVALID_AMOUNTS: missing invoice id / AR account / lines, or
      revenue or total not positive (checked before FX).
    - INVALID_CURRENCY: malformed currency or unusable FX rate.
    - INVALID_ACCOUNTS: passed through from the validator.
    - BUSINESS_RULE_VIOLATION: any other validator rejection, with the
      validator's code under details["journal_code"].

Usage:
    adapter = InvoicePostingAdapter(validator)
    result = adapter.post_invoice(invoice, user_id="u-1", user_role="clerk")
    if result.validated:
        persist(result.journal_input)
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
    DocumentPostingRejected,
    InvoiceLineInput,
    InvoicePostingAccepted,
    InvoicePostingInput,
    InvoicePostingResult,
)

logger = get_logger("services.subledger.ar")


class InvoicePostingAdapter(DocumentPostingAdapter):
    """
    Invoice -> validated journal.

    Contract:
        post_invoice never raises for business failures.  Nothing is
        persisted; the caller writes ``journal_input`` when validated.
    """

    def post_invoice(
        self, invoice: InvoicePostingInput, user_id: str, user_role: str
    ) -> InvoicePostingResult:
        with LogContext.bind(
            tenant_id=invoice.tenant_id or None,
            company_id=invoice.company_id or None,
            actor_id=user_id or None,
            journal_number=invoice.invoice_number or None,
        ):
            try:
                result = self._post(invoice, user_id, user_role)
            except GLKernelError as exc:
                result = DocumentPostingRejected(
                    code=exc.code, error=str(exc), details=error_details(exc)
                )

            if result.validated:
                logger.info(
                    "invoice_posting_validated",
                    extra={
                        "invoice_id": invoice.invoice_id,
                        "total_amount": result.total_amount,
                        "currency": invoice.currency,
                        "requires_approval": result.requires_approval,
                    },
                )
            else:
                logger.warning(
                    "invoice_posting_rejected",
                    extra={
                        "invoice_id": invoice.invoice_id,
                        "code": result.code,
                        "error": result.error,
                    },
                )
            return result

    def _post(
        self, invoice: InvoicePostingInput, user_id: str, user_role: str
    ) -> InvoicePostingResult:
        if not invoice.invoice_id or not invoice.ar_account_id or not invoice.lines:
            raise InvalidDocumentAmountsError(
                "Missing required fields: invoice_id, ar_account_id, or lines"
            )

        doc_totals = calculate_invoice_totals(invoice.lines, invoice.tax_lines)
        if doc_totals.subtotal <= 0:
            raise InvalidDocumentAmountsError(
                "Invoice revenue must be positive", total_revenue=doc_totals.subtotal
            )
        if doc_totals.total_amount <= 0:
            raise InvalidDocumentAmountsError(
                "Invoice total amount must be positive",
                total_amount=doc_totals.total_amount,
            )

        rate = self._document_rate(invoice.currency, invoice.exchange_rate)
        number = invoice.invoice_number

        lines = [
            JournalLine(
                account_id=invoice.ar_account_id,
                debit=self._convert(doc_totals.total_amount, rate),
                description=f"AR - {invoice.customer_name} - {number}",
                reference=number,
            )
        ]
        for line in invoice.lines:
            lines.append(
                JournalLine(
                    account_id=line.revenue_account_id,
                    credit=self._convert(line.line_amount, rate),
                    description=f"Revenue - {line.description}",
                    reference=number,
                )
            )
        for tax_line in invoice.tax_lines:
            lines.append(
                JournalLine(
                    account_id=tax_line.tax_account_id,
                    credit=self._convert(tax_line.tax_amount, rate),
                    description=f"{tax_line.tax_code} Tax - {number}",
                    reference=number,
                )
            )

        journal_input = self._journal(
            journal_number=number,
            journal_date=invoice.invoice_date,
            lines=lines,
            context=self._context(invoice.tenant_id, invoice.company_id, user_id, user_role),
            description=invoice.description or f"Invoice {number} - {invoice.customer_name}",
        )

        checked = self._validator.validate_journal(journal_input)
        if not checked.validated:
            return document_rejection(checked)

        return InvoicePostingAccepted(
            journal_input=journal_input,
            total_revenue=doc_totals.subtotal,
            total_tax=doc_totals.tax_amount,
            total_amount=doc_totals.total_amount,
            requires_approval=checked.requires_approval,
            approver_roles=checked.approver_roles,
            coa_warnings=checked.coa_warnings,
        )


def calculate_invoice_totals(
    lines: Sequence[InvoiceLineInput], tax_lines: Iterable = ()
) -> DocumentTotals:
    """Subtotal, tax and total for invoice lines (plus any tax lines)."""
    return totals(lines, tax_lines)


def validate_invoice_lines(lines: Iterable[InvoiceLineInput]) -> LineValidation:
    return validate_document_lines(lines)


def generate_invoice_description(
    invoice_number: str, customer_name: str, total_amount, currency: str
) -> str:
    return f"Invoice {invoice_number} - {customer_name} - {currency} {round_money(total_amount or ZERO)}"
