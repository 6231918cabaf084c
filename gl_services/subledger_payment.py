"""
gl_services.subledger_payment -- payment / receipt to GL journal adapter.

Responsibility:
    Map a payment through one bank account onto a base-currency journal.
    Bill allocations are outgoing, invoice allocations incoming:

        Bill payment:       Dr AP (per allocation)    Cr Bank (sum)
        Invoice receipt:    Dr Bank (sum)             Cr AR (per allocation)

    A single payment may carry both kinds.  The journal number is
    ``PAY-<payment number>``.

Architecture position:
    Services layer, alongside the AR/AP adapters.  Business rules on the
    payment itself are checked here, all at once; accounting rules are
    left to JournalValidator.

Failure modes (PaymentPostingRejected codes):
    - PAYMENT_VALIDATION_FAILED: one or more payment rules failed; every
      message is listed under details["errors"].
    - INVALID_CURRENCY: unusable FX rate once the rules pass.
    - JOURNAL_VALIDATION_FAILED: the validator rejected the journal; its
      code is under details["journal_code"].
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal

from gl_engines.journal_validator import JournalValidator
from gl_kernel.db.types import MONEY_TOLERANCE, ZERO, round_money
from gl_kernel.domain.clock import Clock, SystemClock
from gl_kernel.domain.dtos import JournalLine
from gl_kernel.domain.fx_policy import FxPolicy, is_currency_code
from gl_kernel.exceptions import GLKernelError, PaymentValidationError, error_details
from gl_kernel.logging_config import LogContext, get_logger
from gl_services._posting_helpers import DocumentPostingAdapter
from gl_services._posting_types import (
    AllocationCheck,
    AllocationType,
    PaymentAllocationInput,
    PaymentMethod,
    PaymentPostingAccepted,
    PaymentPostingInput,
    PaymentPostingRejected,
    PaymentPostingResult,
    PaymentSummary,
)

logger = get_logger("services.subledger.payment")

PAYMENT_JOURNAL_PREFIX = "PAY-"
JOURNAL_VALIDATION_FAILED = "JOURNAL_VALIDATION_FAILED"

_VALID_METHODS = frozenset(method.value for method in PaymentMethod)


class PaymentPostingAdapter(DocumentPostingAdapter):
    """Payment -> validated journal.  Never raises for business failures."""

    def __init__(
        self,
        validator: JournalValidator,
        clock: Clock | None = None,
        fx_policy: FxPolicy | None = None,
    ):
        super().__init__(validator, fx_policy)
        self._clock = clock or SystemClock()

    def post_payment(
        self, payment: PaymentPostingInput, user_id: str, user_role: str
    ) -> PaymentPostingResult:
        with LogContext.bind(
            tenant_id=payment.tenant_id or None,
            company_id=payment.company_id or None,
            actor_id=user_id or None,
            journal_number=f"{PAYMENT_JOURNAL_PREFIX}{payment.payment_number}",
        ):
            try:
                result = self._post(payment, user_id, user_role)
            except GLKernelError as exc:
                result = PaymentPostingRejected(
                    code=exc.code, error=str(exc), details=error_details(exc)
                )

            if result.success:
                logger.info(
                    "payment_posting_validated",
                    extra={
                        "payment_id": payment.payment_id,
                        "total_amount": result.total_amount,
                        "allocations": result.allocations_processed,
                    },
                )
            else:
                logger.warning(
                    "payment_posting_rejected",
                    extra={
                        "payment_id": payment.payment_id,
                        "code": result.code,
                        "error": result.error,
                    },
                )
            return result

    def check_business_rules(self, payment: PaymentPostingInput) -> list[str]:
        """Every payment-level rule violation, in a stable order."""
        errors: list[str] = []

        if payment.payment_date is None:
            errors.append("Payment date is required")
        elif payment.payment_date > self._clock.today():
            errors.append("Payment date cannot be in the future")

        if not is_currency_code(payment.currency):
            errors.append("Currency must be a valid 3-letter ISO code")

        if payment.exchange_rate is not None and payment.exchange_rate <= 0:
            errors.append("Exchange rate must be positive")

        if payment.amount <= 0:
            errors.append("Payment amount must be positive")

        if payment.payment_method not in _VALID_METHODS:
            errors.append("Invalid payment method")

        if not payment.allocations:
            errors.append("Payment must have at least one allocation")

        total_allocated = sum((a.allocated_amount for a in payment.allocations), ZERO)
        if payment.allocations and abs(total_allocated - payment.amount) > MONEY_TOLERANCE:
            errors.append(
                f"Total allocated amount ({total_allocated}) does not match "
                f"payment amount ({payment.amount})"
            )

        for index, allocation in enumerate(payment.allocations, start=1):
            if allocation.allocated_amount <= 0:
                errors.append(f"Allocation {index}: Amount must be positive")
            if allocation.type is AllocationType.BILL:
                if not allocation.ap_account_id:
                    errors.append(f"Allocation {index}: AP account required for bill payments")
                if not allocation.supplier_id:
                    errors.append(f"Allocation {index}: Supplier ID required for bill payments")
            else:
                if not allocation.ar_account_id:
                    errors.append(
                        f"Allocation {index}: AR account required for invoice receipts"
                    )
                if not allocation.customer_id:
                    errors.append(
                        f"Allocation {index}: Customer ID required for invoice receipts"
                    )
        return errors

    def _post(
        self, payment: PaymentPostingInput, user_id: str, user_role: str
    ) -> PaymentPostingResult:
        errors = self.check_business_rules(payment)
        if errors:
            raise PaymentValidationError(errors)

        rate = self._document_rate(payment.currency, payment.exchange_rate)
        number = payment.payment_number
        method = payment.payment_method

        bills = [a for a in payment.allocations if a.type is AllocationType.BILL]
        invoices = [a for a in payment.allocations if a.type is AllocationType.INVOICE]

        lines: list[JournalLine] = []
        if bills:
            for allocation in bills:
                lines.append(
                    JournalLine(
                        account_id=allocation.ap_account_id,
                        debit=self._convert(allocation.allocated_amount, rate),
                        description=f"Payment {number} - Bill {allocation.document_number}",
                        reference=number,
                    )
                )
            lines.append(
                JournalLine(
                    account_id=payment.bank_account_id,
                    credit=self._convert(_allocated(bills), rate),
                    description=f"Payment {number} - {method}",
                    reference=number,
                )
            )
        if invoices:
            lines.append(
                JournalLine(
                    account_id=payment.bank_account_id,
                    debit=self._convert(_allocated(invoices), rate),
                    description=f"Receipt {number} - {method}",
                    reference=number,
                )
            )
            for allocation in invoices:
                lines.append(
                    JournalLine(
                        account_id=allocation.ar_account_id,
                        credit=self._convert(allocation.allocated_amount, rate),
                        description=f"Receipt {number} - Invoice {allocation.document_number}",
                        reference=number,
                    )
                )

        journal_input = self._journal(
            journal_number=f"{PAYMENT_JOURNAL_PREFIX}{number}",
            journal_date=payment.payment_date,
            lines=lines,
            context=self._context(payment.tenant_id, payment.company_id, user_id, user_role),
            description=payment.description or f"Payment {number} - {method}",
            reference=payment.reference,
        )

        checked = self._validator.validate_journal(journal_input)
        if not checked.validated:
            return PaymentPostingRejected(
                code=JOURNAL_VALIDATION_FAILED,
                error=f"Journal validation failed: {checked.error}",
                details={"journal_code": checked.code, **checked.details},
            )

        return PaymentPostingAccepted(
            journal_input=journal_input,
            journal_number=journal_input.journal_number,
            total_amount=self._convert(payment.amount, rate),
            allocations_processed=len(payment.allocations),
            lines=journal_input.lines,
            requires_approval=checked.requires_approval,
            approver_roles=checked.approver_roles,
        )


def _allocated(allocations: Iterable[PaymentAllocationInput]) -> Decimal:
    return sum((a.allocated_amount for a in allocations), ZERO)


def calculate_payment_summary(allocations: Iterable[PaymentAllocationInput]) -> PaymentSummary:
    """Bill payments, invoice receipts and their total, each rounded to cents."""
    allocations = list(allocations)
    bill_payments = _allocated(a for a in allocations if a.type is AllocationType.BILL)
    invoice_receipts = _allocated(a for a in allocations if a.type is AllocationType.INVOICE)
    return PaymentSummary(
        bill_payments=round_money(bill_payments),
        invoice_receipts=round_money(invoice_receipts),
        total_amount=round_money(bill_payments + invoice_receipts),
    )


def validate_payment_allocations(
    allocations: Iterable[PaymentAllocationInput],
    outstanding_balances: Mapping[str, Decimal],
) -> AllocationCheck:
    """
    Compare allocations with the documents' outstanding balances.

    Allocating against a document with nothing outstanding is an error;
    over-allocating against a partly paid one is only a warning.
    """
    errors: list[str] = []
    warnings: list[str] = []
    for allocation in allocations:
        outstanding = outstanding_balances.get(allocation.document_id, ZERO)
        if allocation.allocated_amount <= outstanding:
            continue
        if outstanding == 0:
            errors.append(f"Document {allocation.document_number} has no outstanding balance")
        else:
            warnings.append(
                f"Document {allocation.document_number}: Allocated amount "
                f"({allocation.allocated_amount}) exceeds outstanding balance ({outstanding})"
            )
    return AllocationCheck(valid=not errors, errors=tuple(errors), warnings=tuple(warnings))


def generate_payment_number(
    company_code: str,
    sequence: int,
    direction: str = "OUT",
    year: int | None = None,
    clock: Clock | None = None,
) -> str:
    """``PAY-<company>-<year>-<seq>`` for outgoing, ``REC-...`` for incoming."""
    if year is None:
        year = (clock or SystemClock()).today().year
    prefix = "PAY" if direction.upper() == "OUT" else "REC"
    return f"{prefix}-{company_code}-{year}-{sequence:06d}"
