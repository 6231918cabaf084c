"""
Source-document inputs and results for the sub-ledger posting adapters.

Invoices, bills and payments are transient: an adapter turns one into a
JournalPostingInput, validates it, and discards the document.  Amounts
here are in the document's own currency; the journal built from them is
in base currency.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from gl_kernel.db.types import ZERO, to_decimal
from gl_kernel.domain.dtos import CoaWarning, JournalLine, JournalPostingInput
from gl_kernel.domain.parsing import parse_date, parse_decimal, pick


class TaxType(str, Enum):
    INPUT = "INPUT"
    OUTPUT = "OUTPUT"
    EXEMPT = "EXEMPT"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    OTHER = "OTHER"


class AllocationType(str, Enum):
    """What a payment allocation settles: a supplier bill or a customer invoice."""

    BILL = "BILL"
    INVOICE = "INVOICE"


def _money(data: Mapping[str, Any], name: str, default: Decimal | None = ZERO) -> Decimal | None:
    value = parse_decimal(pick(data, name), name)
    return default if value is None else value


def _opt_money(value: Decimal | None) -> Decimal | None:
    return None if value is None else to_decimal(value)


# ---------------------------------------------------------------------------
# Document lines
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxLineInput:
    """A document-level tax line posted to its own tax account."""

    tax_code: str
    tax_account_id: str
    tax_amount: Decimal
    tax_type: TaxType = TaxType.OUTPUT

    def __post_init__(self) -> None:
        object.__setattr__(self, "tax_amount", to_decimal(self.tax_amount))
        if not isinstance(self.tax_type, TaxType):
            object.__setattr__(self, "tax_type", TaxType(str(self.tax_type).upper()))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TaxLineInput:
        return cls(
            tax_code=str(pick(data, "tax_code") or ""),
            tax_account_id=str(pick(data, "tax_account_id") or ""),
            tax_amount=_money(data, "tax_amount"),
            tax_type=pick(data, "tax_type") or TaxType.OUTPUT,
        )


@dataclass(frozen=True)
class InvoiceLineInput:
    line_number: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    line_amount: Decimal
    revenue_account_id: str
    tax_code: str | None = None
    tax_rate: Decimal | None = None
    tax_amount: Decimal | None = None

    def __post_init__(self) -> None:
        for name in ("quantity", "unit_price", "line_amount"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        object.__setattr__(self, "tax_rate", _opt_money(self.tax_rate))
        object.__setattr__(self, "tax_amount", _opt_money(self.tax_amount))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> InvoiceLineInput:
        return cls(
            line_number=int(pick(data, "line_number", 0)),
            description=str(pick(data, "description") or ""),
            quantity=_money(data, "quantity"),
            unit_price=_money(data, "unit_price"),
            line_amount=_money(data, "line_amount"),
            revenue_account_id=str(pick(data, "revenue_account_id") or ""),
            tax_code=pick(data, "tax_code"),
            tax_rate=_money(data, "tax_rate", None),
            tax_amount=_money(data, "tax_amount", None),
        )


@dataclass(frozen=True)
class BillLineInput:
    line_number: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    line_amount: Decimal
    expense_account_id: str
    tax_code: str | None = None
    tax_rate: Decimal | None = None
    tax_amount: Decimal | None = None

    def __post_init__(self) -> None:
        for name in ("quantity", "unit_price", "line_amount"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        object.__setattr__(self, "tax_rate", _opt_money(self.tax_rate))
        object.__setattr__(self, "tax_amount", _opt_money(self.tax_amount))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> BillLineInput:
        return cls(
            line_number=int(pick(data, "line_number", 0)),
            description=str(pick(data, "description") or ""),
            quantity=_money(data, "quantity"),
            unit_price=_money(data, "unit_price"),
            line_amount=_money(data, "line_amount"),
            expense_account_id=str(pick(data, "expense_account_id") or ""),
            tax_code=pick(data, "tax_code"),
            tax_rate=_money(data, "tax_rate", None),
            tax_amount=_money(data, "tax_amount", None),
        )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvoicePostingInput:
    """
    AR invoice to post.

    ``exchange_rate`` converts ``currency`` into base currency and is only
    consulted when the two differ.
    """

    tenant_id: str
    company_id: str
    invoice_id: str
    invoice_number: str
    customer_id: str
    customer_name: str
    invoice_date: date
    currency: str
    ar_account_id: str
    lines: tuple[InvoiceLineInput, ...]
    tax_lines: tuple[TaxLineInput, ...] = ()
    exchange_rate: Decimal | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "tax_lines", tuple(self.tax_lines))
        object.__setattr__(self, "exchange_rate", _opt_money(self.exchange_rate))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> InvoicePostingInput:
        """
        Raises:
            ValueError: On malformed dates or amounts.
        """
        return cls(
            tenant_id=str(pick(data, "tenant_id") or ""),
            company_id=str(pick(data, "company_id") or ""),
            invoice_id=str(pick(data, "invoice_id") or ""),
            invoice_number=str(pick(data, "invoice_number") or ""),
            customer_id=str(pick(data, "customer_id") or ""),
            customer_name=str(pick(data, "customer_name") or ""),
            invoice_date=parse_date(pick(data, "invoice_date"), "invoice_date"),
            currency=str(pick(data, "currency") or ""),
            ar_account_id=str(pick(data, "ar_account_id") or ""),
            lines=tuple(InvoiceLineInput.from_mapping(x) for x in pick(data, "lines") or ()),
            tax_lines=tuple(
                TaxLineInput.from_mapping(x) for x in pick(data, "tax_lines") or ()
            ),
            exchange_rate=parse_decimal(pick(data, "exchange_rate"), "exchange_rate"),
            description=pick(data, "description"),
        )


@dataclass(frozen=True)
class BillPostingInput:
    """AP supplier bill to post."""

    tenant_id: str
    company_id: str
    bill_id: str
    bill_number: str
    supplier_id: str
    supplier_name: str
    bill_date: date
    currency: str
    ap_account_id: str
    lines: tuple[BillLineInput, ...]
    tax_lines: tuple[TaxLineInput, ...] = ()
    exchange_rate: Decimal | None = None
    due_date: date | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "tax_lines", tuple(self.tax_lines))
        object.__setattr__(self, "exchange_rate", _opt_money(self.exchange_rate))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> BillPostingInput:
        return cls(
            tenant_id=str(pick(data, "tenant_id") or ""),
            company_id=str(pick(data, "company_id") or ""),
            bill_id=str(pick(data, "bill_id") or ""),
            bill_number=str(pick(data, "bill_number") or ""),
            supplier_id=str(pick(data, "supplier_id") or ""),
            supplier_name=str(pick(data, "supplier_name") or ""),
            bill_date=parse_date(pick(data, "bill_date"), "bill_date"),
            currency=str(pick(data, "currency") or ""),
            ap_account_id=str(pick(data, "ap_account_id") or ""),
            lines=tuple(BillLineInput.from_mapping(x) for x in pick(data, "lines") or ()),
            tax_lines=tuple(
                TaxLineInput.from_mapping(x) for x in pick(data, "tax_lines") or ()
            ),
            exchange_rate=parse_decimal(pick(data, "exchange_rate"), "exchange_rate"),
            due_date=parse_date(pick(data, "due_date"), "due_date"),
            description=pick(data, "description"),
        )


@dataclass(frozen=True)
class PaymentAllocationInput:
    """
    The part of a payment applied to one document.

    Bill allocations need ``supplier_id`` and ``ap_account_id``; invoice
    allocations need ``customer_id`` and ``ar_account_id``.
    """

    type: AllocationType
    document_id: str
    document_number: str
    allocated_amount: Decimal
    supplier_id: str | None = None
    customer_id: str | None = None
    ap_account_id: str | None = None
    ar_account_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, AllocationType):
            object.__setattr__(self, "type", AllocationType(str(self.type).upper()))
        object.__setattr__(self, "allocated_amount", to_decimal(self.allocated_amount))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PaymentAllocationInput:
        return cls(
            type=pick(data, "type") or "",
            document_id=str(pick(data, "document_id") or ""),
            document_number=str(pick(data, "document_number") or ""),
            allocated_amount=_money(data, "allocated_amount"),
            supplier_id=pick(data, "supplier_id"),
            customer_id=pick(data, "customer_id"),
            ap_account_id=pick(data, "ap_account_id"),
            ar_account_id=pick(data, "ar_account_id"),
        )


@dataclass(frozen=True)
class PaymentPostingInput:
    """
    Bill payment and/or invoice receipt through one bank account.

    ``payment_method`` is kept as given so that an unknown method is
    reported as a validation error rather than a parse failure.
    """

    tenant_id: str
    company_id: str
    payment_id: str
    payment_number: str
    payment_date: date
    payment_method: str
    bank_account_id: str
    currency: str
    amount: Decimal
    allocations: tuple[PaymentAllocationInput, ...]
    exchange_rate: Decimal | None = None
    reference: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.payment_method, PaymentMethod):
            object.__setattr__(self, "payment_method", self.payment_method.value)
        object.__setattr__(self, "allocations", tuple(self.allocations))
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "exchange_rate", _opt_money(self.exchange_rate))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PaymentPostingInput:
        return cls(
            tenant_id=str(pick(data, "tenant_id") or ""),
            company_id=str(pick(data, "company_id") or ""),
            payment_id=str(pick(data, "payment_id") or ""),
            payment_number=str(pick(data, "payment_number") or ""),
            payment_date=parse_date(pick(data, "payment_date"), "payment_date"),
            payment_method=str(pick(data, "payment_method") or ""),
            bank_account_id=str(pick(data, "bank_account_id") or ""),
            currency=str(pick(data, "currency") or ""),
            amount=_money(data, "amount"),
            allocations=tuple(
                PaymentAllocationInput.from_mapping(x)
                for x in pick(data, "allocations") or ()
            ),
            exchange_rate=parse_decimal(pick(data, "exchange_rate"), "exchange_rate"),
            reference=pick(data, "reference"),
            description=pick(data, "description"),
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvoicePostingAccepted:
    """Validated invoice journal; totals are in invoice currency."""

    journal_input: JournalPostingInput
    total_revenue: Decimal
    total_tax: Decimal
    total_amount: Decimal
    requires_approval: bool = False
    approver_roles: tuple[str, ...] = ()
    coa_warnings: tuple[CoaWarning, ...] = ()
    validated: bool = field(default=True, init=False)


@dataclass(frozen=True)
class BillPostingAccepted:
    """Validated bill journal; totals are in bill currency."""

    journal_input: JournalPostingInput
    total_expense: Decimal
    total_tax: Decimal
    total_amount: Decimal
    requires_approval: bool = False
    approver_roles: tuple[str, ...] = ()
    coa_warnings: tuple[CoaWarning, ...] = ()
    validated: bool = field(default=True, init=False)


@dataclass(frozen=True)
class DocumentPostingRejected:
    code: str
    error: str
    details: dict[str, Any] = field(default_factory=dict)
    validated: bool = field(default=False, init=False)


@dataclass(frozen=True)
class PaymentPostingAccepted:
    """``total_amount`` is the payment amount in base currency."""

    journal_input: JournalPostingInput
    journal_number: str
    total_amount: Decimal
    allocations_processed: int
    lines: tuple[JournalLine, ...]
    requires_approval: bool = False
    approver_roles: tuple[str, ...] = ()
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class PaymentPostingRejected:
    code: str
    error: str
    details: dict[str, Any] = field(default_factory=dict)
    success: bool = field(default=False, init=False)


InvoicePostingResult = InvoicePostingAccepted | DocumentPostingRejected
BillPostingResult = BillPostingAccepted | DocumentPostingRejected
PaymentPostingResult = PaymentPostingAccepted | PaymentPostingRejected


@dataclass(frozen=True)
class PaymentSummary:
    bill_payments: Decimal
    invoice_receipts: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class AllocationCheck:
    """Allocation-vs-outstanding report; only errors make it invalid."""

    valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
