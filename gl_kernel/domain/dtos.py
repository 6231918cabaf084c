"""
Domain DTOs -- immutable value types exchanged between layers.

Responsibility:
    Defines the typed shapes that cross component boundaries: accounts,
    posting context, journal lines and posting inputs, SoD decisions,
    validation results, and the fiscal period / lock / reversing-entry
    views returned by the storage port.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ORM rows are mapped to these types
    in exactly one place (``gl_kernel.services.ledger_store``).

Invariants enforced:
    - Monetary fields are Decimal; float input is rejected at construction.
    - A JournalPostingInput is immutable once built (frozen, lines are a
      tuple) and is passed once through the validator.
    - JournalAccepted.validated is always True and JournalRejected.validated
      always False; neither can be constructed with the other value.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from gl_kernel.db.types import ZERO, to_decimal
from gl_kernel.domain.parsing import parse_date, parse_decimal, pick


class NormalBalance(str, Enum):
    """Side on which an account type normally carries its balance."""

    DEBIT = "debit"
    CREDIT = "credit"


class AccountType(str, Enum):
    """Ledger account classification."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"
    COST_OF_GOODS_SOLD = "COST_OF_GOODS_SOLD"

    @property
    def normal_balance(self) -> NormalBalance:
        if self in (
            AccountType.ASSET,
            AccountType.EXPENSE,
            AccountType.COST_OF_GOODS_SOLD,
        ):
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT


@dataclass(frozen=True, slots=True)
class Account:
    """Chart-of-accounts entry."""

    id: str
    code: str
    name: str
    account_type: AccountType
    currency: str
    parent_id: str | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.account_type, AccountType):
            object.__setattr__(self, "account_type", AccountType(self.account_type))


@dataclass(frozen=True, slots=True)
class PostingContext:
    """
    Who is acting, for whom.

    Carried through every validation call; never persisted by the engine.
    """

    tenant_id: str
    company_id: str
    user_id: str
    user_role: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PostingContext:
        return cls(
            tenant_id=str(pick(data, "tenant_id") or ""),
            company_id=str(pick(data, "company_id") or ""),
            user_id=str(pick(data, "user_id") or ""),
            user_role=str(pick(data, "user_role") or ""),
        )


@dataclass(frozen=True, slots=True)
class JournalLine:
    """
    One debit/credit line.

    Both sides may be non-zero on the same line; only the document-level
    balance is enforced.
    """

    account_id: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str | None = None
    reference: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "debit", to_decimal(self.debit))
        object.__setattr__(self, "credit", to_decimal(self.credit))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> JournalLine:
        return cls(
            account_id=str(pick(data, "account_id") or ""),
            debit=parse_decimal(pick(data, "debit"), "debit") or ZERO,
            credit=parse_decimal(pick(data, "credit"), "credit") or ZERO,
            description=pick(data, "description"),
            reference=pick(data, "reference"),
        )


@dataclass(frozen=True)
class JournalPostingInput:
    """
    A proposed journal, in transaction currency.

    Constructed transiently by an adapter or caller, validated once, then
    either accepted or discarded.  ``exchange_rate`` converts transaction
    currency into base currency when the two differ.
    """

    journal_number: str
    journal_date: date
    currency: str
    lines: tuple[JournalLine, ...]
    context: PostingContext
    description: str | None = None
    reference: str | None = None
    exchange_rate: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))
        if self.exchange_rate is not None:
            object.__setattr__(self, "exchange_rate", to_decimal(self.exchange_rate))

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> JournalPostingInput:
        """
        Build from an API payload.

        ``context`` may be a nested mapping or the context fields may sit at
        the top level of the payload.

        Raises:
            ValueError: On malformed dates or amounts.
        """
        context_data = pick(data, "context") or data
        return cls(
            journal_number=str(pick(data, "journal_number") or ""),
            journal_date=parse_date(pick(data, "journal_date"), "journal_date"),
            currency=str(pick(data, "currency") or ""),
            lines=tuple(
                JournalLine.from_mapping(line) for line in pick(data, "lines") or ()
            ),
            context=PostingContext.from_mapping(context_data),
            description=pick(data, "description"),
            reference=pick(data, "reference"),
            exchange_rate=parse_decimal(pick(data, "exchange_rate"), "exchange_rate"),
        )


@dataclass(frozen=True, slots=True)
class SoDDecision:
    """
    Three-state authorization outcome.

    ``allowed=False`` is always fatal.  ``requires_approval=True`` together
    with ``allowed=True`` means "proceed but flag for approval", never a
    block.
    """

    allowed: bool
    requires_approval: bool = False
    reason: str | None = None
    approver_roles: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CoaWarning:
    """Advisory: an entry runs against the account's normal balance."""

    account_id: str
    warning: str
    account_type: AccountType
    amount: Decimal
    side: NormalBalance


@dataclass(frozen=True)
class JournalAccepted:
    """
    Validated-but-not-persisted posting intent, in base currency.

    Persisting the journal is the caller's responsibility.
    """

    journal_number: str
    journal_date: date
    currency: str
    exchange_rate: Decimal
    lines: tuple[JournalLine, ...]
    total_debit: Decimal
    total_credit: Decimal
    requires_approval: bool = False
    approver_roles: tuple[str, ...] = ()
    coa_warnings: tuple[CoaWarning, ...] = ()
    description: str | None = None
    reference: str | None = None
    validated: bool = field(default=True, init=False)


@dataclass(frozen=True)
class JournalRejected:
    """Validation failure with a machine-readable code."""

    code: str
    error: str
    details: dict[str, Any] = field(default_factory=dict)
    validated: bool = field(default=False, init=False)


JournalValidationResult = JournalAccepted | JournalRejected


# ---------------------------------------------------------------------------
# Fiscal periods
# ---------------------------------------------------------------------------


class PeriodStatus(str, Enum):
    """
    Lifecycle status of a fiscal period.

    OPEN --close--> CLOSED (with an active POSTING lock).
    CLOSED | LOCKED --open--> OPEN (all locks deactivated).
    """

    OPEN = "OPEN"
    CLOSED = "CLOSED"
    LOCKED = "LOCKED"


class LockType(str, Enum):
    """What a period lock gates."""

    POSTING = "POSTING"
    REPORTING = "REPORTING"
    FULL = "FULL"


@dataclass(frozen=True, slots=True)
class FiscalPeriodInfo:
    id: str
    tenant_id: str
    company_id: str
    fiscal_calendar_id: str
    period_number: int
    start_date: date
    end_date: date
    status: PeriodStatus
    closed_at: datetime | None = None
    closed_by: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    def contains(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date


@dataclass(frozen=True, slots=True)
class PeriodLockInfo:
    id: str
    fiscal_period_id: str
    lock_type: LockType
    locked_by: str
    reason: str
    is_active: bool


@dataclass(frozen=True, slots=True)
class AccrualJournal:
    """Posted accrual journal eligible for an automatic reversal."""

    id: str
    journal_number: str
    journal_date: date
    reference: str | None
    description: str | None


@dataclass(frozen=True, slots=True)
class ReversingEntryInfo:
    id: str
    original_journal_id: str
    reversal_date: date
    reversal_reason: str
    status: str
