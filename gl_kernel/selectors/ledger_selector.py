"""
Module: gl_kernel.selectors.ledger_selector
Responsibility: Read side of the storage port.  Every ORM row the engine
    reads is converted to a domain DTO here, in the ``to_*`` mapping
    functions; nothing outside this module and ``SqlLedgerStore`` sees an
    ORM instance.
Architecture position: Kernel > Selectors.  Imports models/ and domain DTOs.

Invariants enforced:
    - Read-only: no add/flush/commit.
    - Trial balance and unposted counts are derived from journal lines on
      every call; there are no stored balances.

Failure modes:
    - SQLAlchemyError propagates unchanged (infrastructure failure).
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import and_, exists, func, select

from gl_kernel.db.types import ZERO
from gl_kernel.domain.dtos import (
    Account,
    AccountType,
    AccrualJournal,
    FiscalPeriodInfo,
    LockType,
    PeriodLockInfo,
    PeriodStatus,
    ReversingEntryInfo,
)
from gl_kernel.models.account import AccountModel
from gl_kernel.models.fiscal_period import (
    FiscalPeriodModel,
    PeriodLockModel,
    ReversingEntryModel,
)
from gl_kernel.models.journal import JournalLineModel, JournalModel, JournalStatus
from gl_kernel.selectors.base import BaseSelector

ACCRUAL_MARKER = "ACCRUAL"


# ---------------------------------------------------------------------------
# ORM -> DTO mapping
# ---------------------------------------------------------------------------


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on round-trip; stored values are always UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_account(row: AccountModel) -> Account:
    return Account(
        id=row.id,
        code=row.code,
        name=row.name,
        account_type=AccountType(row.account_type),
        currency=row.currency,
        parent_id=row.parent_id,
        is_active=row.is_active,
    )


def to_fiscal_period(row: FiscalPeriodModel) -> FiscalPeriodInfo:
    return FiscalPeriodInfo(
        id=row.id,
        tenant_id=row.tenant_id,
        company_id=row.company_id,
        fiscal_calendar_id=row.fiscal_calendar_id,
        period_number=row.period_number,
        start_date=row.start_date,
        end_date=row.end_date,
        status=PeriodStatus(row.status),
        closed_at=_aware(row.closed_at),
        closed_by=row.closed_by,
    )


def to_period_lock(row: PeriodLockModel) -> PeriodLockInfo:
    return PeriodLockInfo(
        id=row.id,
        fiscal_period_id=row.fiscal_period_id,
        lock_type=LockType(row.lock_type),
        locked_by=row.locked_by,
        reason=row.reason,
        is_active=row.is_active,
    )


def to_reversing_entry(row: ReversingEntryModel) -> ReversingEntryInfo:
    return ReversingEntryInfo(
        id=row.id,
        original_journal_id=row.original_journal_id,
        reversal_date=row.reversal_date,
        reversal_reason=row.reversal_reason,
        status=row.status,
    )


# ---------------------------------------------------------------------------
# Selector
# ---------------------------------------------------------------------------


class LedgerSelector(BaseSelector):
    """Read-only queries over accounts, journals and fiscal periods."""

    def get_account(
        self, tenant_id: str, company_id: str, account_id: str
    ) -> Account | None:
        row = self.session.scalars(
            select(AccountModel).where(
                AccountModel.id == account_id,
                AccountModel.tenant_id == tenant_id,
                AccountModel.company_id == company_id,
            )
        ).one_or_none()
        return to_account(row) if row is not None else None

    def list_accounts(self, tenant_id: str, company_id: str) -> list[Account]:
        rows = self.session.scalars(
            select(AccountModel)
            .where(
                AccountModel.tenant_id == tenant_id,
                AccountModel.company_id == company_id,
            )
            .order_by(AccountModel.code)
        ).all()
        return [to_account(row) for row in rows]

    def count_unposted_journals(
        self, tenant_id: str, company_id: str, start_date: date, end_date: date
    ) -> int:
        """Journals dated within [start_date, end_date] not yet posted."""
        return self.session.scalar(
            select(func.count(JournalModel.id)).where(
                JournalModel.tenant_id == tenant_id,
                JournalModel.company_id == company_id,
                JournalModel.journal_date >= start_date,
                JournalModel.journal_date <= end_date,
                JournalModel.status != JournalStatus.POSTED.value,
            )
        ) or 0

    def trial_balance_debits_credits(
        self, tenant_id: str, company_id: str, as_of: date
    ) -> tuple[Decimal, Decimal]:
        """(Σdebit, Σcredit) over all posted journals dated on or before as_of."""
        row = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLineModel.debit), 0),
                func.coalesce(func.sum(JournalLineModel.credit), 0),
            )
            .join(JournalModel, JournalLineModel.journal_id == JournalModel.id)
            .where(
                JournalModel.tenant_id == tenant_id,
                JournalModel.company_id == company_id,
                JournalModel.status == JournalStatus.POSTED.value,
                JournalModel.journal_date <= as_of,
            )
        ).one()
        return _as_decimal(row[0]), _as_decimal(row[1])

    def get_fiscal_period(
        self,
        tenant_id: str,
        company_id: str,
        fiscal_period_id: str,
        for_update: bool = False,
    ) -> FiscalPeriodInfo | None:
        stmt = select(FiscalPeriodModel).where(
            FiscalPeriodModel.id == fiscal_period_id,
            FiscalPeriodModel.tenant_id == tenant_id,
            FiscalPeriodModel.company_id == company_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = self.session.scalars(stmt).one_or_none()
        return to_fiscal_period(row) if row is not None else None

    def get_next_fiscal_period(self, period: FiscalPeriodInfo) -> FiscalPeriodInfo | None:
        """Same tenant, company and fiscal calendar, period_number + 1."""
        row = self.session.scalars(
            select(FiscalPeriodModel).where(
                FiscalPeriodModel.tenant_id == period.tenant_id,
                FiscalPeriodModel.company_id == period.company_id,
                FiscalPeriodModel.fiscal_calendar_id == period.fiscal_calendar_id,
                FiscalPeriodModel.period_number == period.period_number + 1,
            )
        ).one_or_none()
        return to_fiscal_period(row) if row is not None else None

    def get_period_for_date(
        self, tenant_id: str, company_id: str, on_date: date
    ) -> FiscalPeriodInfo | None:
        row = self.session.scalars(
            select(FiscalPeriodModel)
            .where(
                FiscalPeriodModel.tenant_id == tenant_id,
                FiscalPeriodModel.company_id == company_id,
                FiscalPeriodModel.start_date <= on_date,
                FiscalPeriodModel.end_date >= on_date,
            )
            .order_by(FiscalPeriodModel.start_date)
            .limit(1)
        ).first()
        return to_fiscal_period(row) if row is not None else None

    def list_period_locks(
        self, fiscal_period_id: str, active_only: bool = False
    ) -> list[PeriodLockInfo]:
        stmt = select(PeriodLockModel).where(
            PeriodLockModel.fiscal_period_id == fiscal_period_id
        )
        if active_only:
            stmt = stmt.where(PeriodLockModel.is_active.is_(True))
        rows = self.session.scalars(stmt.order_by(PeriodLockModel.created_at)).all()
        return [to_period_lock(row) for row in rows]

    def list_accrual_journals_without_reversal(
        self, tenant_id: str, company_id: str, start_date: date, end_date: date
    ) -> list[AccrualJournal]:
        """
        Posted journals in the date range whose reference marks them as
        accruals and which have no reversing entry yet.
        """
        already_reversed = exists().where(
            ReversingEntryModel.original_journal_id == JournalModel.id
        )
        rows = self.session.scalars(
            select(JournalModel)
            .where(
                and_(
                    JournalModel.tenant_id == tenant_id,
                    JournalModel.company_id == company_id,
                    JournalModel.status == JournalStatus.POSTED.value,
                    JournalModel.journal_date >= start_date,
                    JournalModel.journal_date <= end_date,
                    JournalModel.reference.contains(ACCRUAL_MARKER),
                    ~already_reversed,
                )
            )
            .order_by(JournalModel.journal_date, JournalModel.journal_number)
        ).all()
        return [
            AccrualJournal(
                id=row.id,
                journal_number=row.journal_number,
                journal_date=row.journal_date,
                reference=row.reference,
                description=row.description,
            )
            for row in rows
        ]

    def get_reversing_entry_for(self, original_journal_id: str) -> ReversingEntryInfo | None:
        row = self.session.scalars(
            select(ReversingEntryModel).where(
                ReversingEntryModel.original_journal_id == original_journal_id
            )
        ).one_or_none()
        return to_reversing_entry(row) if row is not None else None


def _as_decimal(value: object) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
