"""
LedgerStore -- storage port for the posting and period engine.

Responsibility:
    Declares the data the engine needs from the outside world
    (``LedgerStore`` protocol) and provides the SQLAlchemy implementation
    (``SqlLedgerStore``).  The engine never issues SQL itself; it calls
    these methods and receives typed DTOs.

Architecture position:
    Kernel > Services.  Reads delegate to ``LedgerSelector``; writes are
    limited to fiscal period status, period locks and reversing entries.

Invariants enforced:
    - Flush-only: SqlLedgerStore never commits or rolls back.
    - Compare-and-swap status transitions: an UPDATE only succeeds when the
      stored status is still one of the expected pre-states, so two
      concurrent closes cannot both win.
    - Reversing entries are idempotent per original journal: an existence
      check precedes every insert and a unique constraint backs it up.

Failure modes:
    - SQLAlchemyError propagates unchanged; callers treat it as an
      infrastructure failure, distinct from business validation results.
"""

from collections.abc import Collection
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy import update
from sqlalchemy.orm import Session

from gl_kernel.domain.dtos import (
    Account,
    AccrualJournal,
    FiscalPeriodInfo,
    LockType,
    PeriodLockInfo,
    PeriodStatus,
    ReversingEntryInfo,
)
from gl_kernel.logging_config import get_logger
from gl_kernel.models.fiscal_period import (
    FiscalPeriodModel,
    PeriodLockModel,
    ReversingEntryModel,
)
from gl_kernel.selectors.ledger_selector import (
    LedgerSelector,
    to_period_lock,
    to_reversing_entry,
)
from gl_kernel.services.base import BaseService

logger = get_logger("services.ledger_store")


class LedgerStore(Protocol):
    """Storage port consumed by the validator and the period lifecycle."""

    def resolve_account(
        self, tenant_id: str, company_id: str, account_id: str
    ) -> Account | None: ...

    def list_accounts(self, tenant_id: str, company_id: str) -> list[Account]: ...

    def count_unposted_journals(
        self, tenant_id: str, company_id: str, start_date: date, end_date: date
    ) -> int: ...

    def trial_balance_debits_credits(
        self, tenant_id: str, company_id: str, as_of: date
    ) -> tuple[Decimal, Decimal]: ...

    def count_unreconciled_bank_transactions(
        self, tenant_id: str, company_id: str, start_date: date, end_date: date
    ) -> int: ...

    def find_fiscal_period(
        self,
        tenant_id: str,
        company_id: str,
        fiscal_period_id: str,
        for_update: bool = False,
    ) -> FiscalPeriodInfo | None: ...

    def find_next_fiscal_period(
        self, period: FiscalPeriodInfo
    ) -> FiscalPeriodInfo | None: ...

    def find_period_for_date(
        self, tenant_id: str, company_id: str, on_date: date
    ) -> FiscalPeriodInfo | None: ...

    def transition_fiscal_period_status(
        self,
        fiscal_period_id: str,
        expected: Collection[PeriodStatus],
        new_status: PeriodStatus,
        closed_at: datetime | None = None,
        closed_by: str | None = None,
    ) -> bool: ...

    def insert_period_lock(
        self,
        fiscal_period_id: str,
        lock_type: LockType,
        locked_by: str,
        reason: str,
    ) -> PeriodLockInfo: ...

    def deactivate_period_locks(self, fiscal_period_id: str) -> int: ...

    def list_period_locks(
        self, fiscal_period_id: str, active_only: bool = False
    ) -> list[PeriodLockInfo]: ...

    def find_accrual_journals_without_reversal(
        self, tenant_id: str, company_id: str, start_date: date, end_date: date
    ) -> list[AccrualJournal]: ...

    def insert_reversing_entry(
        self,
        tenant_id: str,
        company_id: str,
        original_journal_id: str,
        reversal_date: date,
        reversal_reason: str,
        created_by: str,
    ) -> ReversingEntryInfo | None: ...


class SqlLedgerStore(BaseService):
    """
    SQLAlchemy implementation of ``LedgerStore`` over a caller-owned Session.

    Contract:
        Every write is flushed so later reads in the same transaction see
        it; commit belongs to the caller.

    Non-goals:
        - Does NOT write journals or journal lines.
        - Does NOT create fiscal periods.
    """

    def __init__(self, session: Session):
        super().__init__(session)
        self._selector = LedgerSelector(session)

    # -- reads --------------------------------------------------------------

    def resolve_account(
        self, tenant_id: str, company_id: str, account_id: str
    ) -> Account | None:
        return self._selector.get_account(tenant_id, company_id, account_id)

    def list_accounts(self, tenant_id: str, company_id: str) -> list[Account]:
        return self._selector.list_accounts(tenant_id, company_id)

    def count_unposted_journals(
        self, tenant_id: str, company_id: str, start_date: date, end_date: date
    ) -> int:
        return self._selector.count_unposted_journals(
            tenant_id, company_id, start_date, end_date
        )

    def trial_balance_debits_credits(
        self, tenant_id: str, company_id: str, as_of: date
    ) -> tuple[Decimal, Decimal]:
        return self._selector.trial_balance_debits_credits(tenant_id, company_id, as_of)

    def count_unreconciled_bank_transactions(
        self, tenant_id: str, company_id: str, start_date: date, end_date: date
    ) -> int:
        # Bank reconciliation is not tracked by this ledger yet; the check
        # always passes until a reconciliation source is wired in.
        return 0

    def find_fiscal_period(
        self,
        tenant_id: str,
        company_id: str,
        fiscal_period_id: str,
        for_update: bool = False,
    ) -> FiscalPeriodInfo | None:
        return self._selector.get_fiscal_period(
            tenant_id, company_id, fiscal_period_id, for_update=for_update
        )

    def find_next_fiscal_period(self, period: FiscalPeriodInfo) -> FiscalPeriodInfo | None:
        return self._selector.get_next_fiscal_period(period)

    def find_period_for_date(
        self, tenant_id: str, company_id: str, on_date: date
    ) -> FiscalPeriodInfo | None:
        return self._selector.get_period_for_date(tenant_id, company_id, on_date)

    def list_period_locks(
        self, fiscal_period_id: str, active_only: bool = False
    ) -> list[PeriodLockInfo]:
        return self._selector.list_period_locks(fiscal_period_id, active_only=active_only)

    def find_accrual_journals_without_reversal(
        self, tenant_id: str, company_id: str, start_date: date, end_date: date
    ) -> list[AccrualJournal]:
        return self._selector.list_accrual_journals_without_reversal(
            tenant_id, company_id, start_date, end_date
        )

    # -- writes -------------------------------------------------------------

    def transition_fiscal_period_status(
        self,
        fiscal_period_id: str,
        expected: Collection[PeriodStatus],
        new_status: PeriodStatus,
        closed_at: datetime | None = None,
        closed_by: str | None = None,
    ) -> bool:
        """
        Compare-and-swap the period status.

        closed_at / closed_by are written as given, so an OPEN transition
        passes None to clear them.

        Returns:
            True if exactly one row moved from an expected status.
        """
        stmt = (
            update(FiscalPeriodModel)
            .where(
                FiscalPeriodModel.id == fiscal_period_id,
                FiscalPeriodModel.status.in_([s.value for s in expected]),
            )
            .values(
                status=new_status.value,
                closed_at=closed_at,
                closed_by=closed_by,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        self.session.flush()
        swapped = result.rowcount == 1
        logger.debug(
            "period_status_cas",
            extra={
                "fiscal_period_id": fiscal_period_id,
                "expected": [s.value for s in expected],
                "new_status": new_status.value,
                "swapped": swapped,
            },
        )
        return swapped

    def insert_period_lock(
        self,
        fiscal_period_id: str,
        lock_type: LockType,
        locked_by: str,
        reason: str,
    ) -> PeriodLockInfo:
        row = PeriodLockModel(
            fiscal_period_id=fiscal_period_id,
            lock_type=lock_type.value,
            locked_by=locked_by,
            reason=reason,
            is_active=True,
        )
        self.session.add(row)
        self.session.flush()
        return to_period_lock(row)

    def deactivate_period_locks(self, fiscal_period_id: str) -> int:
        """Deactivate every active lock for the period; returns the count."""
        result = self.session.execute(
            update(PeriodLockModel)
            .where(
                PeriodLockModel.fiscal_period_id == fiscal_period_id,
                PeriodLockModel.is_active.is_(True),
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
        self.session.flush()
        return result.rowcount

    def insert_reversing_entry(
        self,
        tenant_id: str,
        company_id: str,
        original_journal_id: str,
        reversal_date: date,
        reversal_reason: str,
        created_by: str,
    ) -> ReversingEntryInfo | None:
        """
        Schedule a reversal for an accrual journal.

        Returns:
            The new entry, or None when one already exists for the journal.
        """
        if self._selector.get_reversing_entry_for(original_journal_id) is not None:
            return None
        row = ReversingEntryModel(
            tenant_id=tenant_id,
            company_id=company_id,
            original_journal_id=original_journal_id,
            reversal_date=reversal_date,
            reversal_reason=reversal_reason,
            status="PENDING",
            created_by=created_by,
        )
        self.session.add(row)
        self.session.flush()
        return to_reversing_entry(row)
