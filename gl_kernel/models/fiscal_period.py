"""
Module: gl_kernel.models.fiscal_period
Responsibility: ORM persistence for the fiscal period lifecycle: periods,
    period locks and scheduled reversing entries.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (fiscal_calendar_id, period_number) is unique, so "next period" is
      well defined.
    - reversing_entries.original_journal_id is unique: at most one
      reversal is ever scheduled per accrual journal.

Audit relevance:
    status / closed_at / closed_by, period_locks and reversing_entries are
    the only rows the engine itself writes.
"""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from gl_kernel.db.base import TrackedBase


class FiscalPeriodModel(TrackedBase):
    """
    Fiscal period for posting control.

    Guarantees:
        - status is one of OPEN / CLOSED / LOCKED (stored as string).
        - closed_at / closed_by are set only while the period is not OPEN.

    Non-goals:
        - Periods are created administratively; the engine never inserts them.
    """

    __tablename__ = "fiscal_periods"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "company_id",
            "fiscal_calendar_id",
            "period_number",
            name="uq_period_calendar_number",
        ),
        Index("idx_period_company", "tenant_id", "company_id"),
        Index("idx_period_dates", "start_date", "end_date"),
    )

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    company_id: Mapped[str] = mapped_column(String(36), nullable=False)
    fiscal_calendar_id: Mapped[str] = mapped_column(String(36), nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="OPEN")

    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    closed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)

    def __repr__(self) -> str:
        return f"<FiscalPeriod {self.fiscal_calendar_id}#{self.period_number}: {self.status}>"


class PeriodLockModel(TrackedBase):
    """Lock record gating postings or reporting for a period."""

    __tablename__ = "period_locks"

    __table_args__ = (
        Index("idx_period_lock_period", "fiscal_period_id", "is_active"),
    )

    fiscal_period_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("fiscal_periods.id"), nullable=False
    )
    lock_type: Mapped[str] = mapped_column(String(20), nullable=False)
    locked_by: Mapped[str] = mapped_column(String(36), nullable=False)
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ReversingEntryModel(TrackedBase):
    """Scheduled reversal of an accrual journal (posting is downstream)."""

    __tablename__ = "reversing_entries"

    __table_args__ = (
        UniqueConstraint("original_journal_id", name="uq_reversing_original_journal"),
    )

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    company_id: Mapped[str] = mapped_column(String(36), nullable=False)
    original_journal_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("journals.id"), nullable=False
    )
    reversal_date: Mapped[date] = mapped_column(Date, nullable=False)
    reversal_reason: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    created_by: Mapped[str] = mapped_column(String(36), nullable=False)
