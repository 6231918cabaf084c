"""
Module: gl_kernel.models.journal
Responsibility: ORM persistence for journals and journal lines.
Architecture position: Kernel > Models.  May import from db/base.py only.

Journals are written by the caller after a successful validation; the
engine only READS them (unposted counts, trial balance, accrual scan).
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gl_kernel.db.base import TrackedBase


class JournalStatus(str, Enum):
    """Posting status of a journal."""

    DRAFT = "draft"
    POSTED = "posted"


class JournalModel(TrackedBase):
    """Journal header."""

    __tablename__ = "journals"

    __table_args__ = (
        Index("idx_journal_company_date", "tenant_id", "company_id", "journal_date"),
        Index("idx_journal_status", "status"),
    )

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    company_id: Mapped[str] = mapped_column(String(36), nullable=False)

    journal_number: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    journal_date: Mapped[date] = mapped_column(Date, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=JournalStatus.DRAFT.value,
    )

    lines: Mapped[list["JournalLineModel"]] = relationship(
        back_populates="journal",
        cascade="all, delete-orphan",
        order_by="JournalLineModel.line_number",
    )

    def __repr__(self) -> str:
        return f"<Journal {self.journal_number} ({self.status})>"


class JournalLineModel(TrackedBase):
    """Journal line in base currency."""

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_journal_line_journal", "journal_id"),
        Index("idx_journal_line_account", "account_id"),
    )

    journal_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("journals.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id"), nullable=False
    )
    debit: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False, default=Decimal("0"))
    credit: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False, default=Decimal("0"))
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    journal: Mapped[JournalModel] = relationship(back_populates="lines")
