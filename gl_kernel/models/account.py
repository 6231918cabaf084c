"""
Module: gl_kernel.models.account
Responsibility: ORM persistence for chart-of-accounts rows.
Architecture position: Kernel > Models.  May import from db/base.py only.

The engine never writes accounts; they are administered upstream and read
through the storage port to build the ChartOfAccounts registry.
"""

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gl_kernel.db.base import TrackedBase


class AccountModel(TrackedBase):
    """
    Ledger account.

    Guarantees:
        - (tenant_id, company_id, code) is unique.
        - account_type is one of the AccountType values (stored as string).
        - parent_id forms a tree within one company.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "company_id", "code", name="uq_account_code"),
        Index("idx_account_company", "tenant_id", "company_id"),
        Index("idx_account_parent", "parent_id"),
    )

    tenant_id: Mapped[str] = mapped_column(String(36), nullable=False)
    company_id: Mapped[str] = mapped_column(String(36), nullable=False)

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    account_type: Mapped[str] = mapped_column(String(30), nullable=False)

    parent_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MYR")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name} ({self.account_type})>"
