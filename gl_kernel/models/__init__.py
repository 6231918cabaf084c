"""ORM models owned by the GL kernel."""

from gl_kernel.models.account import AccountModel
from gl_kernel.models.fiscal_period import (
    FiscalPeriodModel,
    PeriodLockModel,
    ReversingEntryModel,
)
from gl_kernel.models.journal import JournalLineModel, JournalModel, JournalStatus

__all__ = [
    "AccountModel",
    "FiscalPeriodModel",
    "JournalLineModel",
    "JournalModel",
    "JournalStatus",
    "PeriodLockModel",
    "ReversingEntryModel",
]
