"""
GL Services - SoD, period lifecycle and sub-ledger posting adapters.

Services hold collaborators and coordinate engines with the storage port.
They flush through the LedgerStore but never commit; the caller owns the
transaction.
"""

from gl_services.period_lifecycle import PeriodLifecycleManager
from gl_services.posting_orchestrator import PostingOrchestrator, build_journal_validator
from gl_services.sod_authority import SoDAction, SoDAuthorizer
from gl_services.subledger_ap import BillPostingAdapter
from gl_services.subledger_ar import InvoicePostingAdapter
from gl_services.subledger_payment import PaymentPostingAdapter

__all__ = [
    "BillPostingAdapter",
    "InvoicePostingAdapter",
    "PaymentPostingAdapter",
    "PeriodLifecycleManager",
    "PostingOrchestrator",
    "SoDAction",
    "SoDAuthorizer",
    "build_journal_validator",
]
