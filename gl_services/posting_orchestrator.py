"""
gl_services.posting_orchestrator -- wiring for one tenant/company scope.

Responsibility:
    Builds every engine and service exactly once from an EngineConfig and
    a caller-owned Session, and exposes them as attributes.  Engines never
    read configuration themselves; this is the only place where config
    values become constructor arguments.

Architecture position:
    Top of the services layer.  Nothing below it constructs collaborators.

Usage:
    with session_scope() as session:
        gl = PostingOrchestrator(session, tenant_id="t1", company_id="c1")
        result = gl.invoices.post_invoice(invoice, user_id="u1", user_role="clerk")
        close = gl.periods.close_fiscal_period(request)
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from gl_config import get_active_config
from gl_config.schema import EngineConfig
from gl_engines.journal_validator import Authorizer, JournalValidator
from gl_kernel.domain.chart_of_accounts import ChartOfAccounts
from gl_kernel.domain.clock import Clock, SystemClock
from gl_kernel.domain.fx_policy import FxPolicy
from gl_kernel.logging_config import get_logger
from gl_kernel.services.ledger_store import LedgerStore, SqlLedgerStore
from gl_services.period_lifecycle import PeriodLifecycleManager
from gl_services.sod_authority import SoDAuthorizer
from gl_services.subledger_ap import BillPostingAdapter
from gl_services.subledger_ar import InvoicePostingAdapter
from gl_services.subledger_payment import PaymentPostingAdapter

logger = get_logger("services.orchestrator")


def build_journal_validator(
    config: EngineConfig,
    chart: ChartOfAccounts,
    authorizer: Authorizer,
    clock: Clock,
) -> JournalValidator:
    """JournalValidator with base currency and posting limits taken from config."""
    limits = config.posting
    return JournalValidator(
        chart=chart,
        authorizer=authorizer,
        clock=clock,
        base_currency=config.base_currency,
        fx_policy=FxPolicy(config.base_currency),
        max_lines=limits.max_lines,
        min_amount=limits.min_amount,
        max_amount=limits.max_amount,
        balance_tolerance=limits.balance_tolerance,
    )


class PostingOrchestrator:
    """
    Composition root for posting and period operations.

    The chart of accounts is loaded once at construction; build a new
    orchestrator after changing accounts.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: str,
        company_id: str,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
        store: LedgerStore | None = None,
    ):
        self.config = config or get_active_config()
        self.clock = clock or SystemClock()
        self.store = store or SqlLedgerStore(session)

        self.chart = ChartOfAccounts.from_store(self.store, tenant_id, company_id)
        self.authorizer = SoDAuthorizer(self.config.sod)
        self.validator = build_journal_validator(
            self.config, self.chart, self.authorizer, self.clock
        )

        self.invoices = InvoicePostingAdapter(self.validator)
        self.bills = BillPostingAdapter(self.validator)
        self.payments = PaymentPostingAdapter(self.validator, clock=self.clock)
        self.periods = PeriodLifecycleManager(
            self.store,
            self.authorizer,
            self.clock,
            balance_tolerance=self.config.posting.balance_tolerance,
        )

        logger.debug(
            "orchestrator_built",
            extra={
                "tenant_id": tenant_id,
                "company_id": company_id,
                "config_id": self.config.config_id,
                "account_count": len(self.chart),
            },
        )
