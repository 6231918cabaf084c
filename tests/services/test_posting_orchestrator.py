"""
PostingOrchestrator wiring tests.

Verifies:
- One orchestrator builds every engine and service for a tenant/company
- Posting limits and base currency come from the EngineConfig
- The adapters and period manager share the validator, store and clock
- End to end: invoice accepted, then the period closes with a posting lock
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from gl_config.schema import PostingLimits
from gl_kernel.domain.dtos import LockType, PeriodStatus
from gl_services import PostingOrchestrator, build_journal_validator
from gl_services._period_types import ClosePeriodRequest
from gl_services._posting_types import InvoiceLineInput, InvoicePostingInput


@pytest.fixture
def orchestrator(session, accounts, engine_config, clock) -> PostingOrchestrator:
    return PostingOrchestrator(
        session, tenant_id="tenant-1", company_id="company-1", config=engine_config, clock=clock
    )


class TestWiring:
    def test_components_built(self, orchestrator, accounts):
        assert len(orchestrator.chart) == len(accounts)
        assert orchestrator.validator.base_currency == "MYR"
        assert orchestrator.invoices.base_currency == "MYR"
        assert orchestrator.bills.base_currency == "MYR"
        assert orchestrator.payments.base_currency == "MYR"

    def test_default_config_loaded(self, session, accounts, clock):
        gl = PostingOrchestrator(session, tenant_id="tenant-1", company_id="company-1", clock=clock)
        assert gl.config.config_id == "gl-default"

    def test_orchestrator_build_logged(self, session, accounts, engine_config, clock, captured_logs):
        PostingOrchestrator(
            session, tenant_id="tenant-1", company_id="company-1", config=engine_config, clock=clock
        )
        built = [r for r in captured_logs() if r["message"] == "orchestrator_built"]
        assert built[0]["config_id"] == "gl-default"
        assert built[0]["account_count"] == len(accounts)

    def test_limits_come_from_config(self, engine_config, chart, authorizer, clock, make_journal, accounts):
        config = replace(engine_config, posting=PostingLimits(max_lines=1))
        validator = build_journal_validator(config, chart, authorizer, clock)
        result = validator.validate_journal(
            make_journal([(accounts["bank"], "10", "0"), (accounts["revenue"], "0", "10")])
        )
        assert result.code == "BUSINESS_RULE_VIOLATION"
        assert result.details["max_lines"] == 1

    def test_base_currency_from_config(self, engine_config, chart, authorizer, clock, make_journal, accounts):
        config = replace(engine_config, base_currency="USD")
        validator = build_journal_validator(config, chart, authorizer, clock)
        result = validator.validate_journal(
            make_journal([(accounts["bank"], "10", "0"), (accounts["revenue"], "0", "10")])
        )
        # MYR is now foreign and no rate was given.
        assert result.code == "INVALID_CURRENCY"


class TestEndToEnd:
    def test_invoice_then_close(self, orchestrator, accounts, periods, create_journal):
        invoice = InvoicePostingInput(
            tenant_id="tenant-1",
            company_id="company-1",
            invoice_id="inv-1",
            invoice_number="INV-1",
            customer_id="c-1",
            customer_name="Acme",
            invoice_date=date(2024, 5, 20),
            currency="MYR",
            ar_account_id=accounts["ar"],
            lines=[
                InvoiceLineInput(
                    line_number=1,
                    description="Goods",
                    quantity=Decimal("1"),
                    unit_price=Decimal("750"),
                    line_amount=Decimal("750"),
                    revenue_account_id=accounts["revenue"],
                )
            ],
        )
        posted = orchestrator.invoices.post_invoice(invoice, user_id="user-1", user_role="accountant")
        assert posted.validated is True

        # The caller persists accepted journals.
        journal = posted.journal_input
        create_journal(
            journal.journal_date,
            [(line.account_id, line.debit, line.credit) for line in journal.lines],
            journal_number=journal.journal_number,
        )

        closed = orchestrator.periods.close_fiscal_period(
            ClosePeriodRequest(
                tenant_id="tenant-1",
                company_id="company-1",
                fiscal_period_id=periods["may"],
                closed_by="user-1",
                user_role="accountant",
                close_date=date(2024, 6, 1),
            )
        )
        assert closed.success is True
        assert closed.status is PeriodStatus.CLOSED
        assert closed.validation.checks.trial_balance_balanced is True
        assert closed.next_period_id == periods["june"]

        lock = orchestrator.periods.active_posting_lock("tenant-1", "company-1", date(2024, 5, 20))
        assert lock is not None
        assert lock.lock_type is LockType.POSTING
