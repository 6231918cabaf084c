"""
Shared plumbing for the sub-ledger posting adapters.

Every adapter does the same three things around its own line mapping:
resolve the document's FX rate against the validator's base currency,
hand a base-currency JournalPostingInput to the JournalValidator, and
translate a validator rejection into the adapter's own result codes.

Architecture: Services layer.  Imports engines and kernel only.
"""

from __future__ import annotations

from decimal import Decimal

from gl_engines.journal_validator import JournalValidator
from gl_kernel.domain.dtos import (
    JournalLine,
    JournalPostingInput,
    JournalRejected,
    PostingContext,
)
from gl_kernel.domain.fx_policy import FxPolicy, is_currency_code
from gl_kernel.exceptions import InvalidCurrencyError
from gl_services._posting_types import DocumentPostingRejected

# Validator codes a document adapter reports unchanged; every other
# rejection is reported as BUSINESS_RULE_VIOLATION.
PASS_THROUGH_CODES = frozenset({"INVALID_ACCOUNTS", "INVALID_CURRENCY"})


class DocumentPostingAdapter:
    """Base for adapters that turn a source document into a validated journal."""

    def __init__(self, validator: JournalValidator, fx_policy: FxPolicy | None = None):
        self._validator = validator
        self._fx = fx_policy or FxPolicy(validator.base_currency)

    @property
    def base_currency(self) -> str:
        return self._validator.base_currency

    def _document_rate(self, currency: str, exchange_rate: Decimal | None) -> Decimal:
        """
        Raises:
            InvalidCurrencyError, FxRateRequiredError, InvalidExchangeRateError
        """
        if not is_currency_code(currency):
            raise InvalidCurrencyError(currency)
        return self._fx.validate_rate(self.base_currency, currency, exchange_rate)

    def _convert(self, amount: Decimal, rate: Decimal) -> Decimal:
        return self._fx.convert(amount, rate)

    @staticmethod
    def _context(
        tenant_id: str, company_id: str, user_id: str, user_role: str
    ) -> PostingContext:
        return PostingContext(
            tenant_id=tenant_id,
            company_id=company_id,
            user_id=user_id,
            user_role=user_role,
        )

    def _journal(
        self,
        journal_number: str,
        journal_date,
        lines: list[JournalLine],
        context: PostingContext,
        description: str | None,
        reference: str | None = None,
    ) -> JournalPostingInput:
        return JournalPostingInput(
            journal_number=journal_number,
            journal_date=journal_date,
            currency=self.base_currency,
            lines=tuple(lines),
            context=context,
            description=description,
            reference=reference,
        )


def document_rejection(rejected: JournalRejected) -> DocumentPostingRejected:
    """Map a validator rejection onto a document adapter result."""
    if rejected.code in PASS_THROUGH_CODES:
        return DocumentPostingRejected(
            code=rejected.code,
            error=rejected.error,
            details=dict(rejected.details),
        )
    return DocumentPostingRejected(
        code="BUSINESS_RULE_VIOLATION",
        error=f"Journal validation failed: {rejected.error}",
        details={"journal_code": rejected.code, **rejected.details},
    )
