"""
Journal Validator -- the balance and invariant engine.

Responsibility:
    Validates a proposed JournalPostingInput against the chart of accounts,
    the FX policy and the SoD authorizer, and returns either a validated
    posting intent in base currency or a coded rejection.  Nothing is
    persisted; the caller owns the write once ``validated`` is True.

Architecture position:
    Engines -- pure.  Collaborators are injected; the only clock access is
    the injected Clock used for the "not in the future" rule.

Steps (short-circuit on the first fatal error):
    1. Structure: at least one line, at most ``max_lines``; every account
       exists, is active and is not a header account; every amount is
       finite; the currency is a 3-letter code and any required FX rate
       is valid.  Lines are converted into base currency.
    2. Balance: |Σdebit - Σcredit| <= tolerance, else JOURNAL_UNBALANCED
       with the signed difference.
    3. Amounts: no negatives, non-zero amounts within [min, max]; the
       journal date is not in the future.
    4. SoD ``journal:post`` on the base-currency debit total.  A denial
       is fatal; an approval flag is carried on the accepted result.
    5. Advisory warnings for entries against an account's normal balance.

Failure modes (as JournalRejected codes):
    INVALID_ACCOUNTS, INVALID_CURRENCY, JOURNAL_UNBALANCED, INVALID_AMOUNT,
    SOD_VIOLATION, BUSINESS_RULE_VIOLATION.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from gl_engines.tracer import traced_engine
from gl_kernel.db.types import MONEY_TOLERANCE, ZERO
from gl_kernel.domain.chart_of_accounts import ChartOfAccounts
from gl_kernel.domain.clock import Clock
from gl_kernel.domain.dtos import (
    Account,
    CoaWarning,
    JournalAccepted,
    JournalLine,
    JournalPostingInput,
    JournalRejected,
    JournalValidationResult,
    NormalBalance,
    PostingContext,
    SoDDecision,
)
from gl_kernel.domain.fx_policy import FxPolicy, is_currency_code, normalize_currency
from gl_kernel.exceptions import (
    BusinessRuleViolationError,
    GLKernelError,
    InvalidAccountsError,
    InvalidAmountError,
    InvalidCurrencyError,
    JournalUnbalancedError,
    SoDViolationError,
    error_details,
)
from gl_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.journal_validator")

JOURNAL_POST_ACTION = "journal:post"

DEFAULT_MAX_LINES = 100
DEFAULT_MIN_AMOUNT = Decimal("0.01")
DEFAULT_MAX_AMOUNT = Decimal("999999999.99")


class Authorizer(Protocol):
    """SoD decision source (see gl_services.sod_authority.SoDAuthorizer)."""

    def check(
        self,
        context: PostingContext,
        action: str,
        amount: Decimal | None = None,
    ) -> SoDDecision: ...


class JournalValidator:
    """
    Stateless validator bound to one chart of accounts and base currency.

    Contract:
        ``validate_journal`` never raises for business failures; it returns
        JournalRejected with a code.  Unexpected exceptions propagate.

    Guarantees:
        - Accepted results carry base-currency lines whose debits and
          credits balance within tolerance.
        - requires_approval is only ever set together with validated=True.
    """

    def __init__(
        self,
        chart: ChartOfAccounts,
        authorizer: Authorizer,
        clock: Clock,
        base_currency: str,
        fx_policy: FxPolicy | None = None,
        max_lines: int = DEFAULT_MAX_LINES,
        min_amount: Decimal = DEFAULT_MIN_AMOUNT,
        max_amount: Decimal = DEFAULT_MAX_AMOUNT,
        balance_tolerance: Decimal = MONEY_TOLERANCE,
    ):
        self._chart = chart
        self._authorizer = authorizer
        self._clock = clock
        self.base_currency = normalize_currency(base_currency)
        self._fx = fx_policy or FxPolicy(self.base_currency)
        self._max_lines = max_lines
        self._min_amount = min_amount
        self._max_amount = max_amount
        self._tolerance = balance_tolerance

    @traced_engine("journal_validator", "1.0", fingerprint_fields=("journal",))
    def validate_journal(self, journal: JournalPostingInput) -> JournalValidationResult:
        """
        Validate a proposed journal.

        Args:
            journal: The posting input, in transaction currency.

        Returns:
            JournalAccepted (validated=True) or JournalRejected
            (validated=False, code, error, details).
        """
        with LogContext.bind(
            tenant_id=journal.context.tenant_id,
            company_id=journal.context.company_id,
            actor_id=journal.context.user_id,
            journal_number=journal.journal_number,
        ):
            try:
                accepted = self._validate(journal)
            except GLKernelError as exc:
                logger.warning(
                    "journal_rejected",
                    extra={"code": exc.code, "error": str(exc)},
                )
                return JournalRejected(
                    code=exc.code,
                    error=str(exc),
                    details=error_details(exc),
                )

            logger.info(
                "journal_validated",
                extra={
                    "line_count": len(accepted.lines),
                    "total_debit": accepted.total_debit,
                    "currency": accepted.currency,
                    "requires_approval": accepted.requires_approval,
                    "coa_warning_count": len(accepted.coa_warnings),
                },
            )
            return accepted

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _validate(self, journal: JournalPostingInput) -> JournalAccepted:
        accounts = self._check_structure(journal.lines)
        self._check_finite(journal.lines)
        rate = self._resolve_rate(journal)
        base_lines = tuple(self._to_base(line, rate) for line in journal.lines)

        total_debit = sum((line.debit for line in base_lines), ZERO)
        total_credit = sum((line.credit for line in base_lines), ZERO)
        difference = total_debit - total_credit
        if abs(difference) > self._tolerance:
            raise JournalUnbalancedError(total_debit, total_credit, difference)

        self._check_amounts(journal.lines)
        self._check_date(journal)

        decision = self._authorizer.check(
            journal.context, JOURNAL_POST_ACTION, amount=total_debit
        )
        if not decision.allowed:
            raise SoDViolationError(
                decision.reason
                or f"User role '{journal.context.user_role}' is not authorized "
                f"to post journal entries",
                user_role=journal.context.user_role,
                action=JOURNAL_POST_ACTION,
            )

        return JournalAccepted(
            journal_number=journal.journal_number,
            journal_date=journal.journal_date,
            currency=self.base_currency,
            exchange_rate=rate,
            lines=base_lines,
            total_debit=total_debit,
            total_credit=total_credit,
            requires_approval=decision.requires_approval,
            approver_roles=decision.approver_roles if decision.requires_approval else (),
            coa_warnings=tuple(self._normal_balance_warnings(base_lines, accounts)),
            description=journal.description,
            reference=journal.reference,
        )

    def _check_structure(self, lines: tuple[JournalLine, ...]) -> dict[str, Account]:
        if not lines:
            raise InvalidAccountsError("Journal must have at least one line")
        if len(lines) > self._max_lines:
            raise BusinessRuleViolationError(
                f"Journal cannot have more than {self._max_lines} lines",
                rule="max_lines",
                line_count=len(lines),
                max_lines=self._max_lines,
            )

        missing: list[str] = []
        inactive: list[str] = []
        headers: list[str] = []
        resolved: dict[str, Account] = {}
        for line in lines:
            if line.account_id in resolved:
                continue
            account = self._chart.get(line.account_id)
            if account is None:
                if line.account_id not in missing:
                    missing.append(line.account_id)
                continue
            if not account.is_active:
                inactive.append(account.id)
            elif self._chart.has_children(account.id):
                headers.append(account.id)
            resolved[account.id] = account

        if missing or inactive or headers:
            problems = []
            if missing:
                problems.append(f"not found: {', '.join(missing)}")
            if inactive:
                problems.append(f"inactive: {', '.join(inactive)}")
            if headers:
                problems.append(f"header accounts cannot be posted to: {', '.join(headers)}")
            raise InvalidAccountsError(
                f"Invalid accounts ({'; '.join(problems)})",
                invalid_account_ids=missing,
                inactive_account_ids=inactive,
                header_account_ids=headers,
            )
        return resolved

    def _resolve_rate(self, journal: JournalPostingInput) -> Decimal:
        if not is_currency_code(journal.currency):
            raise InvalidCurrencyError(journal.currency)
        return self._fx.validate_rate(
            self.base_currency, journal.currency, journal.exchange_rate
        )

    def _to_base(self, line: JournalLine, rate: Decimal) -> JournalLine:
        if rate == 1:
            return line
        return JournalLine(
            account_id=line.account_id,
            debit=self._fx.convert(line.debit, rate),
            credit=self._fx.convert(line.credit, rate),
            description=line.description,
            reference=line.reference,
        )

    @staticmethod
    def _check_finite(lines: tuple[JournalLine, ...]) -> None:
        # NaN and infinities cannot be ordered; reject them before any sum.
        for number, line in enumerate(lines, start=1):
            for side, amount in (("debit", line.debit), ("credit", line.credit)):
                if not amount.is_finite():
                    raise InvalidAmountError(number, side, amount, "must be a finite number")

    def _check_amounts(self, lines: tuple[JournalLine, ...]) -> None:
        for number, line in enumerate(lines, start=1):
            for side, amount in (("debit", line.debit), ("credit", line.credit)):
                if amount < 0:
                    raise InvalidAmountError(number, side, amount, "cannot be negative")
                if amount != 0 and not (self._min_amount <= amount <= self._max_amount):
                    raise InvalidAmountError(
                        number,
                        side,
                        amount,
                        f"must be between {self._min_amount} and {self._max_amount}",
                    )

    def _check_date(self, journal: JournalPostingInput) -> None:
        today = self._clock.today()
        if journal.journal_date is None:
            raise BusinessRuleViolationError(
                "Journal date is required", rule="journal_date_required"
            )
        if journal.journal_date > today:
            raise BusinessRuleViolationError(
                "Journal date cannot be in the future",
                rule="future_date",
                journal_date=journal.journal_date,
                today=today,
            )

    @staticmethod
    def _normal_balance_warnings(
        lines: tuple[JournalLine, ...], accounts: dict[str, Account]
    ) -> list[CoaWarning]:
        warnings: list[CoaWarning] = []
        for line in lines:
            account = accounts.get(line.account_id)
            if account is None:
                continue
            normal = account.account_type.normal_balance
            if normal is NormalBalance.DEBIT and line.credit > 0:
                side, amount = NormalBalance.CREDIT, line.credit
            elif normal is NormalBalance.CREDIT and line.debit > 0:
                side, amount = NormalBalance.DEBIT, line.debit
            else:
                continue
            warnings.append(
                CoaWarning(
                    account_id=account.id,
                    warning=(
                        f"{side.value.capitalize()} entry to "
                        f"{account.account_type.value} account {account.code} "
                        f"(normally has {normal.value} balance)"
                    ),
                    account_type=account.account_type,
                    amount=amount,
                    side=side,
                )
            )
        return warnings
