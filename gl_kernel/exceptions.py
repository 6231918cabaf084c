"""
Typed Exception Hierarchy for the GL Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the posting engine need to route failures precisely: an
unbalanced journal goes back to the data-entry screen, an approval
requirement goes to a workflow queue, a concurrent close is reported and
dropped. Parsing message strings for that is fragile, so:

  1. Every business failure has a TYPED exception class
  2. Every exception has a class-level CODE attribute (machine-readable)
  3. Exceptions carry structured DATA as attributes, not only a message

Exceptions are raised internally and caught at each public operation's
boundary, where they are translated into a discriminated result
(``validated`` / ``success`` flag + ``code`` + ``error`` + ``details``).
Infrastructure failures (SQLAlchemy, OS) are NOT part of this hierarchy
and propagate to the caller unchanged.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    GLKernelError (base)
    |
    +-- AccountError
    |   +-- AccountNotFoundError
    |   +-- InvalidAccountsError
    |
    +-- CurrencyError
    |   +-- InvalidCurrencyError
    |   +-- FxRateRequiredError
    |   +-- InvalidExchangeRateError
    |
    +-- TaxError
    |   +-- TaxMismatchError
    |
    +-- JournalError
    |   +-- JournalUnbalancedError
    |   +-- InvalidAmountError
    |   +-- BusinessRuleViolationError
    |   +-- InvalidDocumentAmountsError
    |   +-- PaymentValidationError
    |
    +-- AuthorizationError
    |   +-- SoDViolationError
    |   +-- ApprovalRequiredError
    |
    +-- PeriodError
        +-- InvalidPeriodRequestError
        +-- PeriodNotFoundError
        +-- PeriodAlreadyClosedError
        +-- PeriodAlreadyOpenError
        +-- PeriodCloseValidationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                           | When Raised
----------------|--------------------------------|--------------------------------------
Account         | ACCOUNT_NOT_FOUND              | Registry lookup miss
                | INVALID_ACCOUNTS               | Unknown, inactive or header account
----------------|--------------------------------|--------------------------------------
Currency        | INVALID_CURRENCY               | Malformed code or FX rate problem
----------------|--------------------------------|--------------------------------------
Tax             | TAX_MISMATCH                   | Supplied tax differs from computed
----------------|--------------------------------|--------------------------------------
Journal         | JOURNAL_UNBALANCED             | Debits != Credits beyond tolerance
                | INVALID_AMOUNT                 | Negative or out-of-range line amount
                | BUSINESS_RULE_VIOLATION        | Line limit, future date, wrapped
                | INVALID_AMOUNTS                | Document header/total invalid
                | PAYMENT_VALIDATION_FAILED      | Payment business rule failed
----------------|--------------------------------|--------------------------------------
Authorization   | SOD_VIOLATION                  | Role may not perform action
                | APPROVAL_REQUIRED              | Reopen needs an approval flow
----------------|--------------------------------|--------------------------------------
Period          | INVALID_INPUT                  | Missing fields / future close date
                | PERIOD_NOT_FOUND               | No such fiscal period
                | PERIOD_ALREADY_CLOSED          | CLOSED or LOCKED (or lost race)
                | PERIOD_ALREADY_OPEN            | Already OPEN (or lost race)
                | PERIOD_CLOSE_VALIDATION_FAILED | Pre-close checks reported errors
===============================================================================
"""

from decimal import Decimal
from typing import Any


class GLKernelError(Exception):
    """
    Base exception for all GL kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "GL_KERNEL_ERROR"


def error_details(exc: GLKernelError) -> dict[str, Any]:
    """Public structured attributes of an exception, for result payloads."""
    return {
        key: value
        for key, value in vars(exc).items()
        if not key.startswith("_") and key != "args"
    }


# Account-related exceptions


class AccountError(GLKernelError):
    """Base exception for account-related errors."""

    code: str = "ACCOUNT_ERROR"


class AccountNotFoundError(AccountError):
    """Account with given ID was not found in the registry."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class InvalidAccountsError(AccountError):
    """
    One or more journal lines reference accounts that cannot be posted to.

    An account is invalid when it does not exist, is inactive, or is a
    header (control) account with children.
    """

    code: str = "INVALID_ACCOUNTS"

    def __init__(
        self,
        message: str,
        invalid_account_ids: list[str] | None = None,
        inactive_account_ids: list[str] | None = None,
        header_account_ids: list[str] | None = None,
    ):
        self.invalid_account_ids = list(invalid_account_ids or [])
        self.inactive_account_ids = list(inactive_account_ids or [])
        self.header_account_ids = list(header_account_ids or [])
        super().__init__(message)


# Currency-related exceptions


class CurrencyError(GLKernelError):
    """Base exception for currency-related errors."""

    code: str = "INVALID_CURRENCY"


class InvalidCurrencyError(CurrencyError):
    """Currency code is not a 3-letter alphabetic code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency!r}")


class FxRateRequiredError(CurrencyError):
    """Transaction currency differs from base and no rate was supplied."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, transaction_currency: str, base_currency: str):
        self.transaction_currency = transaction_currency
        self.base_currency = base_currency
        super().__init__(
            f"Exchange rate required for {transaction_currency} "
            f"to {base_currency} conversion"
        )


class InvalidExchangeRateError(CurrencyError):
    """Supplied exchange rate is zero, negative or not finite."""

    code: str = "INVALID_CURRENCY"

    def __init__(
        self, transaction_currency: str, base_currency: str, rate: Decimal
    ):
        self.transaction_currency = transaction_currency
        self.base_currency = base_currency
        self.rate = rate
        super().__init__(
            f"Invalid exchange rate {rate} for {transaction_currency} "
            f"to {base_currency} conversion: rate must be positive"
        )


# Tax-related exceptions


class TaxError(GLKernelError):
    """Base exception for tax calculation errors."""

    code: str = "TAX_ERROR"


class TaxMismatchError(TaxError):
    """Supplied tax amount does not match line_amount * tax_rate."""

    code: str = "TAX_MISMATCH"

    def __init__(
        self,
        line_amount: Decimal,
        tax_rate: Decimal,
        expected: Decimal,
        supplied: Decimal,
    ):
        self.line_amount = line_amount
        self.tax_rate = tax_rate
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            f"Tax amount {supplied} does not match calculated tax {expected}"
        )


# Journal-related exceptions


class JournalError(GLKernelError):
    """Base exception for journal posting errors."""

    code: str = "JOURNAL_ERROR"


class JournalUnbalancedError(JournalError):
    """Debits do not equal credits within tolerance."""

    code: str = "JOURNAL_UNBALANCED"

    def __init__(
        self, total_debit: Decimal, total_credit: Decimal, difference: Decimal
    ):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = difference
        super().__init__(
            f"Journal entry is not balanced. Debits: {total_debit}, "
            f"Credits: {total_credit}, Difference: {difference}"
        )


class InvalidAmountError(JournalError):
    """A line amount is negative or outside the permitted range."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, line_number: int, side: str, amount: Decimal, reason: str):
        self.line_number = line_number
        self.side = side
        self.amount = amount
        super().__init__(f"Line {line_number}: {side} amount {amount} {reason}")


class BusinessRuleViolationError(JournalError):
    """A posting business rule (line limit, future date, ...) failed."""

    code: str = "BUSINESS_RULE_VIOLATION"

    def __init__(self, message: str, rule: str, **details: Any):
        self.rule = rule
        for key, value in details.items():
            setattr(self, key, value)
        super().__init__(message)


class InvalidDocumentAmountsError(JournalError):
    """Source document header is incomplete or its totals are not positive."""

    code: str = "INVALID_AMOUNTS"

    def __init__(self, message: str, **details: Any):
        for key, value in details.items():
            setattr(self, key, value)
        super().__init__(message)


class PaymentValidationError(JournalError):
    """Payment failed one or more business-rule checks."""

    code: str = "PAYMENT_VALIDATION_FAILED"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            f"Payment validation failed: {', '.join(self.errors)}"
        )


# Authorization exceptions


class AuthorizationError(GLKernelError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class SoDViolationError(AuthorizationError):
    """Segregation-of-duties policy denies the action for this role."""

    code: str = "SOD_VIOLATION"

    def __init__(
        self, reason: str, user_role: str, action: str, message: str | None = None
    ):
        self.reason = reason
        self.user_role = user_role
        self.action = action
        super().__init__(message or reason)


class ApprovalRequiredError(AuthorizationError):
    """
    Operation was flagged as approval-gated but the actor's SoD decision
    does not route it to an approval workflow.
    """

    code: str = "APPROVAL_REQUIRED"

    def __init__(
        self, action: str, user_role: str, approver_roles: tuple[str, ...] = ()
    ):
        self.action = action
        self.user_role = user_role
        self.approver_roles = tuple(approver_roles)
        approvers = " or ".join(self.approver_roles) or "an approver"
        super().__init__(f"{action} requires approval from {approvers}")


# Period-related exceptions


class PeriodError(GLKernelError):
    """Base exception for period lifecycle errors."""

    code: str = "PERIOD_ERROR"


class InvalidPeriodRequestError(PeriodError):
    """Period request is missing required fields or has invalid values."""

    code: str = "INVALID_INPUT"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[str] | None = None,
    ):
        self.field = field
        self.errors = list(errors or [])
        super().__init__(message)


class PeriodNotFoundError(PeriodError):
    """No fiscal period with the given ID exists for the tenant/company."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, fiscal_period_id: str):
        self.fiscal_period_id = fiscal_period_id
        super().__init__("Fiscal period not found")


class PeriodAlreadyClosedError(PeriodError):
    """Period is already CLOSED or LOCKED."""

    code: str = "PERIOD_ALREADY_CLOSED"

    def __init__(self, fiscal_period_id: str, status: str):
        self.fiscal_period_id = fiscal_period_id
        self.status = status
        super().__init__(f"Period is already {status.lower()}")


class PeriodAlreadyOpenError(PeriodError):
    """Period is already OPEN."""

    code: str = "PERIOD_ALREADY_OPEN"

    def __init__(self, fiscal_period_id: str):
        self.fiscal_period_id = fiscal_period_id
        super().__init__("Period is already open")


class PeriodCloseValidationError(PeriodError):
    """Pre-close validation reported blocking errors and force_close is off."""

    code: str = "PERIOD_CLOSE_VALIDATION_FAILED"

    def __init__(self, fiscal_period_id: str, errors: list[str]):
        self.fiscal_period_id = fiscal_period_id
        self.errors = list(errors)
        super().__init__(f"Period cannot be closed: {', '.join(self.errors)}")
