"""Request and result types for the period lifecycle manager."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from gl_kernel.db.types import ZERO
from gl_kernel.domain.dtos import (
    LockType,
    PeriodLockInfo,
    PeriodStatus,
    ReversingEntryInfo,
)
from gl_kernel.domain.parsing import parse_datetime, pick
from gl_kernel.exceptions import InvalidPeriodRequestError

DEFAULT_LOCK_REASON = "Period closed"


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _close_date(value: Any) -> datetime | None:
    try:
        return parse_datetime(value, "close_date")
    except ValueError as exc:
        raise InvalidPeriodRequestError(str(exc), field="close_date") from exc


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClosePeriodRequest:
    """
    Close a fiscal period.

    ``close_date`` is stamped as ``closed_at``; a bare date means midnight UTC.
    """

    tenant_id: str
    company_id: str
    fiscal_period_id: str
    closed_by: str
    user_role: str
    close_date: datetime | date | None
    generate_reversing_entries: bool = False
    force_close: bool = False
    lock_reason: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ClosePeriodRequest:
        """
        Raises:
            InvalidPeriodRequestError: If close_date is not an ISO date/datetime.
        """
        return cls(
            tenant_id=_text(pick(data, "tenant_id")),
            company_id=_text(pick(data, "company_id")),
            fiscal_period_id=_text(pick(data, "fiscal_period_id")),
            closed_by=_text(pick(data, "closed_by")),
            user_role=_text(pick(data, "user_role")),
            close_date=_close_date(pick(data, "close_date")),
            generate_reversing_entries=_flag(pick(data, "generate_reversing_entries", False)),
            force_close=_flag(pick(data, "force_close", False)),
            lock_reason=pick(data, "lock_reason"),
        )


@dataclass(frozen=True)
class OpenPeriodRequest:
    tenant_id: str
    company_id: str
    fiscal_period_id: str
    opened_by: str
    user_role: str
    open_reason: str
    approval_required: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> OpenPeriodRequest:
        return cls(
            tenant_id=_text(pick(data, "tenant_id")),
            company_id=_text(pick(data, "company_id")),
            fiscal_period_id=_text(pick(data, "fiscal_period_id")),
            opened_by=_text(pick(data, "opened_by")),
            user_role=_text(pick(data, "user_role")),
            open_reason=_text(pick(data, "open_reason")),
            approval_required=_flag(pick(data, "approval_required", False)),
        )


@dataclass(frozen=True)
class CreatePeriodLockRequest:
    tenant_id: str
    company_id: str
    fiscal_period_id: str
    locked_by: str
    user_role: str
    lock_type: LockType = LockType.POSTING
    reason: str = DEFAULT_LOCK_REASON

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CreatePeriodLockRequest:
        """
        Raises:
            InvalidPeriodRequestError: If lock_type is not POSTING/REPORTING/FULL.
        """
        raw_type = _text(pick(data, "lock_type")) or LockType.POSTING.value
        try:
            lock_type = LockType(raw_type.upper())
        except ValueError as exc:
            raise InvalidPeriodRequestError(
                f"Invalid lock type: {raw_type}", field="lock_type"
            ) from exc
        return cls(
            tenant_id=_text(pick(data, "tenant_id")),
            company_id=_text(pick(data, "company_id")),
            fiscal_period_id=_text(pick(data, "fiscal_period_id")),
            locked_by=_text(pick(data, "locked_by")),
            user_role=_text(pick(data, "user_role")),
            lock_type=lock_type,
            reason=_text(pick(data, "reason")) or DEFAULT_LOCK_REASON,
        )


# ---------------------------------------------------------------------------
# Pre-close validation report
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PeriodCloseChecks:
    all_journals_posted: bool
    trial_balance_balanced: bool
    no_unreconciled_transactions: bool
    all_required_adjustments: bool
    approval_required: bool
    sod_compliance: bool


@dataclass(frozen=True)
class PeriodCloseValidation:
    """
    Pre-close validation report.

    Errors block the close unless forced; warnings never do.
    """

    can_close: bool
    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    checks: PeriodCloseChecks
    unposted_journal_count: int = 0
    trial_balance_difference: Decimal = ZERO
    unreconciled_transaction_count: int = 0


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PeriodCloseSuccess:
    fiscal_period_id: str
    closed_at: datetime
    closed_by: str
    validation: PeriodCloseValidation
    lock: PeriodLockInfo
    reversing_entries_created: int = 0
    reversing_entries: tuple[ReversingEntryInfo, ...] = ()
    next_period_id: str | None = None
    status: PeriodStatus = PeriodStatus.CLOSED
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class PeriodOpenSuccess:
    fiscal_period_id: str
    opened_by: str
    open_reason: str
    previous_status: PeriodStatus
    locks_deactivated: int
    requires_approval: bool = False
    approver_roles: tuple[str, ...] = ()
    status: PeriodStatus = PeriodStatus.OPEN
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class PeriodLockSuccess:
    lock: PeriodLockInfo
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class PeriodOperationFailure:
    """Coded failure; ``validation`` is set for PERIOD_CLOSE_VALIDATION_FAILED."""

    code: str
    error: str
    details: dict[str, Any] = field(default_factory=dict)
    validation: PeriodCloseValidation | None = None
    success: bool = field(default=False, init=False)


PeriodCloseResult = PeriodCloseSuccess | PeriodOperationFailure
PeriodOpenResult = PeriodOpenSuccess | PeriodOperationFailure
PeriodLockResult = PeriodLockSuccess | PeriodOperationFailure
