"""
PeriodLifecycleManager -- fiscal period close, reopen and lock.

Responsibility:
    Drives the fiscal period state machine:

        OPEN   --close-->  CLOSED   (stamps closed_at/closed_by, adds a
                                     POSTING lock, optionally schedules
                                     reversing entries for accruals)
        CLOSED --lock-->   LOCKED   (explicit create_period_lock)
        CLOSED | LOCKED --open--> OPEN  (clears closed_at/closed_by and
                                         deactivates every lock)

    Each transition is gated by SoD; close additionally runs the pre-close
    validation report (unposted journals, trial balance, bank
    reconciliation, required adjustments).

Architecture position:
    Services layer.  Talks to persistence only through the ``LedgerStore``
    port and never commits; the caller owns the transaction.

Invariants enforced:
    - No no-op transitions: closing a CLOSED/LOCKED period fails with
      PERIOD_ALREADY_CLOSED, opening an OPEN one with PERIOD_ALREADY_OPEN.
    - At most one concurrent close/open wins: the period row is loaded
      FOR UPDATE and the status change is a compare-and-swap; the loser
      gets PERIOD_ALREADY_* and writes nothing.
    - After a successful reopen no lock for the period is active.
    - Reversing entries are scheduled at most once per accrual journal.

Failure modes (returned as PeriodOperationFailure codes):
    INVALID_INPUT, PERIOD_NOT_FOUND, PERIOD_ALREADY_CLOSED,
    PERIOD_ALREADY_OPEN, SOD_VIOLATION, APPROVAL_REQUIRED,
    PERIOD_CLOSE_VALIDATION_FAILED.  Storage errors propagate.

Audit relevance:
    Every transition logs period_closed / period_opened /
    period_lock_created with the acting user, and each scheduled reversal
    logs reversing_entry_created.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from gl_kernel.db.types import MONEY_TOLERANCE, round_money
from gl_kernel.domain.clock import Clock
from gl_kernel.domain.dtos import (
    FiscalPeriodInfo,
    LockType,
    PeriodLockInfo,
    PeriodStatus,
    PostingContext,
    ReversingEntryInfo,
)
from gl_kernel.exceptions import (
    ApprovalRequiredError,
    GLKernelError,
    InvalidPeriodRequestError,
    PeriodAlreadyClosedError,
    PeriodAlreadyOpenError,
    PeriodCloseValidationError,
    PeriodNotFoundError,
    SoDViolationError,
    error_details,
)
from gl_kernel.logging_config import LogContext, get_logger
from gl_kernel.services.ledger_store import LedgerStore
from gl_services._period_types import (
    DEFAULT_LOCK_REASON,
    ClosePeriodRequest,
    CreatePeriodLockRequest,
    OpenPeriodRequest,
    PeriodCloseChecks,
    PeriodCloseResult,
    PeriodCloseSuccess,
    PeriodCloseValidation,
    PeriodLockResult,
    PeriodLockSuccess,
    PeriodOpenResult,
    PeriodOpenSuccess,
    PeriodOperationFailure,
)
from gl_services.sod_authority import SoDAction, SoDAuthorizer

logger = get_logger("services.period_lifecycle")

_POSTING_GATES = (LockType.POSTING, LockType.FULL)


class PeriodLifecycleManager:
    """
    Fiscal period state machine over a LedgerStore.

    Contract:
        Public operations never raise for business failures; they return
        a success dataclass or PeriodOperationFailure.

    Non-goals:
        - Does NOT create fiscal periods.
        - Does NOT post reversing entries (a downstream job does).
    """

    def __init__(
        self,
        store: LedgerStore,
        authorizer: SoDAuthorizer,
        clock: Clock,
        balance_tolerance=MONEY_TOLERANCE,
    ):
        self._store = store
        self._authorizer = authorizer
        self._clock = clock
        self._tolerance = balance_tolerance

    # ------------------------------------------------------------------
    # Close
    # ------------------------------------------------------------------

    def close_fiscal_period(self, request: ClosePeriodRequest) -> PeriodCloseResult:
        """
        Close an OPEN period.

        Preconditions:
            request carries tenant, company, period, closer, role and a
            close date that is not in the future.
        Postconditions (success):
            status is CLOSED with closed_at/closed_by stamped, one active
            POSTING lock exists, and (if requested) accrual journals in the
            period have PENDING reversing entries dated at the start of the
            next period.
        """
        with LogContext.bind(
            tenant_id=request.tenant_id or None,
            company_id=request.company_id or None,
            actor_id=request.closed_by or None,
            fiscal_period_id=request.fiscal_period_id or None,
        ):
            try:
                return self._close(request)
            except GLKernelError as exc:
                return self._failure("period_close_rejected", exc)

    def _close(self, request: ClosePeriodRequest) -> PeriodCloseResult:
        closed_at = self._check_close_request(request)

        period = self._load(request.tenant_id, request.company_id, request.fiscal_period_id)
        if period.status != PeriodStatus.OPEN:
            raise PeriodAlreadyClosedError(period.id, period.status.value)

        self._authorize(
            request.tenant_id,
            request.company_id,
            request.closed_by,
            request.user_role,
            SoDAction.PERIOD_CLOSE,
        )

        validation = self._run_close_checks(period)
        if not validation.can_close:
            if not request.force_close:
                exc = PeriodCloseValidationError(period.id, list(validation.errors))
                return self._failure("period_close_rejected", exc, validation=validation)
            logger.warning(
                "period_close_forced",
                extra={"errors": list(validation.errors), "warnings": list(validation.warnings)},
            )

        if not self._store.transition_fiscal_period_status(
            period.id,
            expected=(PeriodStatus.OPEN,),
            new_status=PeriodStatus.CLOSED,
            closed_at=closed_at,
            closed_by=request.closed_by,
        ):
            current = self._store.find_fiscal_period(
                request.tenant_id, request.company_id, period.id
            )
            status = current.status if current is not None else PeriodStatus.CLOSED
            raise PeriodAlreadyClosedError(period.id, status.value)

        next_period = self._store.find_next_fiscal_period(period)

        reversing: list[ReversingEntryInfo] = []
        if request.generate_reversing_entries:
            reversing = self._schedule_reversals(period, next_period, request.closed_by)

        lock = self._insert_lock(
            period.id,
            LockType.POSTING,
            request.closed_by,
            request.lock_reason or DEFAULT_LOCK_REASON,
        )

        logger.info(
            "period_closed",
            extra={
                "closed_by": request.closed_by,
                "closed_at": closed_at,
                "forced": not validation.can_close,
                "reversing_entries_created": len(reversing),
                "lock_id": lock.id,
            },
        )
        return PeriodCloseSuccess(
            fiscal_period_id=period.id,
            closed_at=closed_at,
            closed_by=request.closed_by,
            validation=validation,
            lock=lock,
            reversing_entries_created=len(reversing),
            reversing_entries=tuple(reversing),
            next_period_id=next_period.id if next_period is not None else None,
        )

    def _check_close_request(self, request: ClosePeriodRequest) -> datetime:
        errors: list[str] = []
        if not request.tenant_id:
            errors.append("Tenant ID is required")
        if not request.company_id:
            errors.append("Company ID is required")
        if not request.fiscal_period_id:
            errors.append("Fiscal period ID is required")
        if not request.closed_by:
            errors.append("Closed by user ID is required")
        if not request.user_role:
            errors.append("User role is required")

        closed_at: datetime | None = None
        if request.close_date is None:
            errors.append("Close date is required")
        else:
            closed_at = _as_utc(request.close_date)
            if isinstance(request.close_date, datetime):
                in_future = closed_at > self._clock.now_utc()
            else:
                in_future = request.close_date > self._clock.today()
            if in_future:
                errors.append("Close date cannot be in the future")

        if errors:
            raise InvalidPeriodRequestError(
                f"Input validation failed: {', '.join(errors)}", errors=errors
            )
        return closed_at

    def _schedule_reversals(
        self,
        period: FiscalPeriodInfo,
        next_period: FiscalPeriodInfo | None,
        created_by: str,
    ) -> list[ReversingEntryInfo]:
        if next_period is None:
            logger.warning(
                "reversing_entries_skipped",
                extra={"reason": "no next period in fiscal calendar"},
            )
            return []

        created: list[ReversingEntryInfo] = []
        for journal in self._store.find_accrual_journals_without_reversal(
            period.tenant_id, period.company_id, period.start_date, period.end_date
        ):
            entry = self._store.insert_reversing_entry(
                tenant_id=period.tenant_id,
                company_id=period.company_id,
                original_journal_id=journal.id,
                reversal_date=next_period.start_date,
                reversal_reason=(
                    "Auto-reversal for period close: "
                    f"{journal.description or journal.journal_number}"
                ),
                created_by=created_by,
            )
            if entry is None:
                continue
            created.append(entry)
            logger.info(
                "reversing_entry_created",
                extra={
                    "original_journal_id": journal.id,
                    "reversal_date": entry.reversal_date,
                },
            )
        return created

    # ------------------------------------------------------------------
    # Pre-close validation
    # ------------------------------------------------------------------

    def validate_period_close(
        self, tenant_id: str, company_id: str, fiscal_period_id: str
    ) -> PeriodCloseValidation | PeriodOperationFailure:
        """Run the pre-close report without changing anything."""
        try:
            period = self._load(tenant_id, company_id, fiscal_period_id, for_update=False)
        except GLKernelError as exc:
            return self._failure("period_close_preview_rejected", exc)
        return self._run_close_checks(period)

    def _run_close_checks(self, period: FiscalPeriodInfo) -> PeriodCloseValidation:
        errors: list[str] = []
        warnings: list[str] = []

        unposted = self._store.count_unposted_journals(
            period.tenant_id, period.company_id, period.start_date, period.end_date
        )
        if unposted:
            errors.append(f"{unposted} unposted journal entries found")

        debits, credits = self._store.trial_balance_debits_credits(
            period.tenant_id, period.company_id, period.end_date
        )
        difference = debits - credits
        balanced = abs(difference) <= self._tolerance
        if not balanced:
            errors.append(f"Trial balance is out of balance by {round_money(difference)}")

        unreconciled = self._store.count_unreconciled_bank_transactions(
            period.tenant_id, period.company_id, period.start_date, period.end_date
        )
        if unreconciled:
            warnings.append(f"{unreconciled} unreconciled bank transactions")

        checks = PeriodCloseChecks(
            all_journals_posted=unposted == 0,
            trial_balance_balanced=balanced,
            no_unreconciled_transactions=unreconciled == 0,
            # Adjustment tracking does not exist yet; this check always passes.
            all_required_adjustments=True,
            approval_required=bool(errors or warnings),
            sod_compliance=True,
        )
        validation = PeriodCloseValidation(
            can_close=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            checks=checks,
            unposted_journal_count=unposted,
            trial_balance_difference=difference,
            unreconciled_transaction_count=unreconciled,
        )
        logger.debug(
            "period_close_checks",
            extra={
                "can_close": validation.can_close,
                "unposted_journals": unposted,
                "trial_balance_difference": difference,
                "unreconciled_transactions": unreconciled,
            },
        )
        return validation

    # ------------------------------------------------------------------
    # Reopen
    # ------------------------------------------------------------------

    def open_fiscal_period(self, request: OpenPeriodRequest) -> PeriodOpenResult:
        """
        Reopen a CLOSED or LOCKED period.

        When ``approval_required`` is set the actor's SoD decision must
        itself route the reopen for approval, otherwise APPROVAL_REQUIRED.
        """
        with LogContext.bind(
            tenant_id=request.tenant_id or None,
            company_id=request.company_id or None,
            actor_id=request.opened_by or None,
            fiscal_period_id=request.fiscal_period_id or None,
        ):
            try:
                return self._open(request)
            except GLKernelError as exc:
                return self._failure("period_open_rejected", exc)

    def _open(self, request: OpenPeriodRequest) -> PeriodOpenResult:
        missing = [
            name
            for name in ("fiscal_period_id", "opened_by", "open_reason")
            if not getattr(request, name)
        ]
        if missing:
            raise InvalidPeriodRequestError(
                "Missing required fields for period open",
                field=missing[0],
                errors=missing,
            )

        period = self._load(request.tenant_id, request.company_id, request.fiscal_period_id)
        if period.status == PeriodStatus.OPEN:
            raise PeriodAlreadyOpenError(period.id)

        decision = self._authorize(
            request.tenant_id,
            request.company_id,
            request.opened_by,
            request.user_role,
            SoDAction.PERIOD_OPEN,
        )
        if request.approval_required and not decision.requires_approval:
            raise ApprovalRequiredError(
                SoDAction.PERIOD_OPEN.value,
                request.user_role,
                approver_roles=self._authorizer.approver_roles,
            )

        if not self._store.transition_fiscal_period_status(
            period.id,
            expected=(PeriodStatus.CLOSED, PeriodStatus.LOCKED),
            new_status=PeriodStatus.OPEN,
            closed_at=None,
            closed_by=None,
        ):
            raise PeriodAlreadyOpenError(period.id)

        deactivated = self._store.deactivate_period_locks(period.id)

        logger.info(
            "period_opened",
            extra={
                "opened_by": request.opened_by,
                "open_reason": request.open_reason,
                "previous_status": period.status.value,
                "locks_deactivated": deactivated,
                "requires_approval": decision.requires_approval,
            },
        )
        return PeriodOpenSuccess(
            fiscal_period_id=period.id,
            opened_by=request.opened_by,
            open_reason=request.open_reason,
            previous_status=period.status,
            locks_deactivated=deactivated,
            requires_approval=decision.requires_approval,
            approver_roles=decision.approver_roles,
        )

    # ------------------------------------------------------------------
    # Locks
    # ------------------------------------------------------------------

    def create_period_lock(self, request: CreatePeriodLockRequest) -> PeriodLockResult:
        """
        SoD-gated lock insert.

        Locking a CLOSED period moves it to LOCKED; locks on OPEN or LOCKED
        periods are recorded without a status change.
        """
        with LogContext.bind(
            tenant_id=request.tenant_id or None,
            company_id=request.company_id or None,
            actor_id=request.locked_by or None,
            fiscal_period_id=request.fiscal_period_id or None,
        ):
            try:
                return self._lock(request)
            except GLKernelError as exc:
                return self._failure("period_lock_rejected", exc)

    def _lock(self, request: CreatePeriodLockRequest) -> PeriodLockResult:
        missing = [
            name
            for name in ("tenant_id", "company_id", "fiscal_period_id", "locked_by", "user_role")
            if not getattr(request, name)
        ]
        if missing:
            raise InvalidPeriodRequestError(
                "Missing required fields for period lock",
                field=missing[0],
                errors=missing,
            )

        self._authorize(
            request.tenant_id,
            request.company_id,
            request.locked_by,
            request.user_role,
            SoDAction.PERIOD_LOCK,
        )
        period = self._load(request.tenant_id, request.company_id, request.fiscal_period_id)

        if period.status == PeriodStatus.CLOSED:
            # A concurrent reopen wins the CAS; the lock is still recorded.
            self._store.transition_fiscal_period_status(
                period.id,
                expected=(PeriodStatus.CLOSED,),
                new_status=PeriodStatus.LOCKED,
                closed_at=period.closed_at,
                closed_by=period.closed_by,
            )

        lock = self._insert_lock(
            period.id, request.lock_type, request.locked_by, request.reason
        )
        return PeriodLockSuccess(lock=lock)

    def _insert_lock(
        self, fiscal_period_id: str, lock_type: LockType, locked_by: str, reason: str
    ) -> PeriodLockInfo:
        lock = self._store.insert_period_lock(fiscal_period_id, lock_type, locked_by, reason)
        logger.info(
            "period_lock_created",
            extra={"lock_id": lock.id, "lock_type": lock_type.value, "locked_by": locked_by},
        )
        return lock

    def active_posting_lock(
        self, tenant_id: str, company_id: str, on_date: date
    ) -> PeriodLockInfo | None:
        """The active POSTING or FULL lock gating postings dated `on_date`, if any."""
        period = self._store.find_period_for_date(tenant_id, company_id, on_date)
        if period is None:
            return None
        for lock in self._store.list_period_locks(period.id, active_only=True):
            if lock.lock_type in _POSTING_GATES:
                return lock
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(
        self,
        tenant_id: str,
        company_id: str,
        fiscal_period_id: str,
        for_update: bool = True,
    ) -> FiscalPeriodInfo:
        period = self._store.find_fiscal_period(
            tenant_id, company_id, fiscal_period_id, for_update=for_update
        )
        if period is None:
            raise PeriodNotFoundError(fiscal_period_id)
        return period

    def _authorize(
        self,
        tenant_id: str,
        company_id: str,
        user_id: str,
        user_role: str,
        action: SoDAction,
    ):
        decision = self._authorizer.check(
            PostingContext(
                tenant_id=tenant_id,
                company_id=company_id,
                user_id=user_id,
                user_role=user_role,
            ),
            action,
        )
        if not decision.allowed:
            reason = decision.reason or f"role '{user_role}' may not perform {action.value}"
            raise SoDViolationError(
                reason,
                user_role=user_role,
                action=action.value,
                message=f"SoD violation: {reason}",
            )
        return decision

    @staticmethod
    def _failure(
        event: str,
        exc: GLKernelError,
        validation: PeriodCloseValidation | None = None,
    ) -> PeriodOperationFailure:
        logger.warning(event, extra={"code": exc.code, "error": str(exc)})
        return PeriodOperationFailure(
            code=exc.code,
            error=str(exc),
            details=error_details(exc),
            validation=validation,
        )


def _as_utc(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
