"""
Fiscal period reopen and lock tests.

Verifies:
- Reopen moves CLOSED or LOCKED back to OPEN, clears closed_at/closed_by
  and deactivates every lock
- Roles whose policy routes period:open for approval get requires_approval
- approval_required demands an approval-routed decision
- create_period_lock moves CLOSED to LOCKED; other statuses keep theirs
- Only POSTING and FULL locks gate postings
"""

from datetime import date
from unittest.mock import patch

import pytest

from gl_kernel.domain.dtos import LockType, PeriodStatus
from gl_kernel.exceptions import InvalidPeriodRequestError
from gl_services._period_types import (
    ClosePeriodRequest,
    CreatePeriodLockRequest,
    OpenPeriodRequest,
)


@pytest.fixture
def open_request():
    def _make(fiscal_period_id, **overrides):
        fields = dict(
            tenant_id="tenant-1",
            company_id="company-1",
            fiscal_period_id=fiscal_period_id,
            opened_by="mgr-1",
            user_role="manager",
            open_reason="Late supplier bill",
        )
        fields.update(overrides)
        return OpenPeriodRequest(**fields)

    return _make


@pytest.fixture
def lock_request():
    def _make(fiscal_period_id, **overrides):
        fields = dict(
            tenant_id="tenant-1",
            company_id="company-1",
            fiscal_period_id=fiscal_period_id,
            locked_by="ctrl-1",
            user_role="accountant",
        )
        fields.update(overrides)
        return CreatePeriodLockRequest(**fields)

    return _make


@pytest.fixture
def closed_may(period_manager, periods):
    result = period_manager.close_fiscal_period(
        ClosePeriodRequest(
            tenant_id="tenant-1",
            company_id="company-1",
            fiscal_period_id=periods["may"],
            closed_by="closer-1",
            user_role="accountant",
            close_date=date(2024, 6, 1),
        )
    )
    assert result.success is True
    return periods["may"]


class TestReopen:
    def test_reopen_closed_period(self, period_manager, store, closed_may, open_request):
        result = period_manager.open_fiscal_period(open_request(closed_may))

        assert result.success is True
        assert result.status is PeriodStatus.OPEN
        assert result.previous_status is PeriodStatus.CLOSED
        assert result.locks_deactivated == 1
        assert result.requires_approval is False

        period = store.find_fiscal_period("tenant-1", "company-1", closed_may)
        assert period.status is PeriodStatus.OPEN
        assert period.closed_at is None
        assert period.closed_by is None
        assert store.list_period_locks(closed_may, active_only=True) == []
        assert len(store.list_period_locks(closed_may)) == 1

    def test_reopen_releases_posting_gate(self, period_manager, closed_may, open_request):
        assert period_manager.active_posting_lock("tenant-1", "company-1", date(2024, 5, 9))
        period_manager.open_fiscal_period(open_request(closed_may))
        assert period_manager.active_posting_lock("tenant-1", "company-1", date(2024, 5, 9)) is None

    def test_reopen_locked_period(self, period_manager, store, create_period, open_request):
        locked = create_period(
            4, date(2024, 4, 1), date(2024, 4, 30), status="LOCKED", closed_by="closer-0"
        )
        result = period_manager.open_fiscal_period(open_request(locked))

        assert result.success is True
        assert result.previous_status is PeriodStatus.LOCKED
        assert result.locks_deactivated == 0
        assert store.find_fiscal_period("tenant-1", "company-1", locked).closed_by is None

    def test_close_reopen_close_cycle(self, period_manager, store, closed_may, open_request):
        period_manager.open_fiscal_period(open_request(closed_may))
        again = period_manager.close_fiscal_period(
            ClosePeriodRequest(
                tenant_id="tenant-1",
                company_id="company-1",
                fiscal_period_id=closed_may,
                closed_by="closer-2",
                user_role="manager",
                close_date=date(2024, 6, 10),
            )
        )
        assert again.success is True
        active = store.list_period_locks(closed_may, active_only=True)
        assert [lock.locked_by for lock in active] == ["closer-2"]

    def test_reopen_logged(self, period_manager, closed_may, open_request, captured_logs):
        period_manager.open_fiscal_period(open_request(closed_may))
        opened = [r for r in captured_logs() if r["message"] == "period_opened"]
        assert opened[0]["open_reason"] == "Late supplier bill"
        assert opened[0]["previous_status"] == "CLOSED"
        assert opened[0]["fiscal_period_id"] == closed_may


class TestReopenApproval:
    def test_accountant_reopen_flagged(self, period_manager, closed_may, open_request):
        result = period_manager.open_fiscal_period(
            open_request(closed_may, opened_by="acc-1", user_role="accountant")
        )
        assert result.success is True
        assert result.requires_approval is True
        assert result.approver_roles == ("manager", "admin")

    def test_approval_required_but_not_routed(self, period_manager, store, closed_may, open_request):
        result = period_manager.open_fiscal_period(open_request(closed_may, approval_required=True))

        assert result.success is False
        assert result.code == "APPROVAL_REQUIRED"
        assert result.error == "period:open requires approval from manager or admin"
        assert result.details["approver_roles"] == ("manager", "admin")
        assert store.find_fiscal_period("tenant-1", "company-1", closed_may).status is (
            PeriodStatus.CLOSED
        )

    def test_approval_required_and_routed(self, period_manager, closed_may, open_request):
        result = period_manager.open_fiscal_period(
            open_request(closed_may, user_role="accountant", approval_required=True)
        )
        assert result.success is True
        assert result.requires_approval is True


class TestReopenRejections:
    def test_already_open(self, period_manager, periods, open_request):
        result = period_manager.open_fiscal_period(open_request(periods["june"]))
        assert result.code == "PERIOD_ALREADY_OPEN"
        assert result.error == "Period is already open"

    def test_missing_reason(self, period_manager, closed_may, open_request):
        result = period_manager.open_fiscal_period(open_request(closed_may, open_reason=""))
        assert result.code == "INVALID_INPUT"
        assert result.error == "Missing required fields for period open"
        assert result.details["errors"] == ["open_reason"]

    def test_clerk_denied(self, period_manager, closed_may, open_request):
        result = period_manager.open_fiscal_period(open_request(closed_may, user_role="clerk"))
        assert result.code == "SOD_VIOLATION"
        assert result.details["action"] == "period:open"

    def test_missing_period(self, period_manager, open_request):
        assert period_manager.open_fiscal_period(open_request("gone")).code == "PERIOD_NOT_FOUND"

    def test_losing_reopen_keeps_locks(self, period_manager, store, closed_may, open_request):
        with patch.object(store, "transition_fiscal_period_status", return_value=False):
            result = period_manager.open_fiscal_period(open_request(closed_may))

        assert result.code == "PERIOD_ALREADY_OPEN"
        assert len(store.list_period_locks(closed_may, active_only=True)) == 1

    def test_from_mapping(self):
        request = OpenPeriodRequest.from_mapping(
            {
                "fiscalPeriodId": "p",
                "openedBy": "u",
                "userRole": "manager",
                "openReason": "  audit fix ",
                "approvalRequired": "yes",
            }
        )
        assert request.open_reason == "audit fix"
        assert request.approval_required is True
        assert request.tenant_id == ""


class TestPeriodLock:
    def test_lock_closed_period(self, period_manager, store, closed_may, lock_request):
        result = period_manager.create_period_lock(
            lock_request(closed_may, lock_type=LockType.FULL, reason="Audit sign-off")
        )

        assert result.success is True
        assert result.lock.lock_type is LockType.FULL
        assert result.lock.reason == "Audit sign-off"
        period = store.find_fiscal_period("tenant-1", "company-1", closed_may)
        assert period.status is PeriodStatus.LOCKED
        assert period.closed_by == "closer-1"
        assert len(store.list_period_locks(closed_may, active_only=True)) == 2

    def test_locked_period_cannot_be_closed(self, period_manager, closed_may, lock_request):
        period_manager.create_period_lock(lock_request(closed_may))
        again = period_manager.close_fiscal_period(
            ClosePeriodRequest(
                tenant_id="tenant-1",
                company_id="company-1",
                fiscal_period_id=closed_may,
                closed_by="closer-1",
                user_role="admin",
                close_date=date(2024, 6, 2),
            )
        )
        assert again.error == "Period is already locked"

    def test_lock_open_period_keeps_status(self, period_manager, store, periods, lock_request):
        result = period_manager.create_period_lock(lock_request(periods["june"]))

        assert result.success is True
        assert result.lock.lock_type is LockType.POSTING
        assert result.lock.reason == "Period closed"
        assert store.find_fiscal_period("tenant-1", "company-1", periods["june"]).is_open
        lock = period_manager.active_posting_lock("tenant-1", "company-1", date(2024, 6, 14))
        assert lock.id == result.lock.id

    def test_reporting_lock_does_not_gate_posting(self, period_manager, periods, lock_request):
        period_manager.create_period_lock(
            lock_request(periods["june"], lock_type=LockType.REPORTING)
        )
        assert period_manager.active_posting_lock("tenant-1", "company-1", date(2024, 6, 14)) is None

    def test_full_lock_gates_posting(self, period_manager, periods, lock_request):
        period_manager.create_period_lock(lock_request(periods["june"], lock_type=LockType.FULL))
        lock = period_manager.active_posting_lock("tenant-1", "company-1", date(2024, 6, 14))
        assert lock.lock_type is LockType.FULL

    def test_no_period_for_date(self, period_manager, periods):
        assert period_manager.active_posting_lock("tenant-1", "company-1", date(2025, 1, 1)) is None

    def test_clerk_cannot_lock(self, period_manager, store, periods, lock_request):
        result = period_manager.create_period_lock(lock_request(periods["june"], user_role="clerk"))
        assert result.code == "SOD_VIOLATION"
        assert store.list_period_locks(periods["june"]) == []

    def test_missing_fields(self, period_manager, lock_request):
        result = period_manager.create_period_lock(lock_request("", locked_by=""))
        assert result.code == "INVALID_INPUT"
        assert result.details["errors"] == ["fiscal_period_id", "locked_by"]

    def test_missing_period(self, period_manager, lock_request):
        assert period_manager.create_period_lock(lock_request("gone")).code == "PERIOD_NOT_FOUND"

    def test_lock_type_parsing(self):
        request = CreatePeriodLockRequest.from_mapping({"lockType": "reporting"})
        assert request.lock_type is LockType.REPORTING
        assert request.reason == "Period closed"

    def test_invalid_lock_type(self):
        with pytest.raises(InvalidPeriodRequestError, match="Invalid lock type: weekly"):
            CreatePeriodLockRequest.from_mapping({"lock_type": "weekly"})
