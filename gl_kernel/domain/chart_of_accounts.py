"""
ChartOfAccounts -- In-memory account hierarchy for the validator hot path.

Responsibility:
    Answers "does this account exist, is it active, what type/currency is
    it, does it have children" with O(1) lookups by id, plus hierarchy
    navigation (children, root-to-leaf code path) for diagnostics.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Built from a
    sequence of Account DTOs; ``from_store`` loads them once through the
    storage port.  There is no implicit caching beyond this object.

Failure modes:
    - AccountNotFoundError from ``resolve()`` / ``path_of()`` for unknown ids.
    - ValueError at construction on duplicate ids or a parent cycle.
"""

from collections.abc import Iterable
from typing import Protocol

from gl_kernel.domain.dtos import Account
from gl_kernel.exceptions import AccountNotFoundError
from gl_kernel.logging_config import get_logger

logger = get_logger("domain.chart_of_accounts")


class AccountSource(Protocol):
    """Anything that can list a company's accounts (e.g. the ledger store)."""

    def list_accounts(self, tenant_id: str, company_id: str) -> list[Account]: ...


class ChartOfAccounts:
    """
    Registry of accounts for one tenant/company.

    Contract:
        Instances are immutable after construction; rebuild to pick up
        account changes.

    Guarantees:
        - ``get()`` returns None (never raises) for unknown ids.
        - ``children_of()`` preserves insertion order.
        - ``path_of()`` is root first, the account itself last.
    """

    def __init__(self, accounts: Iterable[Account]):
        self._by_id: dict[str, Account] = {}
        self._children: dict[str, list[Account]] = {}

        for account in accounts:
            if account.id in self._by_id:
                raise ValueError(f"Duplicate account id in chart: {account.id}")
            self._by_id[account.id] = account

        for account in self._by_id.values():
            if account.parent_id is not None:
                self._children.setdefault(account.parent_id, []).append(account)

        for account_id in self._by_id:
            self._walk_to_root(account_id)

        logger.debug("chart_loaded", extra={"account_count": len(self._by_id)})

    @classmethod
    def from_store(
        cls, source: AccountSource, tenant_id: str, company_id: str
    ) -> "ChartOfAccounts":
        """Load a company's chart through the storage port."""
        return cls(source.list_accounts(tenant_id, company_id))

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._by_id

    def get(self, account_id: str) -> Account | None:
        return self._by_id.get(account_id)

    def resolve(self, account_id: str) -> Account:
        """
        Look up an account by id.

        Raises:
            AccountNotFoundError: If the id is unknown.
        """
        account = self._by_id.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def children_of(self, account_id: str) -> list[Account]:
        return list(self._children.get(account_id, ()))

    def has_children(self, account_id: str) -> bool:
        return bool(self._children.get(account_id))

    def path_of(self, account_id: str) -> list[str]:
        """Account codes from the root down to `account_id`."""
        self.resolve(account_id)
        return [self._by_id[a].code for a in reversed(self._walk_to_root(account_id))]

    def _walk_to_root(self, account_id: str) -> list[str]:
        chain: list[str] = []
        seen: set[str] = set()
        current: str | None = account_id
        while current is not None and current in self._by_id:
            if current in seen:
                raise ValueError(f"Account hierarchy cycle at {current}")
            seen.add(current)
            chain.append(current)
            current = self._by_id[current].parent_id
        return chain
