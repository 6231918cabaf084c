"""Read-only query selectors returning DTOs."""

from gl_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["LedgerSelector"]
