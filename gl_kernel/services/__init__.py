"""Kernel services: flush-only writers over a caller-owned Session."""

from gl_kernel.services.ledger_store import LedgerStore, SqlLedgerStore

__all__ = ["LedgerStore", "SqlLedgerStore"]
