"""
GL Kernel - posting and period control core.

A validation-first general ledger core with:
- Balanced double-entry journal validation
- Chart-of-accounts typing and normal-balance advisories
- Base-currency FX policy
- Fiscal period state (OPEN / CLOSED / LOCKED) with period locks
- Structured, machine-readable error codes
"""

__version__ = "0.1.0"
