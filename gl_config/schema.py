"""
Configuration schema (``gl_config.schema``).

Frozen dataclasses describing the engine configuration: base currency,
posting limits and the segregation-of-duties policy.  Instances are built
by ``gl_config.loader`` from YAML and are immutable at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

WILDCARD = "*"


@dataclass(frozen=True)
class RolePolicy:
    """
    What one role may do.

    ``deny`` always wins over ``allow``.  ``"*"`` in ``allow`` grants every
    action.  An allowed action needs approval when it is listed in
    ``approval_required`` or when its amount exceeds
    ``approval_threshold``.
    """

    role: str
    allow: tuple[str, ...] = ()
    deny: tuple[str, ...] = ()
    approval_threshold: Decimal | None = None
    approval_required: tuple[str, ...] = ()

    def permits(self, action: str) -> bool:
        if action in self.deny:
            return False
        return WILDCARD in self.allow or action in self.allow


@dataclass(frozen=True)
class SoDPolicy:
    """Role policies plus the roles permitted to approve flagged work."""

    roles: dict[str, RolePolicy] = field(default_factory=dict)
    approver_roles: tuple[str, ...] = ()

    def role(self, name: str) -> RolePolicy | None:
        return self.roles.get(name.strip().lower()) if name else None


@dataclass(frozen=True)
class PostingLimits:
    max_lines: int = 100
    min_amount: Decimal = Decimal("0.01")
    max_amount: Decimal = Decimal("999999999.99")
    balance_tolerance: Decimal = Decimal("0.01")


@dataclass(frozen=True)
class EngineConfig:
    """The sole runtime configuration artifact."""

    config_id: str
    version: int
    base_currency: str
    posting: PostingLimits
    sod: SoDPolicy
    checksum: str
