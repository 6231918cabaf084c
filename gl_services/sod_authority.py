"""
gl_services.sod_authority -- Segregation-of-duties decisions.

Responsibility:
    Decide whether a role may perform a sensitive action (posting, period
    close/open/lock) and whether the action must be routed for approval.
    Consumed identically by the journal validator and the period
    lifecycle manager.

Architecture position:
    Services layer.  Consumes ``SoDPolicy`` from gl_config.  Pure: the
    decision is a function of (context, action, amount) and the policy;
    nothing is cached or persisted.

Invariants:
    - ``allowed=False`` is always fatal to the caller.
    - ``requires_approval=True`` only ever accompanies ``allowed=True`` and
      means "proceed but flag", never a block.
    - Unknown or empty roles are denied.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from gl_config.schema import SoDPolicy
from gl_kernel.domain.dtos import PostingContext, SoDDecision
from gl_kernel.logging_config import get_logger

logger = get_logger("services.sod")


class SoDAction(str, Enum):
    """Sensitive actions gated by SoD."""

    JOURNAL_POST = "journal:post"
    PERIOD_CLOSE = "period:close"
    PERIOD_OPEN = "period:open"
    PERIOD_LOCK = "period:lock"


class SoDAuthorizer:
    """Role/threshold policy evaluator."""

    def __init__(self, policy: SoDPolicy):
        self._policy = policy

    @property
    def approver_roles(self) -> tuple[str, ...]:
        return self._policy.approver_roles

    def check(
        self,
        context: PostingContext,
        action: str | SoDAction,
        amount: Decimal | None = None,
    ) -> SoDDecision:
        """
        Evaluate the policy for one action.

        Args:
            context: Acting user, tenant and company.
            action: Action verb, e.g. "journal:post".
            amount: Monetary amount for threshold rules (base currency).

        Returns:
            SoDDecision(allowed, requires_approval, reason, approver_roles).
        """
        action_name = action.value if isinstance(action, SoDAction) else action
        role = (context.user_role or "").strip().lower()

        policy = self._policy.role(role)
        if policy is None:
            return self._deny(context, action_name, f"SoD: unknown role '{context.user_role}'")
        if action_name in policy.deny:
            return self._deny(
                context, action_name, f"SoD: role '{role}' is denied '{action_name}'"
            )
        if not policy.permits(action_name):
            return self._deny(
                context,
                action_name,
                f"SoD: role '{role}' is not permitted to perform '{action_name}'",
            )

        reason: str | None = None
        if action_name in policy.approval_required:
            reason = f"SoD: '{action_name}' by role '{role}' requires approval"
        elif (
            amount is not None
            and policy.approval_threshold is not None
            and amount > policy.approval_threshold
        ):
            reason = (
                f"SoD: amount {amount} exceeds approval threshold "
                f"{policy.approval_threshold} for role '{role}'"
            )

        if reason is None:
            return SoDDecision(allowed=True)

        logger.info(
            "sod_approval_required",
            extra={"action": action_name, "user_role": role, "amount": amount},
        )
        return SoDDecision(
            allowed=True,
            requires_approval=True,
            reason=reason,
            approver_roles=self._policy.approver_roles,
        )

    @staticmethod
    def _deny(context: PostingContext, action: str, reason: str) -> SoDDecision:
        logger.warning(
            "sod_denied",
            extra={
                "action": action,
                "user_role": context.user_role,
                "user_id": context.user_id,
                "reason": reason,
            },
        )
        return SoDDecision(allowed=False, reason=reason)
