"""
Access policy.

A single capability check parameterized by the roles allowed to perform an
operation. Returns a typed decision; `require_access` turns a denial into
AccessDeniedError for the request layer.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from src.integrations.base import Role, User
from src.services.exceptions import AccessDeniedError

logger = logging.getLogger(__name__)

ADMIN_ONLY = frozenset({Role.ADMIN})
ADMIN_OR_INSTRUCTOR = frozenset({Role.ADMIN, Role.INSTRUCTOR})
ANY_AUTHENTICATED = frozenset({Role.ADMIN, Role.INSTRUCTOR, Role.STUDENT})


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access check."""

    allowed: bool
    actor_id: Optional[uuid.UUID] = None
    reason: str = ""


def check_access(
    actor: Optional[User],
    allowed_roles: frozenset[Role],
    target_user_id: Optional[uuid.UUID] = None,
) -> AccessDecision:
    """
    Decide whether an actor may perform an operation.

    Args:
        actor: Resolved calling user (None when unauthenticated)
        allowed_roles: Roles permitted to perform the operation on anyone
        target_user_id: User the operation acts on; the actor may always act
            on themselves

    Returns:
        AccessDecision
    """
    if actor is None:
        return AccessDecision(allowed=False, reason="No authorization provided")

    if actor.role in allowed_roles:
        return AccessDecision(allowed=True, actor_id=actor.id)

    if target_user_id is not None and target_user_id == actor.id:
        return AccessDecision(allowed=True, actor_id=actor.id)

    return AccessDecision(
        allowed=False,
        actor_id=actor.id,
        reason=f"Role [{actor.role.value}] is not authorized",
    )


def require_access(
    actor: Optional[User],
    allowed_roles: frozenset[Role],
    target_user_id: Optional[uuid.UUID] = None,
) -> uuid.UUID:
    """
    Like check_access, but raise on denial.

    Returns:
        The actor's user ID

    Raises:
        AccessDeniedError: If the actor is not allowed
    """
    decision = check_access(actor, allowed_roles, target_user_id)
    if not decision.allowed:
        logger.warning(f"Access denied for actor {decision.actor_id}: {decision.reason}")
        raise AccessDeniedError(decision.reason or "Current user is not authorized")
    return decision.actor_id


def is_admin_or_instructor(actor: Optional[User]) -> bool:
    return check_access(actor, ADMIN_OR_INSTRUCTOR).allowed
