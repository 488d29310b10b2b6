"""Role gates for routes.

``require_role(Role.ADMIN)`` yields the caller's :class:`Principal` when they
hold that role or a higher one.  A denial raises
:class:`~emporium.errors.ForbiddenError`, so it is rendered as problem+json
like every other domain error.
"""

from __future__ import annotations

import logging

from fastapi import Depends

from emporium.auth.deps import Principal, get_current_user
from emporium.db.models import Role
from emporium.errors import ForbiddenError

logger = logging.getLogger("emporium.auth")


def require_role(role: Role | str):
    """Dependency factory; the dev admin passes every gate when auth is off."""
    required = Role(role).value

    async def _gate(principal: Principal = Depends(get_current_user)) -> Principal:
        if principal.has_role(required):
            return principal
        logger.warning("User %d with roles %s denied: %s required", principal.user_id, principal.roles, required)
        raise ForbiddenError(f"The {required} role or higher is required for this operation.")

    return _gate
