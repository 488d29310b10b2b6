"""FastAPI dependency: ``get_current_user``.

Returns a :class:`Principal` for the current request.

- When ``AUTH_ENABLED=false`` a bearer token is still honoured if it verifies;
  otherwise the dev admin (``AUTH_DEV_USER_ID``) is returned.
- When ``AUTH_ENABLED=true`` a valid Bearer JWT is required.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import jwt
from fastapi import Header, HTTPException, status

from emporium.config import settings
from emporium.db.models import Role
from emporium.utils.logger import ctx_user_id

logger = logging.getLogger("emporium.auth")

# Role ordering, higher index = more privilege.
_ROLE_ORDER = [Role.SHOPPER.value, Role.EMPLOYEE.value, Role.ADMIN.value]


@dataclass
class Principal:
    """Authenticated identity for a request."""

    user_id: int
    roles: list[str] = field(default_factory=list)

    def has_role(self, role: str) -> bool:
        """Return True if this principal holds *role* or a higher role."""
        if not role:
            return True
        try:
            required_idx = _ROLE_ORDER.index(role)
        except ValueError:
            return role in self.roles
        for r in self.roles:
            if r in _ROLE_ORDER and _ROLE_ORDER.index(r) >= required_idx:
                return True
        return False

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN.value)


def _dev_principal() -> Principal:
    return Principal(user_id=settings.AUTH_DEV_USER_ID, roles=[Role.ADMIN.value])


# ── JWT helpers ───────────────────────────────────────────────────────────────

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _principal_from_token(token: str, secret: str) -> Principal:
    """Decode and verify an HS256 JWT.  Raises HTTPException on failure."""
    try:
        payload = jwt.decode(token, secret, algorithms=["HS256"])
    except jwt.PyJWTError as exc:
        logger.debug("JWT decode failed: %s", exc)
        raise _unauthorized("Invalid or expired token") from exc
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise _unauthorized("Token subject must be a user id") from exc
    roles = payload.get("roles") or [Role.SHOPPER.value]
    return Principal(user_id=user_id, roles=[str(r).upper() for r in roles])


# ── Main dependency ───────────────────────────────────────────────────────────

async def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Principal:
    """Return the authenticated :class:`Principal` for this request.

    Also tags log records with the user id; the request middleware scopes
    that tag to the request.
    """
    bearer = None
    if authorization and authorization.lower().startswith("bearer "):
        bearer = authorization.split(" ", 1)[1]

    if not settings.AUTH_ENABLED:
        principal = _dev_principal()
        if bearer:
            try:
                principal = _principal_from_token(bearer, settings.AUTH_SECRET_KEY)
            except HTTPException:
                logger.debug("Ignoring unverifiable bearer token while auth is disabled")
        ctx_user_id.set(principal.user_id)
        return principal

    if not bearer:
        raise _unauthorized("Authentication required")
    principal = _principal_from_token(bearer, settings.AUTH_SECRET_KEY)
    ctx_user_id.set(principal.user_id)
    return principal


def create_access_token(user_id: int, roles: list[str], secret: str | None = None) -> str:
    """Sign a bearer token for *user_id*.  Used by tests and local tooling."""
    return jwt.encode(
        {"sub": str(user_id), "roles": roles},
        secret or settings.AUTH_SECRET_KEY,
        algorithm="HS256",
    )
