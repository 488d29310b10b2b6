"""AuthN/AuthZ helpers for Emporium.

Opt-in via ``AUTH_ENABLED=true`` in settings.  When disabled (the default)
every request runs as ``AUTH_DEV_USER_ID`` with the *ADMIN* role, so local
usage works without issuing tokens.

Credential scheme
-----------------
``Authorization: Bearer <jwt>``
   HS256-signed JWT.  Claims: ``sub`` (integer user id), ``roles`` (list[str]).
   Token issuance lives outside this service.

Role hierarchy (checked with ``require_role``)
-----------------------------------------------
``ADMIN`` > ``EMPLOYEE`` > ``SHOPPER``
"""

from emporium.auth.deps import Principal, get_current_user
from emporium.auth.roles import require_role

__all__ = ["Principal", "get_current_user", "require_role"]
