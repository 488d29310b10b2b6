"""Domain exception taxonomy.

Services raise these; the API layer maps them to problem+json responses
(see :mod:`emporium.api.errors`).  Status codes live on the classes so the
mapping stays in one place.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for errors a caller can act on."""

    status_code = 400
    title = "Domain Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ArgumentNullError(DomainError):
    """A required input object was absent."""

    title = "Bad Request"

    def __init__(self, argument: str) -> None:
        super().__init__(f"The argument '{argument}' is required.")
        self.argument = argument


class BadRequestError(DomainError):
    title = "Bad Request"


class RequestValidationFailed(DomainError):
    """Field-level validation failure, carrying ``{field: [messages]}``."""

    title = "Validation Error"

    def __init__(self, errors: dict[str, list[str]], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.errors = errors


class ForbiddenError(DomainError):
    status_code = 403
    title = "Forbidden"


class NotFoundError(DomainError):
    status_code = 404
    title = "Not Found"


class ConflictError(DomainError):
    status_code = 409
    title = "Conflict"


# ── Payload codec ───────────────────────────────────────────────


class PayloadError(BadRequestError):
    pass


class UnsupportedPayloadKind(PayloadError):
    """Payload object is not of the shape registered for the job kind."""


class MalformedPayload(PayloadError):
    """Payload text cannot be parsed into the registered shape."""


# ── Startup wiring ──────────────────────────────────────────────


class DispatchConfigurationError(RuntimeError):
    """Codec registry and dispatch table disagree on the governed operations."""
