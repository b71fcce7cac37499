"""Error taxonomy shared by the service layer and the HTTP error handlers.

Every failure the core raises is an ``AppError`` subclass tagged with an
``ErrorKind`` at the point where it is raised. The response shaper switches
on that kind; it never inspects message text.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    INVALID_OPERATION = "invalid_operation"
    REPOSITORY_FAILURE = "repository_failure"
    AUTHENTICATION = "authentication_error"
    HTTP = "http_error"


class AuthReason(str, Enum):
    MISSING = "missing"
    INVALID = "invalid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class FieldViolation:
    """A single rejected field: dotted path as sent by the client plus a message."""

    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class AppError(Exception):
    """Operational error carrying an explicit HTTP status."""

    kind: ErrorKind = ErrorKind.HTTP
    status_code: int = 500
    is_operational = True

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Client input failed one or more field rules."""

    kind = ErrorKind.VALIDATION
    status_code = 400

    def __init__(
        self,
        violations: list[FieldViolation],
        message: str = "Validation failed",
    ) -> None:
        super().__init__(message)
        self.violations = list(violations)

    @property
    def detail(self) -> str:
        if not self.violations:
            return self.message
        return "; ".join(f"{v.field}: {v.message}" for v in self.violations)


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class InvalidOperationError(AppError):
    """The requested state transition would break an invariant."""

    kind = ErrorKind.INVALID_OPERATION
    status_code = 409


class InsufficientStockError(InvalidOperationError):
    def __init__(self, product_id: int, quantity: int, *, absolute: bool = False) -> None:
        if absolute:
            message = f"Stock for product {product_id} cannot be set to {quantity}"
        else:
            message = (
                f"Insufficient stock for product {product_id}: "
                f"cannot apply change of {quantity}"
            )
        super().__init__(message)
        self.product_id = product_id
        self.quantity = quantity


class RepositoryFailure(AppError):
    """Storage was unavailable or answered with something unexpected.

    The message is safe to show to clients; the storage exception is kept as
    ``__cause__`` and only ever reaches the server log.
    """

    kind = ErrorKind.REPOSITORY_FAILURE
    status_code = 503

    def __init__(self, message: str = "Storage is unavailable") -> None:
        super().__init__(message)


class AuthenticationError(AppError):
    """Raised by the auth collaborator; rendered here, never produced here."""

    kind = ErrorKind.AUTHENTICATION
    status_code = 401

    def __init__(self, reason: AuthReason, message: str | None = None) -> None:
        if message is None:
            message = {
                AuthReason.MISSING: "Access token required",
                AuthReason.INVALID: "Invalid token",
                AuthReason.EXPIRED: "Token expired",
            }[reason]
        super().__init__(message)
        self.reason = reason
