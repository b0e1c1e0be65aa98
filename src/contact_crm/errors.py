"""Error taxonomy shared by the server and the client layer.

Each error carries the HTTP status code it is rendered with, so the
transport boundary can map it without a lookup table and the client can
map a status code back to the same class.
"""

from __future__ import annotations


class CRMError(Exception):
    """Base class for every expected failure."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(CRMError):
    """Malformed or missing input; user-correctable."""

    status_code = 400
    default_message = "Invalid request"

    def __init__(
        self, message: str | None = None, fields: dict[str, str] | None = None
    ) -> None:
        super().__init__(message)
        self.fields = dict(fields or {})

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.fields:
            body["errors"] = self.fields
        return body


class AuthenticationError(CRMError):
    """Missing, invalid or expired credentials — the client must log in again."""

    status_code = 401
    default_message = "Authentication required"


class InvalidTokenError(AuthenticationError):
    default_message = "Invalid or expired token"


class AuthorizationError(CRMError):
    """Valid identity without the rights for the requested operation."""

    status_code = 403
    default_message = "Forbidden"


Forbidden = AuthorizationError


class NotFoundError(CRMError):
    status_code = 404
    default_message = "Not found"


class UpstreamUnavailable(CRMError):
    """The store or the network failed; reads may be retried."""

    status_code = 503
    default_message = "Service temporarily unavailable"


_BY_STATUS: dict[int, type[CRMError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
}


def error_for_status(status_code: int, message: str | None = None) -> CRMError:
    """Build the error matching an HTTP *status_code* (5xx → ``UpstreamUnavailable``)."""
    error_cls = _BY_STATUS.get(status_code)
    if error_cls is None:
        if status_code == 422:
            error_cls = ValidationError
        elif status_code >= 500:
            error_cls = UpstreamUnavailable
        else:
            error_cls = CRMError
    return error_cls(message)
