"""
Application exception hierarchy.

Services raise these; app.main maps them to HTTP responses using the
status_code and code carried by each class. Per-item failures inside batch
operations (backfill, insight sync) are recorded in the batch result and never
surface as exceptions.
"""


class PostPulseError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "", **details):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.code
        self.details = details

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# ================================
# Request Errors
# ================================

class ValidationError(PostPulseError):
    """Raised when a request is malformed or missing a required confirmation."""

    status_code = 400
    code = "validation_error"


class AuthenticationError(PostPulseError):
    """Raised when the request has no valid authenticated user."""

    status_code = 401
    code = "unauthorized"


class PermissionDeniedError(PostPulseError):
    """Raised when a non-operator asks for an all-users operation."""

    status_code = 403
    code = "forbidden"


class NotFoundError(PostPulseError):
    """Raised when a requested resource does not exist or is not owned by the caller."""

    status_code = 404
    code = "not_found"


class NotConnectedError(NotFoundError):
    """Raised when the user has no connected account for the requested platform."""

    code = "platform_not_connected"


# ================================
# Dependency Errors
# ================================

class UpstreamUnavailableError(PostPulseError):
    """Raised when the embedding provider or a platform API cannot serve a request."""

    status_code = 503
    code = "upstream_unavailable"


class PersistenceError(PostPulseError):
    """Raised when a database read or write needed by the operation fails."""

    status_code = 500
    code = "persistence_error"


class MetricsFetchError(PostPulseError):
    """Raised by the platform metrics client when one post's metrics cannot be fetched."""

    status_code = 502
    code = "metrics_fetch_failed"
