"""Exceptions raised by the insights pipeline and its collaborators."""

from typing import Any


class InsightsError(Exception):
    """Base exception for insights errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Error body returned to HTTP callers."""
        return {"error": self.message}


class UnauthenticatedError(InsightsError):
    """No calling identity was supplied."""

    status_code = 401


class RateLimitedError(InsightsError):
    """Too many requests from one identity inside the current window."""

    status_code = 429

    def __init__(self, identity: str, retry_after: int):
        super().__init__(
            "Too many requests",
            details={"identity": identity, "retry_after": retry_after},
        )
        self.identity = identity
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "retryAfter": self.retry_after}


class ValidationError(InsightsError):
    """A required input field is missing or unusable."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field


class AggregationError(InsightsError):
    """The data store could not be read."""

    status_code = 500


class AiAdvisorError(InsightsError):
    """The AI path produced nothing usable.

    Covers network failures, non-2xx responses, timeouts, malformed JSON and
    payloads without insights. Always absorbed by the pipeline.
    """

    def __init__(self, reason: str, details: Any = None):
        super().__init__(f"AI advisor failed: {reason}", details=details)
        self.reason = reason
