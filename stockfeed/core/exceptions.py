"""
Exception hierarchy for stockfeed.

Batch operations return summaries instead of raising; only the errors
below cross the service boundary. The HTTP layer maps them to status codes
via ``code``.
"""

from __future__ import annotations

from typing import Any


class StockFeedError(Exception):
    """Base exception for all stockfeed errors.

    Attributes:
        message: Human readable message.
        code: Stable machine-readable error code.
        details: Extra context for the error payload.
    """

    def __init__(
        self,
        message: str,
        code: str = "STOCKFEED_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception into an error payload."""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class UpstreamError(StockFeedError):
    """An upstream API call failed (bad status, transport error, bad body)."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(
            message,
            code="UPSTREAM_ERROR",
            details={"status": status},
        )
        self.status = status
        self.body = body


class ValidationError(StockFeedError):
    """A caller broke an operation's precondition (e.g. missing symbol)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else None,
        )
        self.field = field


class NotFoundError(StockFeedError):
    """A referenced entity does not exist."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(
            f"{resource} not found: {identifier}",
            code="NOT_FOUND",
            details={"resource": resource, "id": identifier},
        )
        self.resource = resource
        self.identifier = identifier


class SessionClosedError(StockFeedError):
    """The browser session manager has been shut down."""

    def __init__(self) -> None:
        super().__init__("Browser session has been shut down", code="SESSION_CLOSED")
