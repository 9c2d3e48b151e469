"""
Error taxonomy shared by the storage layer and the HTTP routes.

Every error carries the HTTP status the API should answer with, so handlers
can translate them without inspecting the concrete type:

    PortfolioError (500)
       ├── ValidationError (400)      malformed or missing input
       ├── AuthenticationError (401)  no valid session
       ├── NotFoundError (404)        mutation aimed at an unknown id
       ├── ConflictError (409)        uniqueness violation (slug, email, filename)
       └── TransportError (503)       backing store unavailable
"""

from __future__ import annotations

from typing import Any, Optional


class PortfolioError(Exception):
    """Base class for application errors rendered as a JSON error envelope."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or "INTERNAL_ERROR"
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(PortfolioError):
    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class AuthenticationError(PortfolioError):
    def __init__(
        self,
        message: str = "Not authenticated",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTHENTICATION_ERROR",
            details=details,
        )


class NotFoundError(PortfolioError):
    """
    Raised when a mutation targets a record that does not exist.

    Example:
        raise NotFoundError("Project", 7)
        # Message: "Project with id '7' not found"
    """

    def __init__(
        self,
        resource: str,
        resource_id: Any = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class ConflictError(PortfolioError):
    def __init__(
        self,
        message: str = "Resource conflict",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=409,
            error_code="CONFLICT",
            details=details,
        )


class TransportError(PortfolioError):
    """The database could not be reached or dropped the connection."""

    def __init__(
        self,
        message: str = "Storage backend unavailable",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=503,
            error_code="SERVICE_UNAVAILABLE",
            details=details,
        )
