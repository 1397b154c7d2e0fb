"""
Exceptions with error codes.

Extends FastAPI's HTTPException with standardized error codes so that
an API hosting the circle engine can surface engine errors unchanged.

Example:
    from common.utils import InvalidArgumentException

    if not content.strip():
        raise InvalidArgumentException(
            "Message content cannot be empty", code="EMPTY_MESSAGE"
        )
"""

from typing import Optional, Any, Dict
from fastapi import HTTPException


class APIException(HTTPException):
    """
    Base API exception with error code support.

    Provides consistent error response format across the API.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Create an API exception.

        Args:
            status_code: HTTP status code
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
            headers: Optional response headers
        """
        detail: Dict[str, Any] = {"message": message}

        if code:
            detail["code"] = code

        if details is not None:
            detail["details"] = details

        super().__init__(
            status_code=status_code,
            detail=detail,
            headers=headers,
        )

    @property
    def message(self) -> str:
        return self.detail["message"]

    @property
    def code(self) -> Optional[str]:
        return self.detail.get("code")

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" if self.code else self.message


class ForbiddenException(APIException):
    """403 Forbidden - Valid auth but insufficient permissions."""

    def __init__(
        self,
        message: str = "Forbidden",
        code: str = "FORBIDDEN",
        details: Optional[Any] = None,
    ):
        super().__init__(403, message, code, details)


class ConflictException(APIException):
    """409 Conflict - Resource already exists or state conflict."""

    def __init__(
        self,
        message: str = "Conflict",
        code: str = "CONFLICT",
        details: Optional[Any] = None,
    ):
        super().__init__(409, message, code, details)


class ValidationException(APIException):
    """422 Validation Error - Request validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        code: str = "VALIDATION_ERROR",
        details: Optional[Any] = None,
        errors: Optional[list] = None,
    ):
        detail_info = details
        if errors:
            detail_info = {"errors": errors, **(details or {})}
        super().__init__(422, message, code, detail_info)


# ─────────────────────────────────────────────────────────────────
# Circle engine errors
# ─────────────────────────────────────────────────────────────────


class InvalidArgumentException(ValidationException):
    """Empty content, unknown circle/goal/message id, malformed date."""

    def __init__(
        self,
        message: str = "Invalid argument",
        code: str = "INVALID_ARGUMENT",
        details: Optional[Any] = None,
    ):
        super().__init__(message, code, details)


class NotMemberException(ForbiddenException):
    """User has no active membership in the circle."""

    def __init__(
        self,
        message: str = "You are not a member of this circle",
        code: str = "NOT_CIRCLE_MEMBER",
        details: Optional[Any] = None,
    ):
        super().__init__(message, code, details)


class CapacityExceededException(ConflictException):
    """Circle is already at maxMembers."""

    def __init__(
        self,
        message: str = "This circle is full",
        code: str = "CIRCLE_FULL",
        details: Optional[Any] = None,
    ):
        super().__init__(message, code, details)
