"""
Utilities module - Standard exceptions with error codes.
"""

from common.utils.exceptions import (
    APIException,
    ForbiddenException,
    ConflictException,
    ValidationException,
    InvalidArgumentException,
    NotMemberException,
    CapacityExceededException,
)

__all__ = [
    "APIException",
    "ForbiddenException",
    "ConflictException",
    "ValidationException",
    "InvalidArgumentException",
    "NotMemberException",
    "CapacityExceededException",
]
