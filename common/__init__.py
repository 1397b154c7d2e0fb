"""
Common library for reusable infrastructure components.

This package provides generic modules shared by the circle engine and
any API or job that hosts it:

- database: Async MongoDB connection manager (Motor)
- utils: Standard API exceptions with error codes
- config: Base settings class
"""

from common.database import MongoDB
from common.utils import (
    APIException,
    ForbiddenException,
    ConflictException,
    ValidationException,
    InvalidArgumentException,
    NotMemberException,
    CapacityExceededException,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    # Utils
    "APIException",
    "ForbiddenException",
    "ConflictException",
    "ValidationException",
    "InvalidArgumentException",
    "NotMemberException",
    "CapacityExceededException",
    # Config
    "BaseAppSettings",
]
