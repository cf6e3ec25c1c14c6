"""
Pydantic schemas for API request/response validation.
"""

from vidtube.schemas.auth import (
    UserLogin,
    UserResponse,
    TokenResponse,
    LoginResponse,
    RefreshTokenRequest,
)
from vidtube.schemas.common import (
    ErrorResponse,
    HealthResponse,
    SuccessResponse,
)

__all__ = [
    # Auth
    "UserLogin",
    "UserResponse",
    "TokenResponse",
    "LoginResponse",
    "RefreshTokenRequest",
    # Common
    "ErrorResponse",
    "HealthResponse",
    "SuccessResponse",
]
