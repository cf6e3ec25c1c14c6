"""
Authentication schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from vidtube.kernel.identity.credential_store import SanitizedIdentity


class UserResponse(SanitizedIdentity):
    """User profile response."""


class UserLogin(BaseModel):
    """
    User login request.

    Either identifier is enough; when both are given the email is used.
    """

    email: Optional[str] = Field(None, max_length=255)
    username: Optional[str] = Field(None, max_length=64)
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_identifier(self) -> "UserLogin":
        if not (self.email and self.email.strip()) and not (self.username and self.username.strip()):
            raise ValueError("Email or username is required")
        return self

    @property
    def identifier(self) -> str:
        return (self.email or "").strip() or (self.username or "").strip()


class TokenResponse(BaseModel):
    """Access/refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginResponse(TokenResponse):
    """Login result: tokens plus the signed-in profile."""

    user: UserResponse


class RefreshTokenRequest(BaseModel):
    """Token refresh request. Optional when the refresh cookie is present."""

    refresh_token: Optional[str] = None
