"""
JWT token management for authentication.

Access and refresh tokens carry the same identity claims but are signed
with different secrets, so holding one never lets a client forge the other.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JOSEError
from pydantic import BaseModel, ValidationError as PydanticValidationError

from vidtube.config import Settings, get_settings
from vidtube.kernel.errors import InvalidToken, TokenExpired, UpstreamFailure
from vidtube.logging_config import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenSubject(Protocol):
    """Anything that can be put into token claims."""

    @property
    def id(self) -> uuid.UUID: ...

    @property
    def email(self) -> str: ...

    @property
    def username(self) -> str: ...

    @property
    def full_name(self) -> str: ...


class TokenClaims(BaseModel):
    """Decoded, verified token payload."""

    sub: uuid.UUID  # User ID
    email: str
    username: str
    full_name: str
    type: str
    exp: datetime
    iat: datetime
    jti: str

    @property
    def id(self) -> uuid.UUID:
        return self.sub


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires
    refresh_expires_in: int


class JWTManager:
    """
    JWT token creation and verification.

    Verification checks signature, expiry and token type only. Whether a
    refresh token is still the active session is decided against persisted
    state by the authentication service.
    """

    def __init__(
        self,
        access_secret: Optional[str] = None,
        refresh_secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
        refresh_token_expire_days: Optional[int] = None,
    ):
        settings = get_settings()
        self.access_secret = access_secret or settings.access_token_secret
        self.refresh_secret = refresh_secret or settings.refresh_token_secret
        self.algorithm = algorithm or settings.algorithm
        self.access_token_expire_minutes = (
            access_token_expire_minutes or settings.access_token_expire_minutes
        )
        self.refresh_token_expire_days = (
            refresh_token_expire_days or settings.refresh_token_expire_days
        )
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh tokens must use distinct secrets")

    @classmethod
    def from_settings(cls, settings: Settings) -> "JWTManager":
        return cls(
            access_secret=settings.access_token_secret,
            refresh_secret=settings.refresh_token_secret,
            algorithm=settings.algorithm,
            access_token_expire_minutes=settings.access_token_expire_minutes,
            refresh_token_expire_days=settings.refresh_token_expire_days,
        )

    @property
    def access_lifetime(self) -> timedelta:
        return timedelta(minutes=self.access_token_expire_minutes)

    @property
    def refresh_lifetime(self) -> timedelta:
        return timedelta(days=self.refresh_token_expire_days)

    def _encode(
        self,
        identity: TokenSubject,
        token_type: str,
        secret: str,
        lifetime: timedelta,
    ) -> tuple[str, datetime, str]:
        now = datetime.now(timezone.utc)
        expire = now + lifetime
        jti = str(uuid.uuid4())

        payload: dict[str, Any] = {
            "sub": str(identity.id),
            "email": identity.email,
            "username": identity.username,
            "full_name": identity.full_name,
            "type": token_type,
            "exp": expire,
            "iat": now,
            "jti": jti,
        }

        try:
            token = jwt.encode(payload, secret, algorithm=self.algorithm)
        except JOSEError as exc:
            logger.error("Token signing failed: %s", exc)
            raise UpstreamFailure("Internal server error") from exc
        return token, expire, jti

    def create_access_token(
        self,
        identity: TokenSubject,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime, str]:
        """
        Create a new access token.

        Args:
            identity: User (or verified claims) to encode
            expires_delta: Optional custom expiration time

        Returns:
            Tuple of (token, expiration_datetime, token_id)
        """
        return self._encode(
            identity,
            ACCESS_TOKEN_TYPE,
            self.access_secret,
            expires_delta or self.access_lifetime,
        )

    def create_refresh_token(
        self,
        identity: TokenSubject,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime, str]:
        """
        Create a new refresh token.

        Returns:
            Tuple of (token, expiration_datetime, token_id)
        """
        return self._encode(
            identity,
            REFRESH_TOKEN_TYPE,
            self.refresh_secret,
            expires_delta or self.refresh_lifetime,
        )

    def create_token_pair(self, identity: TokenSubject) -> TokenPair:
        """Create both access and refresh tokens for one identity."""
        access_token, access_exp, _ = self.create_access_token(identity)
        refresh_token, refresh_exp, _ = self.create_refresh_token(identity)

        now = datetime.now(timezone.utc)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int((access_exp - now).total_seconds()),
            refresh_expires_in=int((refresh_exp - now).total_seconds()),
        )

    def _decode(self, token: str, secret: str, expected_type: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise InvalidToken() from exc

        if payload.get("type") != expected_type:
            raise InvalidToken()

        try:
            return TokenClaims(
                sub=payload["sub"],
                email=payload["email"],
                username=payload["username"],
                full_name=payload["full_name"],
                type=payload["type"],
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                jti=payload["jti"],
            )
        except (KeyError, TypeError, PydanticValidationError) as exc:
            raise InvalidToken() from exc

    def verify_access_token(self, token: str) -> TokenClaims:
        """
        Verify and decode an access token.

        Raises:
            TokenExpired: Signature valid but past ``exp``
            InvalidToken: Anything else wrong with the token
        """
        return self._decode(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> TokenClaims:
        """
        Verify and decode a refresh token.

        Raises:
            TokenExpired: Signature valid but past ``exp``
            InvalidToken: Anything else wrong with the token
        """
        return self._decode(token, self.refresh_secret, REFRESH_TOKEN_TYPE)
