"""
Authentication service: register, login, refresh, logout.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from vidtube.kernel.errors import (
    Conflict,
    DuplicateAccount,
    InvalidCredentials,
    InvalidToken,
    TokenReuseDetected,
    ValidationError,
)
from vidtube.kernel.identity.credential_store import (
    CredentialStore,
    SanitizedIdentity,
    sanitize,
)
from vidtube.kernel.identity.jwt import JWTManager, TokenPair
from vidtube.kernel.identity.password import PasswordHasher
from vidtube.logging_config import get_logger

logger = get_logger(__name__)

# Seconds after a rotation during which a superseded token counts as a race
REUSE_GRACE_SECONDS = 10


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class AuthenticationService:
    """
    Orchestrates the session lifecycle of one identity at a time.

    Each identity holds at most one refresh token. Login overwrites it,
    refresh swaps it for a new one, logout clears it. A refresh token that
    is well formed but no longer the stored one is rejected.
    """

    def __init__(
        self,
        store: CredentialStore,
        jwt_manager: Optional[JWTManager] = None,
        hasher: Optional[PasswordHasher] = None,
        revoke_on_reuse: bool = True,
        reuse_grace_seconds: int = REUSE_GRACE_SECONDS,
    ):
        self.store = store
        self.jwt_manager = jwt_manager or JWTManager()
        self.hasher = hasher or PasswordHasher()
        self.revoke_on_reuse = revoke_on_reuse
        self.reuse_grace_seconds = reuse_grace_seconds

    async def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        full_name: str,
        avatar_url: Optional[str],
        cover_image_url: Optional[str],
    ) -> SanitizedIdentity:
        """
        Register a new user.

        The avatar and cover image must already be uploaded; only their
        URLs are stored. No tokens are issued here.

        Raises:
            ValidationError: A field is missing or blank
            DuplicateAccount: Username or email already registered
        """
        text_fields = {
            "username": username,
            "email": email,
            "password": password,
            "full_name": full_name,
        }
        missing = [name for name, value in text_fields.items() if _is_blank(value)]
        if missing:
            raise ValidationError("All fields are required", fields=missing)

        # Keeps the two login identifiers disjoint
        if "@" not in email:
            raise ValidationError("Email address is invalid", fields=["email"])
        if "@" in username:
            raise ValidationError("Username must not contain '@'", fields=["username"])

        if not avatar_url or not cover_image_url:
            raise ValidationError(
                "Avatar and cover image are required",
                fields=[
                    name
                    for name, value in (("avatar", avatar_url), ("cover_image", cover_image_url))
                    if not value
                ],
            )

        password_hash = await asyncio.to_thread(self.hasher.hash, password)

        try:
            user = await self.store.create(
                username=username,
                email=email,
                full_name=full_name,
                password_hash=password_hash,
                avatar_url=avatar_url,
                cover_image_url=cover_image_url,
            )
        except Conflict as exc:
            logger.info("Registration rejected: duplicate username or email")
            raise DuplicateAccount() from exc

        logger.info("User registered", extra={"user_id": str(user.id)})
        return sanitize(user)

    async def login(
        self,
        identifier: Optional[str],
        password: Optional[str],
    ) -> tuple[SanitizedIdentity, TokenPair]:
        """
        Authenticate by email or username and start a new session.

        Any session the user already had is replaced.

        Raises:
            ValidationError: No identifier supplied
            InvalidCredentials: Unknown identifier or wrong password
        """
        if _is_blank(identifier):
            raise ValidationError("Email or username is required", fields=["email", "username"])
        if not password:
            raise InvalidCredentials()

        user = await self.store.find_by_email_or_username(identifier.strip())
        if user is None:
            raise InvalidCredentials()

        if not await asyncio.to_thread(self.hasher.verify, password, user.password_hash):
            logger.info("Login failed: wrong password", extra={"user_id": str(user.id)})
            raise InvalidCredentials()

        token_pair = self.jwt_manager.create_token_pair(user)
        if not await self.store.set_refresh_token(user.id, token_pair.refresh_token):
            # Record vanished between lookup and write
            raise InvalidCredentials()

        logger.info("User logged in", extra={"user_id": str(user.id)})
        return sanitize(user), token_pair

    async def refresh(self, presented_token: Optional[str]) -> TokenPair:
        """
        Exchange the active refresh token for a new pair (rotation).

        Raises:
            InvalidToken: Malformed, expired, or no active session
            TokenReuseDetected: The token was already rotated out
        """
        if _is_blank(presented_token):
            raise InvalidToken("Refresh token is required")

        claims = self.jwt_manager.verify_refresh_token(presented_token)
        new_pair = self.jwt_manager.create_token_pair(claims)

        if await self.store.rotate_refresh_token(
            claims.id,
            expected=presented_token,
            replacement=new_pair.refresh_token,
        ):
            logger.info("Refresh token rotated", extra={"user_id": str(claims.id)})
            return new_pair

        user = await self.store.find_by_id(claims.id)
        if user is None:
            raise InvalidToken()

        if user.refresh_token is None:
            logger.info("Refresh after logout rejected", extra={"user_id": str(user.id)})
            raise InvalidToken("Session has ended, please log in again")

        revoke = self.revoke_on_reuse and not self._rotated_recently(user.refresh_token)
        logger.warning(
            "Superseded refresh token presented",
            extra={"user_id": str(user.id), "session_revoked": revoke},
        )
        if revoke:
            await self.store.rotate_refresh_token(
                user.id,
                expected=user.refresh_token,
                replacement=None,
            )
        raise TokenReuseDetected()

    def _rotated_recently(self, stored_token: str) -> bool:
        """
        True when the stored token was issued inside the reuse grace window.

        A token superseded that recently lost a concurrent refresh; it is
        not treated as a replay.
        """
        try:
            stored = self.jwt_manager.verify_refresh_token(stored_token)
        except InvalidToken:
            return False
        age = datetime.now(timezone.utc) - stored.iat
        return age < timedelta(seconds=self.reuse_grace_seconds)

    async def logout(self, user_id: uuid.UUID) -> None:
        """End the session. Logging out twice is not an error."""
        cleared = await self.store.set_refresh_token(user_id, None)
        logger.info(
            "User logged out",
            extra={"user_id": str(user_id), "found": cleared},
        )

    async def get_identity(self, user_id: uuid.UUID) -> Optional[SanitizedIdentity]:
        user = await self.store.find_by_id(user_id)
        return sanitize(user) if user is not None else None
