"""
Request-scoped access token check.
"""

from typing import Optional

from vidtube.kernel.errors import InvalidToken, Unauthenticated
from vidtube.kernel.identity.credential_store import (
    CredentialStore,
    SanitizedIdentity,
    sanitize,
)
from vidtube.kernel.identity.jwt import JWTManager


class AccessGuard:
    """Resolve an access token to the identity it was issued for."""

    def __init__(self, store: CredentialStore, jwt_manager: JWTManager):
        self.store = store
        self.jwt_manager = jwt_manager

    async def authenticate(self, raw_token: Optional[str]) -> SanitizedIdentity:
        """
        Verify ``raw_token`` and load its subject.

        Only the access token is checked. The refresh token plays no part,
        so an access token stays usable until it expires even after logout.

        Raises:
            Unauthenticated: Missing, invalid or expired token, or unknown user
        """
        if not raw_token:
            raise Unauthenticated("Access token is required")

        try:
            claims = self.jwt_manager.verify_access_token(raw_token)
        except InvalidToken as exc:
            raise Unauthenticated("Invalid or expired access token") from exc

        user = await self.store.find_by_id(claims.id)
        if user is None:
            raise Unauthenticated("Invalid access token")

        return sanitize(user)
