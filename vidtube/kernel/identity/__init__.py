"""
Identity Core - credentials, tokens and sessions.
"""

from vidtube.kernel.identity.password import PasswordHasher, verify_password, hash_password
from vidtube.kernel.identity.jwt import (
    JWTManager,
    TokenClaims,
    TokenPair,
)
from vidtube.kernel.identity.credential_store import (
    CredentialStore,
    SanitizedIdentity,
    sanitize,
)
from vidtube.kernel.identity.authentication_service import AuthenticationService
from vidtube.kernel.identity.access_guard import AccessGuard

__all__ = [
    "PasswordHasher",
    "verify_password",
    "hash_password",
    "JWTManager",
    "TokenClaims",
    "TokenPair",
    "CredentialStore",
    "SanitizedIdentity",
    "sanitize",
    "AuthenticationService",
    "AccessGuard",
]
