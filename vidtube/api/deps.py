"""
FastAPI dependencies for authentication and database sessions.
"""

from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.assets import AssetStore
from vidtube.config import Settings
from vidtube.api.session_cookies import SessionCookiePolicy, read_access_cookie
from vidtube.kernel.identity.access_guard import AccessGuard
from vidtube.kernel.identity.authentication_service import AuthenticationService
from vidtube.kernel.identity.credential_store import CredentialStore, SanitizedIdentity
from vidtube.kernel.identity.jwt import JWTManager
from vidtube.kernel.identity.password import PasswordHasher


# Security scheme
security = HTTPBearer(auto_error=False)


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session from the application's database handle."""
    async with request.app.state.database.session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings_dep)]


def get_jwt_manager(request: Request) -> JWTManager:
    return request.app.state.jwt_manager


def get_asset_store(request: Request) -> AssetStore:
    return request.app.state.asset_store


def get_cookie_policy(settings: AppSettings) -> SessionCookiePolicy:
    return SessionCookiePolicy.from_settings(settings)


def get_credential_store(db: DbSession) -> CredentialStore:
    return CredentialStore(db)


def get_auth_service(
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    jwt_manager: Annotated[JWTManager, Depends(get_jwt_manager)],
    settings: AppSettings,
) -> AuthenticationService:
    return AuthenticationService(
        store,
        jwt_manager=jwt_manager,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        revoke_on_reuse=settings.revoke_session_on_token_reuse,
        reuse_grace_seconds=settings.token_reuse_grace_seconds,
    )


def extract_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Cookie first, then ``Authorization: Bearer``."""
    cookie_token = read_access_cookie(request)
    if cookie_token:
        return cookie_token
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


async def get_current_identity(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    store: Annotated[CredentialStore, Depends(get_credential_store)],
    jwt_manager: Annotated[JWTManager, Depends(get_jwt_manager)],
) -> SanitizedIdentity:
    """Resolve the caller or raise Unauthenticated (401)."""
    guard = AccessGuard(store, jwt_manager)
    identity = await guard.authenticate(extract_access_token(request, credentials))
    request.state.identity = identity
    return identity


AuthService = Annotated[AuthenticationService, Depends(get_auth_service)]
CookiePolicy = Annotated[SessionCookiePolicy, Depends(get_cookie_policy)]
Assets = Annotated[AssetStore, Depends(get_asset_store)]
CurrentIdentity = Annotated[SanitizedIdentity, Depends(get_current_identity)]