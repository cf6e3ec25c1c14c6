"""
Authentication endpoints.
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, File, Form, Request, Response, UploadFile, status

from vidtube.api.deps import (
    AppSettings,
    Assets,
    AuthService,
    CookiePolicy,
    CurrentIdentity,
)
from vidtube.api.session_cookies import read_refresh_cookie
from vidtube.assets import AssetStore, UploadedAsset, save_upload_to_temp
from vidtube.kernel.errors import UpstreamFailure, ValidationError
from vidtube.logging_config import get_logger
from vidtube.schemas.auth import (
    LoginResponse,
    RefreshTokenRequest,
    TokenResponse,
    UserLogin,
    UserResponse,
)
from vidtube.schemas.common import SuccessResponse

logger = get_logger(__name__)

router = APIRouter()


async def _discard_uploads(asset_store: AssetStore, assets: List[UploadedAsset]) -> None:
    """Compensate for uploads whose registration did not go through."""
    for asset in assets:
        try:
            await asset_store.delete(asset)
        except UpstreamFailure:
            logger.warning(
                "Orphaned asset left in store after failed registration",
                extra={"public_id": asset.public_id},
            )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    auth_service: AuthService,
    asset_store: Assets,
    settings: AppSettings,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    full_name: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None),
):
    """
    Register a new user account.

    Both images are uploaded to the asset store before the account is
    created. If the account cannot be created the uploads are removed.
    """
    missing = [
        name
        for name, value in (
            ("username", username),
            ("email", email),
            ("password", password),
            ("full_name", full_name),
        )
        if not value.strip()
    ]
    if missing:
        raise ValidationError("All fields are required", fields=missing)
    if avatar is None or cover_image is None:
        raise ValidationError(
            "Avatar and cover image are required",
            fields=[n for n, f in (("avatar", avatar), ("cover_image", cover_image)) if f is None],
        )

    uploaded: List[UploadedAsset] = []
    try:
        for upload in (avatar, cover_image):
            local_path = await asyncio.to_thread(
                save_upload_to_temp, upload.file, upload.filename, settings.upload_temp_dir
            )
            uploaded.append(await asset_store.upload(local_path))

        identity = await auth_service.register(
            username=username,
            email=email,
            password=password,
            full_name=full_name,
            avatar_url=uploaded[0].url,
            cover_image_url=uploaded[1].url,
        )
    except BaseException:
        # Any failure, cancellation included
        await _discard_uploads(asset_store, uploaded)
        raise

    return UserResponse.model_validate(identity)


@router.post("/login", response_model=LoginResponse)
async def login(
    data: UserLogin,
    response: Response,
    auth_service: AuthService,
    cookie_policy: CookiePolicy,
):
    """
    Authenticate by email or username.

    Tokens are returned in the body and also set as HttpOnly cookies.
    """
    identity, token_pair = await auth_service.login(data.identifier, data.password)
    cookie_policy.set_tokens(response, token_pair)

    return LoginResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
        token_type=token_pair.token_type,
        expires_in=token_pair.expires_in,
        user=UserResponse.model_validate(identity),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    response: Response,
    auth_service: AuthService,
    cookie_policy: CookiePolicy,
    data: Optional[RefreshTokenRequest] = None,
):
    """
    Exchange the refresh token for a new pair.

    The refresh cookie wins over the request body. The presented token is
    invalidated by this call.
    """
    presented = read_refresh_cookie(request) or (data.refresh_token if data else None)
    token_pair = await auth_service.refresh(presented)
    cookie_policy.set_tokens(response, token_pair)

    return TokenResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
        token_type=token_pair.token_type,
        expires_in=token_pair.expires_in,
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    identity: CurrentIdentity,
    response: Response,
    auth_service: AuthService,
    cookie_policy: CookiePolicy,
):
    """End the caller's session and clear both cookies."""
    await auth_service.logout(identity.id)
    cookie_policy.clear_tokens(response)
    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(identity: CurrentIdentity):
    """Get current user's profile."""
    return UserResponse.model_validate(identity)
