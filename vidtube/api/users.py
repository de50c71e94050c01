"""User account, session and channel endpoints."""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status

from vidtube.api.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    get_current_user,
    get_media_gateway,
    get_optional_user,
)
from vidtube.config import get_settings
from vidtube.exceptions import ConflictError, UnauthorizedError, ValidationError
from vidtube.models.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    TokenPair,
    UpdateAccountRequest,
)
from vidtube.models.channel import ChannelView
from vidtube.models.response import ApiResponse
from vidtube.models.user import User
from vidtube.models.video import VideoView
from vidtube.services.auth_service import AuthService
from vidtube.services.channel_service import ChannelService
from vidtube.services.media_service import MediaUploadGateway, UploadResult, stage_upload
from vidtube.services.user_service import UserService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

COOKIE_OPTIONS = {"httponly": True, "secure": True}


def _set_auth_cookies(response: Response, pair: TokenPair) -> None:
    response.set_cookie(ACCESS_TOKEN_COOKIE, pair.access_token, **COOKIE_OPTIONS)
    response.set_cookie(REFRESH_TOKEN_COOKIE, pair.refresh_token, **COOKIE_OPTIONS)


def _clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **COOKIE_OPTIONS)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, **COOKIE_OPTIONS)


def _has_file(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


async def _upload(upload: UploadFile, gateway: MediaUploadGateway) -> Optional[UploadResult]:
    """Stage a multipart file on disk and forward it; the gateway deletes it."""
    path = await stage_upload(upload.filename, upload.file, get_settings().temp_upload_dir)
    return await gateway.upload(path)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    fullname: str = Form(""),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    gateway: MediaUploadGateway = Depends(get_media_gateway),
) -> ApiResponse[User]:
    """Register a new account with an avatar and optional cover image.

    Raises:
        ValidationError 400: Missing field, missing avatar, or avatar upload failed
        ConflictError 409: Username or email taken
    """
    user_service = UserService()

    # Reject before touching the media store
    await user_service.check_registration(fullname, email, username, password)

    if not _has_file(avatar):
        raise ValidationError("Avatar file is required")

    avatar_result = await _upload(avatar, gateway)
    if avatar_result is None:
        raise ValidationError("Avatar file is required")

    cover_result = await _upload(cover_image, gateway) if _has_file(cover_image) else None

    # A concurrent registration can still take the username or email between
    # check_registration and the insert; the uploaded assets are then orphaned.
    try:
        user = await user_service.register(
            fullname=fullname,
            email=email,
            username=username,
            password=password,
            avatar_url=avatar_result.url,
            cover_image_url=cover_result.url if cover_result else "",
        )
    except ConflictError:
        logger.warning(
            "registration_assets_orphaned",
            username=username,
            avatar_url=avatar_result.url,
            cover_image_url=cover_result.url if cover_result else None,
        )
        raise

    return ApiResponse(
        status_code=status.HTTP_201_CREATED,
        data=user,
        message="User registered successfully",
    )


@router.post("/login")
async def login(request: LoginRequest, response: Response) -> ApiResponse[LoginResponse]:
    """Log in with username or email and set both auth cookies.

    Raises:
        ValidationError 400: Neither username nor email given
        NotFoundError 404: No such user
        UnauthorizedError 401: Wrong password
    """
    user = await UserService().authenticate(request.username, request.email, request.password)
    pair = await AuthService().issue_token_pair(user.id)

    _set_auth_cookies(response, pair)
    logger.info("user_logged_in", user_id=str(user.id), username=user.username)

    return ApiResponse(
        data=LoginResponse(
            user=user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ),
        message="User logged in successfully",
    )


@router.post("/logout")
async def logout(
    response: Response, current_user: User = Depends(get_current_user)
) -> ApiResponse[dict]:
    """Revoke the stored refresh token and clear both cookies."""
    await AuthService().revoke(current_user.id)
    _clear_auth_cookies(response)

    logger.info("user_logged_out", user_id=str(current_user.id))
    return ApiResponse(data={}, message="User logged out")


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
) -> ApiResponse[TokenPair]:
    """Rotate the refresh token (cookie first, then body) into a new pair.

    Raises:
        UnauthorizedError 401: Token missing, invalid, or superseded
    """
    presented = request.cookies.get(REFRESH_TOKEN_COOKIE) or (
        body.refresh_token if body is not None else None
    )
    if not presented:
        raise UnauthorizedError("Unauthorized request")

    pair = await AuthService().rotate_refresh_token(presented)
    _set_auth_cookies(response, pair)

    return ApiResponse(data=pair, message="Access token refreshed")


@router.post("/change-password")
async def change_password(
    request: ChangePasswordRequest, current_user: User = Depends(get_current_user)
) -> ApiResponse[dict]:
    """Change the current user's password."""
    await UserService().change_password(
        current_user.id, request.old_password, request.new_password
    )
    return ApiResponse(data={}, message="Password changed successfully")


@router.get("/current")
async def get_current(current_user: User = Depends(get_current_user)) -> ApiResponse[User]:
    """Return the authenticated user."""
    return ApiResponse(data=current_user, message="Current user fetched successfully")


@router.patch("/update-account")
async def update_account(
    request: UpdateAccountRequest, current_user: User = Depends(get_current_user)
) -> ApiResponse[User]:
    """Update fullname and email."""
    user = await UserService().update_profile(current_user.id, request.fullname, request.email)
    return ApiResponse(data=user, message="Account details updated successfully")


@router.patch("/avatar")
async def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    gateway: MediaUploadGateway = Depends(get_media_gateway),
) -> ApiResponse[User]:
    """Replace the avatar image."""
    if not _has_file(avatar):
        raise ValidationError("Avatar file is missing")

    result = await _upload(avatar, gateway)
    if result is None:
        raise ValidationError("Error while uploading avatar")

    user = await UserService().update_avatar(current_user.id, result.url)
    return ApiResponse(data=user, message="Avatar updated successfully")


@router.patch("/cover-image")
async def update_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    current_user: User = Depends(get_current_user),
    gateway: MediaUploadGateway = Depends(get_media_gateway),
) -> ApiResponse[User]:
    """Replace the cover image."""
    if not _has_file(cover_image):
        raise ValidationError("Cover image file is missing")

    result = await _upload(cover_image, gateway)
    if result is None:
        raise ValidationError("Error while uploading cover image")

    user = await UserService().update_cover_image(current_user.id, result.url)
    return ApiResponse(data=user, message="Cover image updated successfully")


@router.get("/channel/{username}")
async def get_channel(
    username: str, viewer: Optional[User] = Depends(get_optional_user)
) -> ApiResponse[ChannelView]:
    """Public channel profile; ``isSubscribed`` reflects the viewer if logged in."""
    channel = await ChannelService().get_channel_profile(
        username, viewer.id if viewer is not None else None
    )
    return ApiResponse(data=channel, message="User channel fetched successfully")


@router.get("/history")
async def get_history(
    current_user: User = Depends(get_current_user),
) -> ApiResponse[List[VideoView]]:
    """Watch history with each video's owner inlined."""
    history = await ChannelService().get_watch_history(current_user.id)
    return ApiResponse(data=history, message="Watch history fetched successfully")
