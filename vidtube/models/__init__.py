"""Models package exports."""

from vidtube.models.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    TokenPair,
    UpdateAccountRequest,
)
from vidtube.models.channel import ChannelView, Subscription
from vidtube.models.response import ApiResponse, ErrorResponse
from vidtube.models.user import OwnerView, User
from vidtube.models.video import Video, VideoView

__all__ = [
    "ApiResponse",
    "ChangePasswordRequest",
    "ChannelView",
    "ErrorResponse",
    "LoginRequest",
    "LoginResponse",
    "OwnerView",
    "RefreshRequest",
    "Subscription",
    "TokenPair",
    "UpdateAccountRequest",
    "User",
    "Video",
    "VideoView",
]
