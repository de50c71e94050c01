"""Services package exports."""

from vidtube.services.auth_service import AuthService
from vidtube.services.channel_service import ChannelService
from vidtube.services.logging_service import configure_logging, get_logger
from vidtube.services.media_service import MediaStoreConfig, MediaUploadGateway
from vidtube.services.user_service import UserService

__all__ = [
    "AuthService",
    "ChannelService",
    "MediaStoreConfig",
    "MediaUploadGateway",
    "UserService",
    "configure_logging",
    "get_logger",
]
