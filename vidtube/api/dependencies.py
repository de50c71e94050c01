"""FastAPI dependencies for request authentication and shared services."""

from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vidtube.exceptions import InternalError, UnauthorizedError
from vidtube.models.user import User
from vidtube.services.auth_service import AuthService
from vidtube.services.media_service import MediaUploadGateway

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

bearer_scheme = HTTPBearer(auto_error=False)


def extract_access_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    """Access token from the cookie, falling back to the Bearer header."""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """Authenticate the request and attach the user to the logging context.

    Raises:
        UnauthorizedError: Token missing, invalid, expired, or user gone
    """
    token = extract_access_token(request, credentials)
    if not token:
        raise UnauthorizedError("Unauthorized request")

    user = await AuthService().verify_access_token(token)
    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[User]:
    """Like get_current_user, but anonymous requests resolve to None."""
    token = extract_access_token(request, credentials)
    if not token:
        return None

    try:
        return await AuthService().verify_access_token(token)
    except UnauthorizedError:
        return None


def get_media_gateway(request: Request) -> MediaUploadGateway:
    """Return the gateway built at startup from the immutable media config."""
    gateway = getattr(request.app.state, "media_gateway", None)
    if gateway is None:
        raise InternalError("Media upload is not available")
    return gateway
