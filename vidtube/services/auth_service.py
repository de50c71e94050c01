"""Token service: access/refresh JWT issuance, verification, rotation and revocation."""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4

import jwt
import structlog

from vidtube.config import get_settings
from vidtube.exceptions import ApiError, InternalError, UnauthorizedError
from vidtube.models.auth import TokenPair
from vidtube.models.user import User
from vidtube.repositories.postgres import PostgresUserRepository
from vidtube.repositories.protocols import UserRepository

logger = structlog.get_logger(__name__)

JWT_ALGORITHM = "HS256"

INVALID_ACCESS_TOKEN = "Invalid access token"
INVALID_REFRESH_TOKEN = "Invalid refresh token"


class AuthService:
    """Service for the token lifecycle.

    Access tokens are stateless and signed with ``access_token_secret``.
    Refresh tokens are signed with ``refresh_token_secret`` and the latest one
    is persisted on the user row; only that exact value can be exchanged.
    """

    def __init__(self, users: Optional[UserRepository] = None):
        self.settings = get_settings()
        self.users = users if users is not None else PostgresUserRepository()

    def create_access_token(self, user: User) -> str:
        """Create a signed access token carrying the user's public identity.

        Args:
            user: User the token is issued for

        Returns:
            Encoded JWT string
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "username": user.username,
            "email": user.email,
            "fullname": user.fullname,
            "iat": now,
            "exp": now + timedelta(minutes=self.settings.access_token_expire_minutes),
        }
        return jwt.encode(payload, self.settings.access_token_secret, algorithm=JWT_ALGORITHM)

    def create_refresh_token(self, user_id: UUID) -> str:
        """Create a signed refresh token carrying only the user id.

        A random ``jti`` keeps two tokens minted in the same second distinct.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "jti": uuid4().hex,
            "iat": now,
            "exp": now + timedelta(days=self.settings.refresh_token_expire_days),
        }
        return jwt.encode(payload, self.settings.refresh_token_secret, algorithm=JWT_ALGORITHM)

    def _decode_subject(self, token: Optional[str], secret: str, message: str) -> UUID:
        """Verify signature and expiry, returning the ``sub`` claim as a UUID.

        Every failure mode raises the same UnauthorizedError so callers cannot
        tell an expired token from a forged one.
        """
        if not token:
            raise UnauthorizedError(message)

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
            return UUID(payload["sub"])
        except (jwt.InvalidTokenError, ValueError, TypeError) as e:
            logger.info("token_rejected", reason=type(e).__name__)
            raise UnauthorizedError(message)

    async def issue_token_pair(self, user_id: UUID) -> TokenPair:
        """Mint a new access/refresh pair and persist the refresh token.

        Args:
            user_id: User to issue tokens for

        Returns:
            TokenPair with both tokens

        Raises:
            InternalError: If the user cannot be loaded or the token not saved
        """
        try:
            user = await self.users.find_by_id(user_id)
            if user is None:
                raise InternalError("Something went wrong while generating tokens")

            access_token = self.create_access_token(user)
            refresh_token = self.create_refresh_token(user.id)

            saved = await self.users.set_refresh_token(user.id, refresh_token)
            if not saved:
                raise InternalError("Something went wrong while generating tokens")
        except ApiError:
            raise
        except Exception as e:
            logger.error("token_issue_failed", user_id=str(user_id), error=str(e))
            raise InternalError("Something went wrong while generating tokens") from e

        logger.info(
            "token_pair_issued",
            user_id=str(user_id),
            access_expires_minutes=self.settings.access_token_expire_minutes,
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def verify_access_token(self, token: Optional[str]) -> User:
        """Resolve an access token to the user it was issued for.

        Raises:
            UnauthorizedError: Missing, malformed, expired token or unknown user
        """
        user_id = self._decode_subject(token, self.settings.access_token_secret, INVALID_ACCESS_TOKEN)

        user = await self.users.find_by_id(user_id)
        if user is None:
            logger.info("access_token_user_missing", user_id=str(user_id))
            raise UnauthorizedError(INVALID_ACCESS_TOKEN)

        return user

    async def rotate_refresh_token(self, presented_token: Optional[str]) -> TokenPair:
        """Exchange the stored refresh token for a brand-new pair.

        The presented token must be validly signed, unexpired, and identical to
        the value stored on the user row. A superseded or revoked token fails.

        The check and the overwrite are separate statements. Two concurrent
        refreshes presenting the same token can both pass the check; the
        later write wins and the earlier caller's new refresh token is dead.

        Raises:
            UnauthorizedError: Token invalid, user gone, or token not current
        """
        user_id = self._decode_subject(
            presented_token, self.settings.refresh_token_secret, INVALID_REFRESH_TOKEN
        )

        user = await self.users.find_by_id(user_id)
        if user is None:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        stored = await self.users.get_refresh_token(user.id)
        if stored is None or not hmac.compare_digest(stored, presented_token):
            logger.warning("refresh_token_mismatch", user_id=str(user.id), revoked=stored is None)
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        pair = await self.issue_token_pair(user.id)
        logger.info("refresh_token_rotated", user_id=str(user.id))
        return pair

    async def revoke(self, user_id: UUID) -> None:
        """Unset the stored refresh token, ending the user's session."""
        await self.users.set_refresh_token(user_id, None)
        logger.info("refresh_token_revoked", user_id=str(user_id))
