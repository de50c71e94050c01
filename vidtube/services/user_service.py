"""Credential store: registration, password hashing and profile updates."""

from typing import Optional
from uuid import UUID

import bcrypt
import structlog

from vidtube.exceptions import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from vidtube.models.user import User
from vidtube.repositories.postgres import PostgresUserRepository
from vidtube.repositories.protocols import UserRepository

logger = structlog.get_logger(__name__)

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class UserService:
    """Service for user accounts and their credentials."""

    def __init__(self, users: Optional[UserRepository] = None):
        self.users = users if users is not None else PostgresUserRepository()

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain-text password to hash

        Returns:
            Bcrypt hash string
        """
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            password: Plain-text password to check
            password_hash: Bcrypt hash to verify against

        Returns:
            True if the password matches, False otherwise
        """
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"),
                password_hash.encode("utf-8"),
            )
        except ValueError:
            # Malformed stored hash
            logger.warning("password_hash_malformed")
            return False

    def _check_password_length(self, password: str) -> None:
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    async def check_registration(
        self, fullname: str, email: str, username: str, password: str
    ) -> None:
        """Validate registration fields and uniqueness before any upload happens.

        Raises:
            ValidationError: A required field is blank
            ConflictError: Username (any case) or email already registered
        """
        if any(_is_blank(field) for field in (fullname, email, username, password)):
            raise ValidationError("All fields are required")

        self._check_password_length(password)

        if await self.users.exists_with_username_or_email(
            username.strip().lower(), email.strip()
        ):
            raise ConflictError("User with email or username already exists")

    async def register(
        self,
        fullname: str,
        email: str,
        username: str,
        password: str,
        avatar_url: Optional[str],
        cover_image_url: Optional[str] = None,
    ) -> User:
        """Create a new account.

        Returns:
            The created User, without password or refresh token

        Raises:
            ValidationError: Blank field or missing avatar
            ConflictError: Duplicate username or email
        """
        await self.check_registration(fullname, email, username, password)

        if _is_blank(avatar_url):
            raise ValidationError("Avatar file is required")

        user = await self.users.create(
            username=username.strip().lower(),
            email=email.strip(),
            fullname=fullname.strip(),
            password_hash=self.hash_password(password),
            avatar_url=avatar_url,
            cover_image_url=cover_image_url or "",
        )

        logger.info("user_registered", user_id=str(user.id), username=user.username)
        return user

    async def authenticate(
        self, username: Optional[str], email: Optional[str], password: str
    ) -> User:
        """Look up an account by username or email and check its password.

        Raises:
            ValidationError: Neither username nor email supplied
            NotFoundError: No matching account
            UnauthorizedError: Wrong password
        """
        if _is_blank(username) and _is_blank(email):
            raise ValidationError("Username or email is required")

        result = await self.users.find_credentials(
            username.strip().lower() if username else None,
            email.strip() if email else None,
        )
        if result is None:
            raise NotFoundError("User does not exist")

        user, password_hash = result
        if not self.verify_password(password, password_hash):
            logger.info("login_password_rejected", user_id=str(user.id))
            raise UnauthorizedError("Invalid user credentials")

        return user

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.users.find_by_id(user_id)

    async def change_password(
        self, user_id: UUID, old_password: str, new_password: str
    ) -> None:
        """Replace the password after verifying the current one.

        Raises:
            UnauthorizedError: ``old_password`` does not match
            ValidationError: ``new_password`` is blank or too long
        """
        current_hash = await self.users.get_password_hash(user_id)
        if current_hash is None or not self.verify_password(old_password, current_hash):
            raise UnauthorizedError("Invalid old password")

        if _is_blank(new_password):
            raise ValidationError("New password is required")
        self._check_password_length(new_password)

        await self.users.set_password_hash(user_id, self.hash_password(new_password))
        logger.info("password_changed", user_id=str(user_id))

    async def update_profile(
        self, user_id: UUID, fullname: Optional[str], email: Optional[str]
    ) -> User:
        """Update fullname and email.

        Raises:
            ValidationError: Either field is blank
            ConflictError: Email belongs to another account
            NotFoundError: User no longer exists
        """
        if _is_blank(fullname) or _is_blank(email):
            raise ValidationError("All fields are required")

        user = await self.users.update_fields(
            user_id, fullname=fullname.strip(), email=email.strip()
        )
        if user is None:
            raise NotFoundError("User does not exist")
        return user

    async def update_avatar(self, user_id: UUID, avatar_url: str) -> User:
        user = await self.users.update_fields(user_id, avatar_url=avatar_url)
        if user is None:
            raise NotFoundError("User does not exist")
        return user

    async def update_cover_image(self, user_id: UUID, cover_image_url: str) -> User:
        user = await self.users.update_fields(user_id, cover_image_url=cover_image_url)
        if user is None:
            raise NotFoundError("User does not exist")
        return user
