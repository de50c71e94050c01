"""Repository contracts used by the services.

Services depend on these protocols only. The asyncpg implementations live in
``vidtube.repositories.postgres``; tests provide in-memory ones.
"""

from typing import List, Optional, Protocol, Sequence, Tuple
from uuid import UUID

from vidtube.models.channel import Subscription
from vidtube.models.user import User
from vidtube.models.video import Video


class UserRepository(Protocol):
    """Access to user rows, including the write-only credential columns."""

    async def create(
        self,
        *,
        username: str,
        email: str,
        fullname: str,
        password_hash: str,
        avatar_url: str,
        cover_image_url: str = "",
    ) -> User:
        """Insert a user; raises ConflictError on a duplicate username or email."""
        ...

    async def exists_with_username_or_email(self, username: str, email: str) -> bool:
        ...

    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        ...

    async def find_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive username lookup."""
        ...

    async def find_by_ids(self, user_ids: Sequence[UUID]) -> List[User]:
        ...

    async def find_credentials(
        self, username: Optional[str], email: Optional[str]
    ) -> Optional[Tuple[User, str]]:
        """Return (user, password_hash) matching username OR email."""
        ...

    async def get_password_hash(self, user_id: UUID) -> Optional[str]:
        ...

    async def set_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        ...

    async def get_refresh_token(self, user_id: UUID) -> Optional[str]:
        ...

    async def set_refresh_token(self, user_id: UUID, refresh_token: Optional[str]) -> bool:
        """Store (or unset with None) the single live refresh token."""
        ...

    async def update_fields(
        self,
        user_id: UUID,
        *,
        fullname: Optional[str] = None,
        email: Optional[str] = None,
        avatar_url: Optional[str] = None,
        cover_image_url: Optional[str] = None,
    ) -> Optional[User]:
        """Update the non-None fields; raises ConflictError if email is taken."""
        ...


class VideoRepository(Protocol):
    """Read access to videos."""

    async def find_by_ids(self, video_ids: Sequence[UUID]) -> List[Video]:
        """Return the videos that exist, in no particular order."""
        ...


class SubscriptionRepository(Protocol):
    """Counting and membership queries over subscription edges."""

    async def count_subscribers(self, channel_id: UUID) -> int:
        ...

    async def count_subscribed_to(self, subscriber_id: UUID) -> int:
        ...

    async def is_subscriber(self, subscriber_id: UUID, channel_id: UUID) -> bool:
        ...

    async def find_edge(self, subscriber_id: UUID, channel_id: UUID) -> Optional[Subscription]:
        ...
