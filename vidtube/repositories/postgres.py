"""asyncpg-backed repositories."""

from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

import asyncpg
import structlog

from vidtube.database import get_pool
from vidtube.exceptions import ConflictError
from vidtube.models.channel import Subscription
from vidtube.models.user import User
from vidtube.models.video import Video

logger = structlog.get_logger(__name__)

USER_COLUMNS = (
    "id, username, email, fullname, avatar_url, cover_image_url, "
    "watch_history, created_at, updated_at"
)

VIDEO_COLUMNS = (
    "id, video_file_url, thumbnail_url, title, description, duration_seconds, "
    "view_count, is_published, owner_id, created_at, updated_at"
)


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        fullname=row["fullname"],
        avatar_url=row["avatar_url"],
        cover_image_url=row["cover_image_url"] or "",
        watch_history=list(row["watch_history"] or []),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_video(row) -> Video:
    return Video(
        id=row["id"],
        video_file_url=row["video_file_url"],
        thumbnail_url=row["thumbnail_url"],
        title=row["title"],
        description=row["description"],
        duration_seconds=row["duration_seconds"],
        view_count=row["view_count"],
        is_published=row["is_published"],
        owner_id=row["owner_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresUserRepository:
    """User rows in the ``users`` table."""

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
        user_id = uuid4()
        now = datetime.now(timezone.utc)

        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO users (id, username, email, fullname, password_hash,
                                       avatar_url, cover_image_url, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                    RETURNING {USER_COLUMNS}
                    """,
                    user_id,
                    username,
                    email,
                    fullname,
                    password_hash,
                    avatar_url,
                    cover_image_url,
                    now,
                    now,
                )
        except asyncpg.UniqueViolationError:
            raise ConflictError("User with email or username already exists")

        return _row_to_user(row)

    async def exists_with_username_or_email(self, username: str, email: str) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            found = await conn.fetchval(
                """
                SELECT EXISTS (
                    SELECT 1 FROM users
                    WHERE LOWER(username) = LOWER($1) OR email = $2
                )
                """,
                username,
                email,
            )

        return bool(found)

    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
                user_id,
            )

        return _row_to_user(row) if row is not None else None

    async def find_by_username(self, username: str) -> Optional[User]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE LOWER(username) = LOWER($1)",
                username,
            )

        return _row_to_user(row) if row is not None else None

    async def find_by_ids(self, user_ids: Sequence[UUID]) -> List[User]:
        if not user_ids:
            return []

        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = ANY($1::uuid[])",
                list(user_ids),
            )

        return [_row_to_user(row) for row in rows]

    async def find_credentials(
        self, username: Optional[str], email: Optional[str]
    ) -> Optional[Tuple[User, str]]:
        """Fetch a user and password hash by username or email.

        When both are given and name different accounts, the username match wins.
        """
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {USER_COLUMNS}, password_hash
                FROM users
                WHERE LOWER(username) = LOWER($1) OR email = $2
                ORDER BY (LOWER(username) = LOWER($1)) IS TRUE DESC
                LIMIT 1
                """,
                username,
                email,
            )

        if row is None:
            return None

        return _row_to_user(row), row["password_hash"]

    async def get_password_hash(self, user_id: UUID) -> Optional[str]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT password_hash FROM users WHERE id = $1",
                user_id,
            )

    async def set_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                "UPDATE users SET password_hash = $1, updated_at = $2 WHERE id = $3",
                password_hash,
                datetime.now(timezone.utc),
                user_id,
            )

        return result == "UPDATE 1"

    async def get_refresh_token(self, user_id: UUID) -> Optional[str]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT refresh_token FROM users WHERE id = $1",
                user_id,
            )

    async def set_refresh_token(self, user_id: UUID, refresh_token: Optional[str]) -> bool:
        pool = await get_pool()

        async with pool.acquire() as conn:
            result = await conn.execute(
                "UPDATE users SET refresh_token = $1 WHERE id = $2",
                refresh_token,
                user_id,
            )

        return result == "UPDATE 1"

    async def update_fields(
        self,
        user_id: UUID,
        *,
        fullname: Optional[str] = None,
        email: Optional[str] = None,
        avatar_url: Optional[str] = None,
        cover_image_url: Optional[str] = None,
    ) -> Optional[User]:
        set_clauses = []
        params: list = []
        param_idx = 1

        for column, value in (
            ("fullname", fullname),
            ("email", email),
            ("avatar_url", avatar_url),
            ("cover_image_url", cover_image_url),
        ):
            if value is not None:
                set_clauses.append(f"{column} = ${param_idx}")
                params.append(value)
                param_idx += 1

        if not set_clauses:
            return await self.find_by_id(user_id)

        set_clauses.append(f"updated_at = ${param_idx}")
        params.append(datetime.now(timezone.utc))
        param_idx += 1

        params.append(user_id)

        query = f"""
            UPDATE users
            SET {', '.join(set_clauses)}
            WHERE id = ${param_idx}
            RETURNING {USER_COLUMNS}
        """

        pool = await get_pool()

        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(query, *params)
        except asyncpg.UniqueViolationError:
            raise ConflictError("Email is already in use")

        if row is None:
            return None

        logger.info(
            "user_fields_updated",
            user_id=str(user_id),
            fields_updated=[c.split(" = ")[0] for c in set_clauses if "updated_at" not in c],
        )

        return _row_to_user(row)


class PostgresVideoRepository:
    """Video rows in the ``videos`` table."""

    async def find_by_ids(self, video_ids: Sequence[UUID]) -> List[Video]:
        if not video_ids:
            return []

        pool = await get_pool()

        async with pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {VIDEO_COLUMNS} FROM videos WHERE id = ANY($1::uuid[])",
                list(video_ids),
            )

        return [_row_to_video(row) for row in rows]


class PostgresSubscriptionRepository:
    """Subscription edges in the ``subscriptions`` table."""

    async def count_subscribers(self, channel_id: UUID) -> int:
        pool = await get_pool()

        async with pool.acquire() as conn:
            count = await conn.fetchval(
                "SELECT COUNT(*) FROM subscriptions WHERE channel_id = $1",
                channel_id,
            )

        return count or 0

    async def count_subscribed_to(self, subscriber_id: UUID) -> int:
        pool = await get_pool()

        async with pool.acquire() as conn:
            count = await conn.fetchval(
                "SELECT COUNT(*) FROM subscriptions WHERE subscriber_id = $1",
                subscriber_id,
            )

        return count or 0

    async def find_edge(self, subscriber_id: UUID, channel_id: UUID) -> Optional[Subscription]:
        pool = await get_pool()

        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT subscriber_id, channel_id FROM subscriptions
                WHERE subscriber_id = $1 AND channel_id = $2
                """,
                subscriber_id,
                channel_id,
            )

        if row is None:
            return None
        return Subscription(subscriber_id=row["subscriber_id"], channel_id=row["channel_id"])

    async def is_subscriber(self, subscriber_id: UUID, channel_id: UUID) -> bool:
        return await self.find_edge(subscriber_id, channel_id) is not None
