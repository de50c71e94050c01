"""Profile aggregation: channel profiles and watch history joins.

Both views are computed at read time from normalized rows. Each stage is a
separate function so it can be exercised on its own:

    channel profile:  find_by_username -> count_subscribers
                                       -> count_subscribed_to
                                       -> is_subscriber
                                       -> project_channel
    watch history:    find_by_id -> find_by_ids(videos) -> order_by_reference
                                 -> find_by_ids(owners) -> join_owner
"""

import asyncio
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

import structlog

from vidtube.exceptions import NotFoundError, ValidationError
from vidtube.models.channel import ChannelView
from vidtube.models.user import OwnerView, User
from vidtube.models.video import Video, VideoView
from vidtube.repositories.postgres import (
    PostgresSubscriptionRepository,
    PostgresUserRepository,
    PostgresVideoRepository,
)
from vidtube.repositories.protocols import (
    SubscriptionRepository,
    UserRepository,
    VideoRepository,
)

logger = structlog.get_logger(__name__)


def project_channel(
    user: User, subscriber_count: int, subscribed_to_count: int, is_subscribed: bool
) -> ChannelView:
    """Project a user plus aggregates onto the public channel fields."""
    return ChannelView(
        fullname=user.fullname,
        username=user.username,
        email=user.email,
        avatar_url=user.avatar_url,
        cover_image_url=user.cover_image_url,
        subscriber_count=subscriber_count,
        subscribed_to_count=subscribed_to_count,
        is_subscribed=is_subscribed,
    )


def order_by_reference(video_ids: Sequence[UUID], videos: Iterable[Video]) -> List[Video]:
    """Arrange fetched videos in the order of ``video_ids``.

    Repeated ids repeat the video; ids with no matching video are dropped.
    """
    by_id = {video.id: video for video in videos}
    return [by_id[video_id] for video_id in video_ids if video_id in by_id]


def join_owner(videos: Sequence[Video], owners: Iterable[User]) -> List[VideoView]:
    """Replace each video's owner reference with an inline OwnerView."""
    owner_views = {
        owner.id: OwnerView(
            fullname=owner.fullname,
            username=owner.username,
            avatar_url=owner.avatar_url,
        )
        for owner in owners
    }

    return [
        VideoView(
            id=video.id,
            video_file_url=video.video_file_url,
            thumbnail_url=video.thumbnail_url,
            title=video.title,
            description=video.description,
            duration_seconds=video.duration_seconds,
            view_count=video.view_count,
            is_published=video.is_published,
            owner=owner_views.get(video.owner_id),
            created_at=video.created_at,
            updated_at=video.updated_at,
        )
        for video in videos
    ]


class ChannelService:
    """Service for aggregated channel and history views."""

    def __init__(
        self,
        users: Optional[UserRepository] = None,
        videos: Optional[VideoRepository] = None,
        subscriptions: Optional[SubscriptionRepository] = None,
    ):
        self.users = users if users is not None else PostgresUserRepository()
        self.videos = videos if videos is not None else PostgresVideoRepository()
        self.subscriptions = (
            subscriptions if subscriptions is not None else PostgresSubscriptionRepository()
        )

    async def get_channel_profile(
        self, username: str, requesting_user_id: Optional[UUID] = None
    ) -> ChannelView:
        """Build the channel view for ``username``.

        Args:
            username: Channel owner's username, matched case-insensitively
            requesting_user_id: Viewer, if authenticated

        Raises:
            ValidationError: Username is blank
            NotFoundError: No such channel
        """
        if not username or not username.strip():
            raise ValidationError("Username is missing")

        channel = await self.users.find_by_username(username.strip())
        if channel is None:
            raise NotFoundError("Channel does not exist")

        if requesting_user_id is not None:
            subscribed_check = self.subscriptions.is_subscriber(requesting_user_id, channel.id)
        else:
            subscribed_check = _false()

        subscriber_count, subscribed_to_count, is_subscribed = await asyncio.gather(
            self.subscriptions.count_subscribers(channel.id),
            self.subscriptions.count_subscribed_to(channel.id),
            subscribed_check,
        )

        return project_channel(channel, subscriber_count, subscribed_to_count, is_subscribed)

    async def get_watch_history(self, user_id: UUID) -> List[VideoView]:
        """Resolve the user's watch history with owners inlined, in stored order.

        Raises:
            NotFoundError: User no longer exists
        """
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User does not exist")

        if not user.watch_history:
            return []

        unique_video_ids = list(dict.fromkeys(user.watch_history))
        videos = order_by_reference(
            user.watch_history, await self.videos.find_by_ids(unique_video_ids)
        )

        owner_ids = list(dict.fromkeys(video.owner_id for video in videos))
        owners = await self.users.find_by_ids(owner_ids)

        history = join_owner(videos, owners)
        logger.debug(
            "watch_history_resolved",
            user_id=str(user_id),
            referenced=len(user.watch_history),
            resolved=len(history),
        )
        return history


async def _false() -> bool:
    return False
