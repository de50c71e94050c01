"""Subscription edge and the aggregated channel view."""

from uuid import UUID

from pydantic import Field

from vidtube.models.base import CamelModel


class Subscription(CamelModel):
    """Directed edge: ``subscriber_id`` follows ``channel_id``."""

    subscriber_id: UUID
    channel_id: UUID


class ChannelView(CamelModel):
    """Public channel profile with subscription aggregates.

    Attributes:
        subscriber_count: Edges pointing at this channel
        subscribed_to_count: Edges leaving this channel's owner
        is_subscribed: Whether the requesting user subscribes to this channel
    """

    fullname: str
    username: str
    email: str
    avatar_url: str
    cover_image_url: str = ""
    subscriber_count: int = Field(ge=0)
    subscribed_to_count: int = Field(ge=0)
    is_subscribed: bool = False
