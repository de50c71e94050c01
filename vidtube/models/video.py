"""Video models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from vidtube.models.base import CamelModel
from vidtube.models.user import OwnerView


class Video(CamelModel):
    """A stored video, owner kept as a reference."""

    id: UUID
    video_file_url: str
    thumbnail_url: str
    title: str
    description: str
    duration_seconds: float
    view_count: int = Field(default=0, ge=0)
    is_published: bool = True
    owner_id: UUID
    created_at: datetime
    updated_at: datetime


class VideoView(CamelModel):
    """A video with its owner resolved into an inline OwnerView.

    ``owner`` is None when the owning account no longer exists.
    """

    id: UUID
    video_file_url: str
    thumbnail_url: str
    title: str
    description: str
    duration_seconds: float
    view_count: int = Field(default=0, ge=0)
    is_published: bool = True
    owner: Optional[OwnerView] = None
    created_at: datetime
    updated_at: datetime
