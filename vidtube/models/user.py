"""User models.

``User`` is the public projection of a users row. It deliberately has no
password or refresh-token field; those columns are only ever read through
dedicated repository calls.
"""

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import Field

from vidtube.models.base import CamelModel


class User(CamelModel):
    """A registered account as returned to clients."""

    id: UUID
    username: str
    email: str
    fullname: str
    avatar_url: str
    cover_image_url: str = ""
    watch_history: List[UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class OwnerView(CamelModel):
    """Reduced owner identity inlined into video views."""

    fullname: str
    username: str
    avatar_url: str
