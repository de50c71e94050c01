"""Repository package exports."""

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

__all__ = [
    "PostgresSubscriptionRepository",
    "PostgresUserRepository",
    "PostgresVideoRepository",
    "SubscriptionRepository",
    "UserRepository",
    "VideoRepository",
]
