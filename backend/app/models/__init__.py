"""
Database Models

Import models from this module so they are registered with SQLAlchemy
(Alembic autogenerate and relationship resolution both depend on it):

    from app.models import Post, AIInsight, PlatformSyncStatus
"""

from app.models.insight import (
    AIInsight,
    ApiStatus,
    PerformanceCategory,
    PerformancePattern,
    PlatformSyncStatus,
)
from app.models.post import Post, PostStatus, PostType
from app.models.search_log import AIContextLog
from app.models.social_account import AccountStatus, SocialAccount
from app.models.user import User

__all__ = [
    # User models
    "User",
    "SocialAccount",
    # Content models
    "Post",
    # Insight models
    "AIInsight",
    "PlatformSyncStatus",
    "PerformancePattern",
    # Telemetry
    "AIContextLog",
    # Enums
    "AccountStatus",
    "ApiStatus",
    "PerformanceCategory",
    "PostStatus",
    "PostType",
]
