"""
Database Base Classes and Common Utilities

Every table in PostPulse is declared on the Base defined here.

Key Concepts:
--------------
1. Base: DeclarativeBase bound to a MetaData with naming conventions
2. CommonTableAttributes: id / created_at / updated_at shared by all tables
3. BaseModel: abstract Base + CommonTableAttributes, what models inherit

Learning Resources:
- SQLAlchemy Declarative Base: https://docs.sqlalchemy.org/en/20/orm/declarative_config.html
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, registry


# ================================
# Naming Convention for Constraints
# ================================
# Stable constraint names let Alembic diff reliably and make the
# ON CONFLICT targets used by the upserts easy to find:
# - uq_ai_insights_user_id: unique (user_id, post_id, platform) on ai_insights
# - fk_posts_user_id_users: foreign key from posts.user_id to users
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

orm_registry = registry(metadata=metadata)


def utc_now() -> datetime:
    """Timezone-aware current time; all timestamps are stored in UTC."""
    return datetime.now(timezone.utc)


# ================================
# Base DeclarativeBase Class
# ================================
class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    registry = orm_registry
    metadata = metadata

    __tablename__: str


# ================================
# Common Table Attributes Mixin
# ================================
class CommonTableAttributes:
    """
    Mixin that gives every table an integer primary key plus
    created_at / updated_at timestamps (TIMESTAMP WITH TIME ZONE, UTC).
    """

    id: Mapped[int] = mapped_column(
        primary_key=True,
        autoincrement=True,
        comment="Auto-incrementing primary key"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        comment="Timestamp when record was created (UTC)"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
        comment="Timestamp when record was last updated (UTC)"
    )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"

    def dict(self) -> dict[str, Any]:
        """Column values keyed by column name (handy in tests and logs)."""
        return {
            column.name: getattr(self, column.key)
            for column in self.__table__.columns
        }


# ================================
# Convenient Base Model
# ================================
class BaseModel(Base, CommonTableAttributes):
    """
    Ready-to-use base class for application models.

        class Post(BaseModel):
            __tablename__ = "posts"
            ...
    """

    __abstract__ = True


# ================================
# String Length Constraints
# ================================
String50 = String(50)  # platform names, enum-like values
String100 = String(100)  # external ids, pattern names
String255 = String(255)  # email, titles
String500 = String(500)  # short error messages
