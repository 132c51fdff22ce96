"""
User Model

Accounts are created by the PostPulse account service; this backend reads
them to authenticate requests and to scope every query to one owner.

Database Tables:
----------------
- users: account identity (1-to-many with posts, social_accounts, ai_insights)
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import BaseModel, String100, String255

if TYPE_CHECKING:
    from app.models.post import Post
    from app.models.social_account import SocialAccount


class User(BaseModel):
    """A PostPulse account. The JWT "sub" claim carries the e-mail."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        nullable=False,
        index=True,
        comment="Login e-mail, unique per account"
    )

    name: Mapped[str | None] = mapped_column(
        String100,
        nullable=True,
        comment="Display name"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Disabled accounts are rejected by the API"
    )

    is_superuser: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Operators may run embedding maintenance across all users"
    )

    posts: Mapped[list["Post"]] = relationship(
        "Post",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    social_accounts: Mapped[list["SocialAccount"]] = relationship(
        "SocialAccount",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, email='{self.email}')"
