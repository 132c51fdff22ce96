"""
Social Account Model

A user's connection to a publishing platform. The insight sync only runs for
accounts whose status is "connected"; the access token is used for Graph API
calls and is never logged.
"""

import enum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import BaseModel, String50, String100, String255

if TYPE_CHECKING:
    from app.models.user import User


class AccountStatus(str, enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value


class SocialAccount(BaseModel):
    """Platform credentials for one user."""

    __tablename__ = "social_accounts"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    platform: Mapped[str] = mapped_column(String50, nullable=False)

    status: Mapped[str] = mapped_column(
        String50,
        nullable=False,
        default=AccountStatus.CONNECTED.value,
    )

    external_account_id: Mapped[str | None] = mapped_column(
        String100,
        nullable=True,
        comment="Instagram business account id / Facebook page id"
    )

    account_name: Mapped[str | None] = mapped_column(String255, nullable=True)

    access_token: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Long-lived Graph API token"
    )

    platform_metadata: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    user: Mapped["User"] = relationship(
        "User",
        back_populates="social_accounts",
        lazy="raise",
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "platform",
            name="uq_social_accounts_user_platform",
        ),
    )

    def __repr__(self) -> str:
        return f"SocialAccount(user_id={self.user_id}, platform='{self.platform}', status='{self.status}')"

    @property
    def is_connected(self) -> bool:
        return self.status == AccountStatus.CONNECTED.value
