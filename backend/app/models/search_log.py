"""
Search Telemetry Model

ai_context_logs keeps one row per smart search (source_type="smart_search").
Rows are written after the response is sent; the table feeds the
"recent searches" suggestions.
"""

from sqlalchemy import ForeignKey, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import BaseModel, String50, String100


class AIContextLog(BaseModel):
    """One logged search (query, filters, result count, top score)."""

    __tablename__ = "ai_context_logs"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    source_type: Mapped[str] = mapped_column(
        String50,
        nullable=False,
        index=True,
        comment="Origin of the log entry, e.g. smart_search"
    )

    context_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    ai_response: Mapped[dict | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Compact result summary (ids and scores of the top results)"
    )

    model_used: Mapped[str | None] = mapped_column(String100, nullable=True)

    log_metadata: Mapped[dict | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="query, filters, results_found, top_score"
    )

    def __repr__(self) -> str:
        return f"AIContextLog(id={self.id}, user_id={self.user_id}, source='{self.source_type}')"
