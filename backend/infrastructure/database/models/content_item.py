"""
Content record database model.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class ContentItemRecord(Base, TimestampMixin):
    """
    One durable record per content item.

    ``status`` is the single point of mutual exclusion: every writer
    updates it conditionally on the status it expects to find.
    """

    __tablename__ = "content_items"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Owner
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Content
    body: Mapped[str] = mapped_column(Text, nullable=False)
    media: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    targets: Mapped[list] = mapped_column(JSON, nullable=False)

    # Scheduling
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    status: Mapped[str] = mapped_column(String(32), nullable=False)

    # Publication
    per_target_result: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    claimed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Bumped on every write
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_content_items_status_scheduled", "status", "scheduled_at"),
        Index("ix_content_items_owner_status", "owner_id", "status"),
        Index("ix_content_items_owner_scheduled", "owner_id", "scheduled_at"),
    )

    def __repr__(self) -> str:
        return f"<ContentItemRecord(id={self.id}, status={self.status})>"
