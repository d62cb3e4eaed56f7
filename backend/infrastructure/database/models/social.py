"""
Linked social account database model.
"""

from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class SocialAccount(Base, TimestampMixin):
    """
    Connected social media accounts.

    Stores encrypted OAuth tokens and account metadata; one row per
    (owner, platform).
    """

    __tablename__ = "social_accounts"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Owner
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Platform info
    platform: Mapped[str] = mapped_column(String(32), nullable=False)
    platform_account_id: Mapped[str] = mapped_column(String(255), nullable=False)
    platform_username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # OAuth tokens (encrypted)
    access_token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token_encrypted: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Connection status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("ix_social_accounts_owner_platform", "owner_id", "platform", unique=True),
    )

    def __repr__(self) -> str:
        return f"<SocialAccount(platform={self.platform}, username={self.platform_username})>"
