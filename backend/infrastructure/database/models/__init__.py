"""
SQLAlchemy database models.
"""

from .base import Base, TimestampMixin
from .content_item import ContentItemRecord
from .social import SocialAccount

__all__ = [
    "Base",
    "TimestampMixin",
    "ContentItemRecord",
    "SocialAccount",
]
