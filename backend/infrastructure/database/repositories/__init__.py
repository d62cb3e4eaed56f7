"""
SQLAlchemy-backed repository implementations.
"""

from .base import session_scope
from .content_items import SqlAlchemyContentItemRepository
from .social_accounts import SqlAlchemySocialAccountRepository

__all__ = [
    "session_scope",
    "SqlAlchemyContentItemRepository",
    "SqlAlchemySocialAccountRepository",
]
