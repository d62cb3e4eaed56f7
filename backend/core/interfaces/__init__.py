# Interfaces (Abstract Contracts)
# Infrastructure implements these interfaces
from .repositories import ContentItemRepository, SocialAccountRepository

__all__ = [
    "ContentItemRepository",
    "SocialAccountRepository",
]
