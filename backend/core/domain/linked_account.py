"""Linked social account domain entity."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import uuid4

from .content_item import Platform, utcnow


@dataclass
class LinkedAccount:
    """An owner's connection to one platform, with decrypted OAuth tokens."""

    owner_id: str
    platform: Platform
    account_id: str
    access_token: str
    refresh_token: Optional[str] = None
    username: Optional[str] = None
    is_active: bool = True

    id: str = field(default_factory=lambda: str(uuid4()))
    connected_at: datetime = field(default_factory=utcnow)
