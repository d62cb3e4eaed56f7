"""Repository interfaces for data access."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from ..domain.content_item import ContentItem, ContentStatus, Platform
from ..domain.linked_account import LinkedAccount


class ContentItemRepository(ABC):
    """
    Abstract store for ContentItem records.

    Every status change goes through a conditional write keyed on the
    expected prior status; implementations must make that check and the
    write a single atomic operation.
    """

    @abstractmethod
    async def add(self, item: ContentItem) -> ContentItem:
        """Persist a new item."""
        ...

    @abstractmethod
    async def get(self, item_id: str) -> ContentItem | None:
        """Get an item by ID regardless of owner."""
        ...

    @abstractmethod
    async def get_owned(self, item_id: str, owner_id: str) -> ContentItem | None:
        """Get an item only if it belongs to ``owner_id``."""
        ...

    @abstractmethod
    async def list_owned(
        self,
        owner_id: str,
        statuses: Iterable[ContentStatus] | None = None,
        platform: Platform | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ContentItem], int]:
        """List an owner's items ordered by scheduled time; returns (page, total)."""
        ...

    @abstractmethod
    async def update_if_status(
        self, item_id: str, expected: ContentStatus, **fields: Any
    ) -> ContentItem | None:
        """
        Write ``fields`` only if the item is still in ``expected`` status.

        Returns the updated item, or None when the condition did not hold.
        """
        ...

    @abstractmethod
    async def transition(
        self, item_id: str, expected: ContentStatus, new: ContentStatus, **fields: Any
    ) -> bool:
        """Compare-and-swap the status; True only for the caller that won."""
        ...

    @abstractmethod
    async def delete_if_status(
        self, item_id: str, owner_id: str, allowed: Iterable[ContentStatus]
    ) -> bool:
        """Delete an owned item if its status is one of ``allowed``."""
        ...

    @abstractmethod
    async def find_due(self, now: datetime, limit: int = 100) -> list[str]:
        """IDs of scheduled items whose time has come, oldest first."""
        ...

    @abstractmethod
    async def find_stale_publishing(self, claimed_before: datetime, limit: int = 100) -> list[str]:
        """IDs of items claimed for publishing before ``claimed_before``."""
        ...


class SocialAccountRepository(ABC):
    """Abstract store for linked social accounts."""

    @abstractmethod
    async def get_active(self, owner_id: str, platform: Platform) -> LinkedAccount | None:
        """Get the owner's active account for ``platform``."""
        ...

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> list[LinkedAccount]:
        """List all of an owner's linked accounts."""
        ...

    @abstractmethod
    async def upsert(self, account: LinkedAccount) -> LinkedAccount:
        """Create or replace the owner's account for the account's platform."""
        ...

    @abstractmethod
    async def deactivate(self, owner_id: str, platform: Platform) -> bool:
        """Disconnect the owner's account for ``platform``."""
        ...
