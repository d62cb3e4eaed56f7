"""
Scheduling Engine.

Owner-facing operations on content items: creating drafts and scheduled
items, editing them while they are still editable, deleting them, and
handing them to the Publication Worker on demand. All input checks run
before any write, and every status-sensitive write is conditional on the
status the check observed.
"""

import calendar
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Any, Optional

from core.domain.content_item import (
    DELETABLE_STATUSES,
    ContentItem,
    ContentStatus,
    Platform,
    local_schedule_date,
    normalize_targets,
    utcnow,
    validate_body,
    validate_future,
)
from core.domain.errors import InvalidStateError, NotFoundError, ValidationError
from core.interfaces.repositories import ContentItemRepository
from services.due_scanner import claim_item
from services.publication_worker import PublicationWorker
from services.publish_queue import PublicationDispatcher

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 7
UPCOMING_LIMIT = 10
MAX_TAGS = 20


@dataclass
class ItemPatch:
    """Fields an owner may change; None leaves a field untouched."""

    body: Optional[str] = None
    targets: Optional[Sequence[str]] = None
    media: Optional[Sequence[str]] = None
    tags: Optional[Sequence[str]] = None
    scheduled_at: Optional[datetime] = None
    timezone: Optional[str] = None


def _clean_tags(tags: Iterable[str]) -> list[str]:
    cleaned = [t.strip() for t in tags if t and t.strip()]
    if len(cleaned) > MAX_TAGS:
        raise ValidationError(f"At most {MAX_TAGS} tags are allowed")
    return cleaned


def _clean_media(media: Iterable[str]) -> list[str]:
    return [m.strip() for m in media if m and m.strip()]


class SchedulingEngine:
    """Validates and persists owner requests against the content store."""

    def __init__(
        self,
        store: ContentItemRepository,
        worker: PublicationWorker,
        dispatcher: PublicationDispatcher,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.worker = worker
        self.dispatcher = dispatcher
        self.clock = clock

    # ── Creation ──────────────────────────────────────────────────────────────

    async def create_scheduled(
        self,
        owner_id: str,
        body: str,
        targets: Sequence[str],
        scheduled_at: datetime,
        media: Sequence[str] = (),
        tags: Sequence[str] = (),
        timezone: str = "UTC",
    ) -> ContentItem:
        """
        Persist a new item in ``scheduled`` status.

        Raises:
            ValidationError: Empty body, bad targets or a time not in the future
        """
        item = ContentItem(
            owner_id=owner_id,
            body=validate_body(body),
            targets=normalize_targets(targets),
            media=_clean_media(media),
            tags=_clean_tags(tags),
            scheduled_at=validate_future(scheduled_at, self.clock()),
            timezone=timezone,
            status=ContentStatus.SCHEDULED,
        )
        item = await self.store.add(item)
        logger.info(
            "Scheduled item %s for %s",
            item.id,
            item.scheduled_at.isoformat(),
            extra={"item_id": item.id, "owner_id": owner_id},
        )
        return item

    async def create_draft(
        self,
        owner_id: str,
        body: str,
        targets: Sequence[str],
        media: Sequence[str] = (),
        tags: Sequence[str] = (),
    ) -> ContentItem:
        item = ContentItem(
            owner_id=owner_id,
            body=validate_body(body),
            targets=normalize_targets(targets),
            media=_clean_media(media),
            tags=_clean_tags(tags),
            status=ContentStatus.DRAFT,
        )
        item = await self.store.add(item)
        logger.info("Created draft %s", item.id, extra={"item_id": item.id, "owner_id": owner_id})
        return item

    # ── Editing ───────────────────────────────────────────────────────────────

    async def update_scheduled(self, item_id: str, owner_id: str, patch: ItemPatch) -> ContentItem:
        """
        Apply ``patch`` to a scheduled item.

        Raises:
            NotFoundError: Unknown or not owned
            InvalidStateError: Item is no longer ``scheduled``
            ValidationError: Patched fields break a creation rule
        """
        await self._require_status(item_id, owner_id, ContentStatus.SCHEDULED, "updated")
        fields = self._validated_fields(patch)
        return await self._conditional_update(item_id, ContentStatus.SCHEDULED, fields, "updated")

    async def update_draft(self, item_id: str, owner_id: str, patch: ItemPatch) -> ContentItem:
        await self._require_status(item_id, owner_id, ContentStatus.DRAFT, "edited")
        if patch.scheduled_at is not None:
            raise ValidationError("Use the schedule operation to give a draft a publish time")
        fields = self._validated_fields(patch)
        return await self._conditional_update(item_id, ContentStatus.DRAFT, fields, "edited")

    async def schedule_draft(
        self,
        item_id: str,
        owner_id: str,
        scheduled_at: datetime,
        timezone: Optional[str] = None,
    ) -> ContentItem:
        """Move a draft to ``scheduled`` at a future instant."""
        await self._require_status(item_id, owner_id, ContentStatus.DRAFT, "scheduled")
        fields: dict[str, Any] = {
            "status": ContentStatus.SCHEDULED,
            "scheduled_at": validate_future(scheduled_at, self.clock()),
        }
        if timezone:
            fields["timezone"] = timezone
        item = await self._conditional_update(item_id, ContentStatus.DRAFT, fields, "scheduled")
        logger.info(
            "Draft %s scheduled for %s",
            item_id,
            item.scheduled_at.isoformat(),
            extra={"item_id": item_id, "owner_id": owner_id},
        )
        return item

    async def delete_scheduled(self, item_id: str, owner_id: str) -> None:
        """
        Permanently remove a draft or scheduled item.

        Raises:
            NotFoundError: Unknown or not owned
            InvalidStateError: Publication has already started
        """
        item = await self.get_item(item_id, owner_id)
        if item.status not in DELETABLE_STATUSES:
            raise InvalidStateError(
                f"Cannot delete an item in {item.status.value} status"
            )

        if not await self.store.delete_if_status(item_id, owner_id, DELETABLE_STATUSES):
            # Lost a race with the scanner or another request
            current = await self.get_item(item_id, owner_id)
            raise InvalidStateError(
                f"Cannot delete an item in {current.status.value} status"
            )
        logger.info("Deleted item %s", item_id, extra={"item_id": item_id, "owner_id": owner_id})

    # ── Publication ───────────────────────────────────────────────────────────

    async def publish_now(self, item_id: str, owner_id: str) -> ContentItem:
        """
        Claim a scheduled item and dispatch it without waiting for the scanner.

        Raises:
            NotFoundError: Unknown or not owned
            InvalidStateError: Item is not ``scheduled`` (including already claimed)
        """
        await self._require_status(item_id, owner_id, ContentStatus.SCHEDULED, "published now")

        if not await claim_item(self.store, item_id, self.clock()):
            current = await self.get_item(item_id, owner_id)
            raise InvalidStateError(
                f"Item cannot be published now: status is {current.status.value}"
            )

        await self.dispatcher.enqueue(item_id, self.worker.publish(item_id))
        return await self.get_item(item_id, owner_id)

    async def publish_immediately(
        self,
        owner_id: str,
        body: str,
        targets: Sequence[str],
        media: Sequence[str] = (),
    ) -> ContentItem:
        """
        Create an item directly in ``publishing`` and publish it inline.

        Returns the item in its terminal status.
        """
        now = self.clock()
        item = ContentItem(
            owner_id=owner_id,
            body=validate_body(body),
            targets=normalize_targets(targets),
            media=_clean_media(media),
            status=ContentStatus.PUBLISHING,
            claimed_at=now,
        )
        item = await self.store.add(item)
        logger.info(
            "Publishing item %s immediately", item.id, extra={"item_id": item.id, "owner_id": owner_id}
        )

        await self.worker.publish(item.id)
        return await self.get_item(item.id, owner_id)

    # ── Queries ───────────────────────────────────────────────────────────────

    async def get_item(self, item_id: str, owner_id: str) -> ContentItem:
        item = await self.store.get_owned(item_id, owner_id)
        if item is None:
            raise NotFoundError("Post not found")
        return item

    async def list_items(
        self,
        owner_id: str,
        statuses: Optional[Iterable[ContentStatus]] = None,
        platform: Optional[Platform] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ContentItem], int]:
        return await self.store.list_owned(
            owner_id,
            statuses=statuses,
            platform=platform,
            start=start,
            end=end,
            limit=limit,
            offset=offset,
        )

    async def upcoming(self, owner_id: str) -> list[ContentItem]:
        """Scheduled items due within the next week, soonest first."""
        now = self.clock()
        items, _ = await self.store.list_owned(
            owner_id,
            statuses=[ContentStatus.SCHEDULED],
            start=now,
            end=now + timedelta(days=UPCOMING_WINDOW_DAYS),
            limit=UPCOMING_LIMIT,
        )
        return items

    async def calendar(self, owner_id: str, year: int, month: int) -> dict[str, list[ContentItem]]:
        """
        Group an owner's items by scheduled date for one month.

        Each item is placed on the date it falls on in its own timezone, the
        same date its ``scheduledDate`` shows.
        """
        if not 1 <= month <= 12:
            raise ValidationError("Month must be between 1 and 12")

        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        # UTC offsets stay within a day, so a one-day margin covers every timezone
        start = datetime.combine(first - timedelta(days=1), time.min, tzinfo=UTC)
        end = datetime.combine(last + timedelta(days=1), time.max, tzinfo=UTC)

        items, _ = await self.store.list_owned(owner_id, start=start, end=end, limit=1000)

        days: dict[str, list[ContentItem]] = defaultdict(list)
        for item in items:
            local_day = local_schedule_date(item)
            if first <= local_day <= last:
                days[local_day.isoformat()].append(item)
        return dict(days)

    # ── Internal helpers ──────────────────────────────────────────────────────

    async def _require_status(
        self, item_id: str, owner_id: str, expected: ContentStatus, action: str
    ) -> ContentItem:
        item = await self.get_item(item_id, owner_id)
        if item.status != expected:
            raise InvalidStateError(
                f"Only {expected.value} posts can be {action} (status is {item.status.value})"
            )
        return item

    def _validated_fields(self, patch: ItemPatch) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if patch.body is not None:
            fields["body"] = validate_body(patch.body)
        if patch.targets is not None:
            fields["targets"] = normalize_targets(patch.targets)
        if patch.media is not None:
            fields["media"] = _clean_media(patch.media)
        if patch.tags is not None:
            fields["tags"] = _clean_tags(patch.tags)
        if patch.scheduled_at is not None:
            fields["scheduled_at"] = validate_future(patch.scheduled_at, self.clock())
        if patch.timezone is not None:
            fields["timezone"] = patch.timezone
        return fields

    async def _conditional_update(
        self,
        item_id: str,
        expected: ContentStatus,
        fields: dict[str, Any],
        action: str,
    ) -> ContentItem:
        if fields:
            item = await self.store.update_if_status(item_id, expected, **fields)
        else:
            current = await self.store.get(item_id)
            item = current if current is not None and current.status == expected else None
        if item is None:
            # Status moved on between the check and the write
            raise InvalidStateError(f"Only {expected.value} posts can be {action}")
        return item
