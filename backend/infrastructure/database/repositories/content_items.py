"""
SQLAlchemy implementation of the content record store.

Status changes are issued as ``UPDATE ... WHERE id = :id AND status = :expected``
and judged by the affected row count, so the check and the write happen in
one statement on the database side.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import String, cast, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.domain.content_item import (
    ContentItem,
    ContentStatus,
    Platform,
    TargetResult,
    as_utc,
    utcnow,
)
from core.interfaces.repositories import ContentItemRepository
from infrastructure.database.models.content_item import ContentItemRecord

from .base import session_scope

logger = logging.getLogger(__name__)

# Domain fields that may be written through update_if_status / transition
_WRITABLE_FIELDS = frozenset(
    {
        "body",
        "media",
        "tags",
        "targets",
        "scheduled_at",
        "timezone",
        "status",
        "per_target_result",
        "claimed_at",
        "completed_at",
    }
)


def _optional_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def _to_domain(row: ContentItemRecord) -> ContentItem:
    """Map a database row to the domain entity."""
    return ContentItem(
        id=row.id,
        owner_id=row.owner_id,
        body=row.body,
        targets=[Platform(t) for t in row.targets],
        media=list(row.media or []),
        tags=list(row.tags or []),
        scheduled_at=_optional_utc(row.scheduled_at),
        timezone=row.timezone,
        status=ContentStatus(row.status),
        per_target_result={
            Platform(platform): TargetResult.from_dict(result)
            for platform, result in (row.per_target_result or {}).items()
        },
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        claimed_at=_optional_utc(row.claimed_at),
        completed_at=_optional_utc(row.completed_at),
        version=row.version,
    )


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert domain-typed field values to their column representation."""
    unknown = set(fields) - _WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not writable: {', '.join(sorted(unknown))}")

    values: dict[str, Any] = {}
    for key, value in fields.items():
        if key == "status":
            values[key] = ContentStatus(value).value
        elif key == "targets":
            values[key] = [Platform(p).value for p in value]
        elif key == "per_target_result":
            values[key] = {Platform(p).value: r.to_dict() for p, r in value.items()}
        elif key in ("media", "tags"):
            values[key] = list(value)
        elif key in ("scheduled_at", "claimed_at", "completed_at"):
            values[key] = _optional_utc(value)
        else:
            values[key] = value
    return values


class SqlAlchemyContentItemRepository(ContentItemRepository):
    """Content store backed by any SQLAlchemy async engine."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def add(self, item: ContentItem) -> ContentItem:
        row = ContentItemRecord(
            id=item.id,
            owner_id=item.owner_id,
            body=item.body,
            media=list(item.media),
            tags=list(item.tags),
            targets=[p.value for p in item.targets],
            scheduled_at=_optional_utc(item.scheduled_at),
            timezone=item.timezone,
            status=item.status.value,
            per_target_result={p.value: r.to_dict() for p, r in item.per_target_result.items()},
            claimed_at=_optional_utc(item.claimed_at),
            completed_at=_optional_utc(item.completed_at),
            created_at=as_utc(item.created_at),
            updated_at=as_utc(item.updated_at),
            version=item.version,
        )
        async with session_scope(self._session_factory) as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_domain(row)

    async def get(self, item_id: str) -> ContentItem | None:
        async with session_scope(self._session_factory) as session:
            row = await session.get(ContentItemRecord, item_id)
            return _to_domain(row) if row else None

    async def get_owned(self, item_id: str, owner_id: str) -> ContentItem | None:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(ContentItemRecord).where(
                    ContentItemRecord.id == item_id,
                    ContentItemRecord.owner_id == owner_id,
                )
            )
            row = result.scalar_one_or_none()
            return _to_domain(row) if row else None

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
        query = select(ContentItemRecord).where(ContentItemRecord.owner_id == owner_id)

        if statuses:
            query = query.where(
                ContentItemRecord.status.in_([ContentStatus(s).value for s in statuses])
            )
        if platform:
            # targets is a JSON array; match the quoted member in its text form
            query = query.where(
                cast(ContentItemRecord.targets, String).like(f'%"{Platform(platform).value}"%')
            )
        if start:
            query = query.where(ContentItemRecord.scheduled_at >= as_utc(start))
        if end:
            query = query.where(ContentItemRecord.scheduled_at <= as_utc(end))

        async with session_scope(self._session_factory) as session:
            total = await session.scalar(select(func.count()).select_from(query.subquery()))
            result = await session.execute(
                query.order_by(
                    ContentItemRecord.scheduled_at.asc().nulls_last(),
                    ContentItemRecord.created_at.asc(),
                )
                .offset(offset)
                .limit(limit)
            )
            return [_to_domain(row) for row in result.scalars().all()], int(total or 0)

    async def update_if_status(
        self, item_id: str, expected: ContentStatus, **fields: Any
    ) -> ContentItem | None:
        async with session_scope(self._session_factory) as session:
            if not await self._conditional_update(session, item_id, expected, fields):
                return None
            row = await session.get(ContentItemRecord, item_id)
            return _to_domain(row) if row else None

    async def transition(
        self, item_id: str, expected: ContentStatus, new: ContentStatus, **fields: Any
    ) -> bool:
        async with session_scope(self._session_factory) as session:
            return await self._conditional_update(
                session, item_id, expected, {**fields, "status": new}
            )

    async def delete_if_status(
        self, item_id: str, owner_id: str, allowed: Iterable[ContentStatus]
    ) -> bool:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                delete(ContentItemRecord).where(
                    ContentItemRecord.id == item_id,
                    ContentItemRecord.owner_id == owner_id,
                    ContentItemRecord.status.in_([ContentStatus(s).value for s in allowed]),
                )
            )
            await session.commit()
            return result.rowcount == 1

    async def find_due(self, now: datetime, limit: int = 100) -> list[str]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(ContentItemRecord.id)
                .where(
                    ContentItemRecord.status == ContentStatus.SCHEDULED.value,
                    ContentItemRecord.scheduled_at <= as_utc(now),
                )
                .order_by(ContentItemRecord.scheduled_at.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def find_stale_publishing(self, claimed_before: datetime, limit: int = 100) -> list[str]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(ContentItemRecord.id)
                .where(
                    ContentItemRecord.status == ContentStatus.PUBLISHING.value,
                    ContentItemRecord.claimed_at < as_utc(claimed_before),
                )
                .order_by(ContentItemRecord.claimed_at.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def _conditional_update(
        self,
        session: AsyncSession,
        item_id: str,
        expected: ContentStatus,
        fields: dict[str, Any],
    ) -> bool:
        values = _column_values(fields)
        values["updated_at"] = utcnow()
        values["version"] = ContentItemRecord.version + 1

        result = await session.execute(
            update(ContentItemRecord)
            .where(
                ContentItemRecord.id == item_id,
                ContentItemRecord.status == ContentStatus(expected).value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await session.rollback()
            logger.debug(
                "Conditional write on %s skipped: status is no longer %s",
                item_id,
                ContentStatus(expected).value,
            )
            return False

        await session.commit()
        return True
