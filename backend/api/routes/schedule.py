"""
Post scheduling API routes.
"""

import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Query, Request, status

from api.dependencies import CurrentOwner, Engine
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.content_item import (
    CalendarResponse,
    ContentItemListResponse,
    ContentItemResponse,
    MessageResponse,
    SchedulePostRequest,
    UpcomingResponse,
    UpdateScheduledPostRequest,
    combine_schedule,
)
from api.utils import parse_date_bound, parse_platform, parse_statuses
from core.domain.content_item import utcnow
from core.domain.errors import ValidationError
from services.scheduling_engine import ItemPatch, SchedulingEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedule", tags=["Schedule"])


async def _patched_schedule(
    engine: SchedulingEngine,
    owner_id: str,
    post_id: str,
    body: UpdateScheduledPostRequest,
) -> Optional[datetime]:
    """
    Resolve the new publish instant for a partial update.

    Missing date or time parts are taken from the post's current wall-clock
    schedule in its existing timezone.
    """
    if body.scheduled_date is None and body.scheduled_time is None and body.timezone is None:
        return None

    current = await engine.get_item(post_id, owner_id)
    date_str, time_str = body.scheduled_date, body.scheduled_time
    if current.scheduled_at is not None:
        local = current.scheduled_at.astimezone(ZoneInfo(current.timezone))
        date_str = date_str or local.date().isoformat()
        time_str = time_str or local.strftime("%H:%M")

    if not date_str or not time_str:
        raise ValidationError("scheduledDate and scheduledTime are both required")
    return combine_schedule(date_str, time_str, body.timezone or current.timezone)


@router.post("/posts", response_model=ContentItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("schedule_write"))
async def create_scheduled_post(
    request: Request,
    body: SchedulePostRequest,
    owner_id: CurrentOwner,
    engine: Engine,
):
    """Schedule a new post for future publication."""
    item = await engine.create_scheduled(
        owner_id,
        body=body.content,
        targets=body.target_list() or [],
        scheduled_at=body.scheduled_at(),
        media=body.media_urls or [],
        tags=body.tags or [],
        timezone=body.timezone,
    )
    return ContentItemResponse.from_domain(item)


@router.get("/posts", response_model=ContentItemListResponse)
async def list_scheduled_posts(
    owner_id: CurrentOwner,
    engine: Engine,
    status_filter: Optional[str] = Query("scheduled", alias="status"),
    platform: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """List posts by scheduled time; defaults to status ``scheduled``."""
    items, total = await engine.list_items(
        owner_id,
        statuses=parse_statuses(status_filter),
        platform=parse_platform(platform),
        start=parse_date_bound(start_date),
        end=parse_date_bound(end_date, end_of_day=True),
        limit=limit,
        offset=offset,
    )
    return ContentItemListResponse(
        items=[ContentItemResponse.from_domain(i) for i in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/posts/{post_id}", response_model=ContentItemResponse)
async def get_scheduled_post(post_id: str, owner_id: CurrentOwner, engine: Engine):
    """Get a single post, including per-platform publication results."""
    return ContentItemResponse.from_domain(await engine.get_item(post_id, owner_id))


@router.put("/posts/{post_id}", response_model=ContentItemResponse)
@limiter.limit(get_rate_limit("schedule_write"))
async def update_scheduled_post(
    request: Request,
    post_id: str,
    body: UpdateScheduledPostRequest,
    owner_id: CurrentOwner,
    engine: Engine,
):
    """Edit a post that is still waiting to be published."""
    patch = ItemPatch(
        body=body.content,
        targets=body.target_list(),
        media=body.media_urls,
        tags=body.tags,
        scheduled_at=await _patched_schedule(engine, owner_id, post_id, body),
        timezone=body.timezone,
    )
    item = await engine.update_scheduled(post_id, owner_id, patch)
    return ContentItemResponse.from_domain(item)


@router.delete("/posts/{post_id}", response_model=MessageResponse)
async def delete_scheduled_post(post_id: str, owner_id: CurrentOwner, engine: Engine):
    """Delete a draft or scheduled post."""
    await engine.delete_scheduled(post_id, owner_id)
    return MessageResponse(message="Post deleted successfully")


@router.post("/posts/{post_id}/publish-now", response_model=ContentItemResponse)
@limiter.limit(get_rate_limit("publish"))
async def publish_post_now(
    request: Request,
    post_id: str,
    owner_id: CurrentOwner,
    engine: Engine,
):
    """
    Publish a scheduled post immediately.

    The post is claimed synchronously and returned in ``publishing`` status;
    the platform calls complete in the background.
    """
    item = await engine.publish_now(post_id, owner_id)
    return ContentItemResponse.from_domain(item)


@router.get("/upcoming", response_model=UpcomingResponse)
async def get_upcoming_posts(owner_id: CurrentOwner, engine: Engine):
    """Scheduled posts due in the next 7 days (at most 10), soonest first."""
    items = await engine.upcoming(owner_id)
    return UpcomingResponse(
        items=[ContentItemResponse.from_domain(i) for i in items],
        count=len(items),
    )


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    owner_id: CurrentOwner,
    engine: Engine,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
):
    """Posts grouped by scheduled date for a month (defaults to the current one)."""
    now = utcnow()
    year = year or now.year
    month = month or now.month

    days = await engine.calendar(owner_id, year, month)
    return CalendarResponse(
        year=year,
        month=month,
        days={
            day: [ContentItemResponse.from_domain(i) for i in items]
            for day, items in sorted(days.items())
        },
    )
