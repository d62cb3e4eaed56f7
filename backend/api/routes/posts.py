"""
Draft post API routes.
"""

from typing import Optional

from fastapi import APIRouter, Query, Request, status

from api.dependencies import CurrentOwner, Engine
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.content_item import (
    ContentItemListResponse,
    ContentItemResponse,
    CreateDraftRequest,
    MessageResponse,
    ScheduleDraftRequest,
    UpdateDraftRequest,
    combine_schedule,
)
from api.utils import parse_platform, parse_statuses
from services.scheduling_engine import ItemPatch

router = APIRouter(prefix="/posts", tags=["Posts"])


@router.post("", response_model=ContentItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("schedule_write"))
async def create_draft(
    request: Request,
    body: CreateDraftRequest,
    owner_id: CurrentOwner,
    engine: Engine,
):
    """Save a draft post without a publish time."""
    item = await engine.create_draft(
        owner_id,
        body=body.content,
        targets=body.target_list() or [],
        media=body.media_urls or [],
        tags=body.tags or [],
    )
    return ContentItemResponse.from_domain(item)


@router.get("", response_model=ContentItemListResponse)
async def list_posts(
    owner_id: CurrentOwner,
    engine: Engine,
    status_filter: Optional[str] = Query(None, alias="status"),
    platform: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """List all of the caller's posts, optionally filtered by status and platform."""
    items, total = await engine.list_items(
        owner_id,
        statuses=parse_statuses(status_filter),
        platform=parse_platform(platform),
        limit=limit,
        offset=offset,
    )
    return ContentItemListResponse(
        items=[ContentItemResponse.from_domain(i) for i in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{post_id}", response_model=ContentItemResponse)
async def get_post(post_id: str, owner_id: CurrentOwner, engine: Engine):
    return ContentItemResponse.from_domain(await engine.get_item(post_id, owner_id))


@router.put("/{post_id}", response_model=ContentItemResponse)
async def update_draft(
    post_id: str,
    body: UpdateDraftRequest,
    owner_id: CurrentOwner,
    engine: Engine,
):
    """Edit a draft; scheduled posts are edited through /schedule/posts."""
    patch = ItemPatch(
        body=body.content,
        targets=body.target_list(),
        media=body.media_urls,
        tags=body.tags,
    )
    item = await engine.update_draft(post_id, owner_id, patch)
    return ContentItemResponse.from_domain(item)


@router.post("/{post_id}/schedule", response_model=ContentItemResponse)
async def schedule_draft(
    post_id: str,
    body: ScheduleDraftRequest,
    owner_id: CurrentOwner,
    engine: Engine,
):
    """Give a draft a future publish time."""
    timezone = body.timezone
    if timezone is None:
        timezone = (await engine.get_item(post_id, owner_id)).timezone

    item = await engine.schedule_draft(
        post_id,
        owner_id,
        scheduled_at=combine_schedule(body.scheduled_date, body.scheduled_time, timezone),
        timezone=timezone,
    )
    return ContentItemResponse.from_domain(item)


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(post_id: str, owner_id: CurrentOwner, engine: Engine):
    await engine.delete_scheduled(post_id, owner_id)
    return MessageResponse(message="Post deleted successfully")
