"""
Content scheduling API schemas.

Wire format is camelCase (``scheduledDate``, ``mediaUrls``, ...); the
models also accept snake_case field names.
"""

import re
from datetime import date, datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from core.domain.content_item import ContentItem, Platform, TargetResult

_TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================
# Field helpers
# ============================================


def parse_schedule_date(value: str) -> date:
    if not _DATE_PATTERN.match(value):
        raise ValueError("Scheduled date must be a valid ISO date (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError("Scheduled date must be a valid ISO date (YYYY-MM-DD)")


def parse_schedule_time(value: str) -> time:
    if not _TIME_PATTERN.match(value):
        raise ValueError("Scheduled time must be in HH:MM format")
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def parse_timezone(value: str) -> ZoneInfo:
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {value}")


def combine_schedule(scheduled_date: str, scheduled_time: str, timezone: str) -> datetime:
    """Interpret a wall-clock date and time in ``timezone`` as an aware instant."""
    return datetime.combine(
        parse_schedule_date(scheduled_date),
        parse_schedule_time(scheduled_time),
        tzinfo=parse_timezone(timezone),
    )


def _check_media_urls(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    for url in v:
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid media URL: {url}")
    return v


def _merge_platforms(platform: str | None, platforms: list[str] | None) -> list[str] | None:
    if platforms is None and platform is None:
        return None
    merged = list(platforms or [])
    if platform:
        merged.insert(0, platform)
    return merged


# ============================================
# Request Schemas
# ============================================


class _TargetedRequest(CamelModel):
    """Accepts a single ``platform`` or a ``platforms`` list (or both)."""

    platform: str | None = None
    platforms: list[str] | None = None
    media_urls: list[str] | None = Field(None, max_length=10)
    tags: list[str] | None = Field(None, max_length=20)

    @field_validator("media_urls")
    @classmethod
    def validate_media_urls(cls, v):
        return _check_media_urls(v)

    def target_list(self) -> list[str] | None:
        return _merge_platforms(self.platform, self.platforms)


class SchedulePostRequest(_TargetedRequest):
    """Request to create a scheduled post."""

    content: str
    scheduled_date: str
    scheduled_time: str
    timezone: str = "UTC"

    @model_validator(mode="after")
    def validate_schedule(self):
        combine_schedule(self.scheduled_date, self.scheduled_time, self.timezone)
        return self

    def scheduled_at(self) -> datetime:
        return combine_schedule(self.scheduled_date, self.scheduled_time, self.timezone)


class UpdateScheduledPostRequest(_TargetedRequest):
    """Request to update a scheduled post; every field is optional."""

    content: str | None = None
    scheduled_date: str | None = None
    scheduled_time: str | None = None
    timezone: str | None = None

    @field_validator("scheduled_date")
    @classmethod
    def validate_date(cls, v):
        if v is not None:
            parse_schedule_date(v)
        return v

    @field_validator("scheduled_time")
    @classmethod
    def validate_time(cls, v):
        if v is not None:
            parse_schedule_time(v)
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if v is not None:
            parse_timezone(v)
        return v


class CreateDraftRequest(_TargetedRequest):
    """Request to save a draft post."""

    content: str


class UpdateDraftRequest(_TargetedRequest):
    """Request to edit a draft post."""

    content: str | None = None


class ScheduleDraftRequest(CamelModel):
    """Request to give a draft a publish time."""

    scheduled_date: str
    scheduled_time: str
    timezone: str | None = None

    @model_validator(mode="after")
    def validate_schedule(self):
        combine_schedule(self.scheduled_date, self.scheduled_time, self.timezone or "UTC")
        return self


class PublishRequest(CamelModel):
    """Request to publish content immediately to several platforms."""

    content: str
    platforms: list[str] = Field(..., min_length=1)
    media_urls: list[str] | None = Field(None, max_length=10)

    @field_validator("media_urls")
    @classmethod
    def validate_media_urls(cls, v):
        return _check_media_urls(v)


# ============================================
# Response Schemas
# ============================================


class TargetResultResponse(CamelModel):
    """Outcome of publishing to one platform."""

    attempted: bool
    success: bool
    external_id: str | None = None
    external_url: str | None = None
    error: str | None = None
    attempted_at: datetime | None = None

    @classmethod
    def from_domain(cls, result: TargetResult) -> "TargetResultResponse":
        return cls(
            attempted=result.attempted,
            success=result.success,
            external_id=result.external_id,
            external_url=result.external_url,
            error=result.error,
            attempted_at=result.attempted_at,
        )


class ContentItemResponse(CamelModel):
    """Post details."""

    id: str
    content: str
    platforms: list[str]
    media_urls: list[str] = []
    tags: list[str] = []
    scheduled_at: datetime | None = None
    scheduled_date: str | None = Field(None, description="Date in the post's timezone")
    scheduled_time: str | None = Field(None, description="HH:MM in the post's timezone")
    timezone: str
    status: str
    per_target_result: dict[str, TargetResultResponse] = {}
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_domain(cls, item: ContentItem) -> "ContentItemResponse":
        scheduled_date = scheduled_time = None
        local = item.local_scheduled_at()
        if local is not None:
            scheduled_date = local.date().isoformat()
            scheduled_time = local.strftime("%H:%M")

        return cls(
            id=item.id,
            content=item.body,
            platforms=[p.value for p in item.targets],
            media_urls=list(item.media),
            tags=list(item.tags),
            scheduled_at=item.scheduled_at,
            scheduled_date=scheduled_date,
            scheduled_time=scheduled_time,
            timezone=item.timezone,
            status=item.status.value,
            per_target_result={
                Platform(p).value: TargetResultResponse.from_domain(r)
                for p, r in item.per_target_result.items()
            },
            created_at=item.created_at,
            updated_at=item.updated_at,
            completed_at=item.completed_at,
        )


class ContentItemListResponse(CamelModel):
    """Paginated list of posts."""

    items: list[ContentItemResponse]
    total: int
    limit: int
    offset: int


class UpcomingResponse(CamelModel):
    """Scheduled posts due within the next week."""

    items: list[ContentItemResponse]
    count: int


class CalendarResponse(CamelModel):
    """Posts grouped by scheduled date for one month."""

    year: int
    month: int
    days: dict[str, list[ContentItemResponse]] = Field(
        ..., description="Keyed by date in YYYY-MM-DD format"
    )


class PublishTargetResult(TargetResultResponse):
    """Per-platform outcome of an immediate publish."""

    platform: str


class PublishResponse(CamelModel):
    """Response for an immediate publish."""

    id: str
    status: str
    results: list[PublishTargetResult]

    @classmethod
    def from_domain(cls, item: ContentItem) -> "PublishResponse":
        return cls(
            id=item.id,
            status=item.status.value,
            results=[
                PublishTargetResult(
                    platform=platform.value,
                    **TargetResultResponse.from_domain(result).model_dump(),
                )
                for platform, result in item.per_target_result.items()
            ],
        )


class MessageResponse(CamelModel):
    """Simple acknowledgement."""

    message: str
