"""Content item domain entity and its publication state machine."""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import InvalidStateError, ValidationError

# Upper bound on the body at creation time; per-platform limits apply at publish time
MAX_BODY_LENGTH = 2000


class Platform(str, Enum):
    """Target platforms content can be published to."""

    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"


class ContentStatus(str, Enum):
    """Lifecycle status of a content item."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    PARTIALLY_PUBLISHED = "partially_published"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[ContentStatus, frozenset[ContentStatus]] = {
    ContentStatus.DRAFT: frozenset({ContentStatus.SCHEDULED}),
    ContentStatus.SCHEDULED: frozenset({ContentStatus.PUBLISHING}),
    ContentStatus.PUBLISHING: frozenset(
        {
            ContentStatus.PUBLISHED,
            ContentStatus.PARTIALLY_PUBLISHED,
            ContentStatus.FAILED,
        }
    ),
    ContentStatus.PUBLISHED: frozenset(),
    ContentStatus.PARTIALLY_PUBLISHED: frozenset(),
    ContentStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    {ContentStatus.PUBLISHED, ContentStatus.PARTIALLY_PUBLISHED, ContentStatus.FAILED}
)

# Owner-initiated deletion is only allowed before publication starts
DELETABLE_STATUSES = frozenset({ContentStatus.DRAFT, ContentStatus.SCHEDULED})


def can_transition(current: ContentStatus, target: ContentStatus) -> bool:
    """Return True if the state machine permits ``current -> target``."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: ContentStatus, target: ContentStatus) -> None:
    """Raise InvalidStateError unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Invalid transition: {current.value} -> {target.value}"
        )


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Normalise a datetime to an aware UTC instant (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass
class TargetResult:
    """Outcome of publishing an item to one platform."""

    attempted: bool = False
    success: bool = False
    external_id: Optional[str] = None
    external_url: Optional[str] = None
    error: Optional[str] = None
    attempted_at: Optional[datetime] = None

    @classmethod
    def succeeded(
        cls, external_id: Optional[str], external_url: Optional[str] = None
    ) -> "TargetResult":
        return cls(
            attempted=True,
            success=True,
            external_id=external_id,
            external_url=external_url,
            attempted_at=utcnow(),
        )

    @classmethod
    def failed(cls, error: str) -> "TargetResult":
        return cls(attempted=True, success=False, error=error, attempted_at=utcnow())

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON document stored on the item."""
        return {
            "attempted": self.attempted,
            "success": self.success,
            "external_id": self.external_id,
            "external_url": self.external_url,
            "error": self.error,
            "attempted_at": self.attempted_at.isoformat() if self.attempted_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TargetResult":
        attempted_at = data.get("attempted_at")
        return cls(
            attempted=bool(data.get("attempted", False)),
            success=bool(data.get("success", False)),
            external_id=data.get("external_id"),
            external_url=data.get("external_url"),
            error=data.get("error"),
            attempted_at=as_utc(datetime.fromisoformat(attempted_at)) if attempted_at else None,
        )


@dataclass
class ContentItem:
    """A schedulable unit of user content plus its multi-platform publication state."""

    owner_id: str
    body: str
    targets: list[Platform]
    media: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    scheduled_at: Optional[datetime] = None
    timezone: str = "UTC"
    status: ContentStatus = ContentStatus.DRAFT
    per_target_result: dict[Platform, TargetResult] = field(default_factory=dict)

    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    claimed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_due(self, now: datetime) -> bool:
        return (
            self.status == ContentStatus.SCHEDULED
            and self.scheduled_at is not None
            and self.scheduled_at <= now
        )

    def local_scheduled_at(self) -> Optional[datetime]:
        """``scheduled_at`` in the item's own timezone (UTC if the zone is unknown)."""
        if self.scheduled_at is None:
            return None
        try:
            return self.scheduled_at.astimezone(ZoneInfo(self.timezone))
        except (ZoneInfoNotFoundError, ValueError):
            return self.scheduled_at


def local_schedule_date(item: ContentItem) -> Optional[date]:
    local = item.local_scheduled_at()
    return local.date() if local is not None else None


def resolve_final_status(results: Mapping[Platform, TargetResult]) -> ContentStatus:
    """
    Compute the terminal status from per-target results.

    All succeeded -> published, none succeeded -> failed, otherwise
    partially_published.
    """
    if not results:
        return ContentStatus.FAILED
    successes = sum(1 for r in results.values() if r.success)
    if successes == len(results):
        return ContentStatus.PUBLISHED
    if successes == 0:
        return ContentStatus.FAILED
    return ContentStatus.PARTIALLY_PUBLISHED


def normalize_targets(targets: Iterable[str]) -> list[Platform]:
    """
    Validate a target list, dropping repeats while keeping first-seen order.

    Raises:
        ValidationError: If the list is empty or names an unknown platform.
    """
    normalized: list[Platform] = []
    for raw in targets:
        if isinstance(raw, Platform):
            raw = raw.value
        try:
            platform = Platform(str(raw).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown platform: {raw}. Supported: {', '.join(p.value for p in Platform)}"
            )
        if platform not in normalized:
            normalized.append(platform)
    if not normalized:
        raise ValidationError("At least one target platform is required")
    return normalized


def validate_body(body: Optional[str]) -> str:
    """Return the body unchanged if it is non-empty and within MAX_BODY_LENGTH."""
    if body is None or not body.strip():
        raise ValidationError("Content is required")
    if len(body) > MAX_BODY_LENGTH:
        raise ValidationError(
            f"Content cannot exceed {MAX_BODY_LENGTH} characters ({len(body)} given)"
        )
    return body


def validate_future(scheduled_at: datetime, now: datetime) -> datetime:
    """Return ``scheduled_at`` as UTC if it lies strictly after ``now``."""
    scheduled_at = as_utc(scheduled_at)
    if scheduled_at <= now:
        raise ValidationError("Scheduled date and time must be in the future")
    return scheduled_at
