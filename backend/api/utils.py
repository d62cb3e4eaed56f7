"""
Shared API utility functions.
"""

from datetime import UTC, date, datetime, time
from typing import Optional

from core.domain.content_item import ContentStatus, Platform
from core.domain.errors import ValidationError


def parse_platform(value: Optional[str]) -> Optional[Platform]:
    """Parse a ``platform`` query parameter."""
    if not value:
        return None
    try:
        return Platform(value.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown platform: {value}. Supported: {', '.join(p.value for p in Platform)}"
        )


def parse_statuses(value: Optional[str]) -> Optional[list[ContentStatus]]:
    """Parse a comma-separated ``status`` query parameter; ``all`` means no filter."""
    if not value or value.strip().lower() == "all":
        return None
    statuses = []
    for raw in value.split(","):
        try:
            statuses.append(ContentStatus(raw.strip().lower()))
        except ValueError:
            raise ValidationError(f"Unknown status: {raw.strip()}")
    return statuses


def parse_date_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """Parse an ISO date (or datetime) query parameter as a UTC bound."""
    if not value:
        return None
    try:
        if "T" in value:
            parsed = datetime.fromisoformat(value)
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        day = date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")
    return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=UTC)
