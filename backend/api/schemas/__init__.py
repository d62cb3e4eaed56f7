"""
API request and response schemas.
"""

from .content_item import (
    CalendarResponse,
    ContentItemListResponse,
    ContentItemResponse,
    CreateDraftRequest,
    MessageResponse,
    PublishRequest,
    PublishResponse,
    ScheduleDraftRequest,
    SchedulePostRequest,
    UpcomingResponse,
    UpdateDraftRequest,
    UpdateScheduledPostRequest,
)
from .social import (
    ConnectPlatformRequest,
    DisconnectPlatformRequest,
    PlatformStatus,
    PlatformStatusResponse,
)

__all__ = [
    "CalendarResponse",
    "ContentItemListResponse",
    "ContentItemResponse",
    "CreateDraftRequest",
    "MessageResponse",
    "PublishRequest",
    "PublishResponse",
    "ScheduleDraftRequest",
    "SchedulePostRequest",
    "UpcomingResponse",
    "UpdateDraftRequest",
    "UpdateScheduledPostRequest",
    "ConnectPlatformRequest",
    "DisconnectPlatformRequest",
    "PlatformStatus",
    "PlatformStatusResponse",
]
