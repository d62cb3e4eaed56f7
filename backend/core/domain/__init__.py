# Domain Entities
# Pure business objects with no external dependencies
from .content_item import ContentItem, ContentStatus, Platform, TargetResult
from .errors import (
    AdapterError,
    InvalidStateError,
    NotFoundError,
    SchedulingError,
    StoreUnavailableError,
    ValidationError,
)
from .linked_account import LinkedAccount

__all__ = [
    "ContentItem",
    "ContentStatus",
    "Platform",
    "TargetResult",
    "LinkedAccount",
    "SchedulingError",
    "ValidationError",
    "NotFoundError",
    "InvalidStateError",
    "AdapterError",
    "StoreUnavailableError",
]
