"""
Linked platform account API schemas.
"""

from datetime import datetime

from pydantic import Field

from .content_item import CamelModel


class PlatformStatus(CamelModel):
    """Connection state of one platform for the current owner."""

    platform: str
    connected: bool
    username: str | None = None
    account_id: str | None = None
    connected_at: datetime | None = None


class PlatformStatusResponse(CamelModel):
    """Connection state of every supported platform."""

    platforms: list[PlatformStatus]


class ConnectPlatformRequest(CamelModel):
    """Store tokens obtained from a completed OAuth handshake."""

    platform: str
    access_token: str = Field(..., min_length=1)
    refresh_token: str | None = None
    account_id: str = Field(..., min_length=1)
    username: str | None = Field(None, max_length=255)


class DisconnectPlatformRequest(CamelModel):
    """Request to unlink a platform."""

    platform: str
