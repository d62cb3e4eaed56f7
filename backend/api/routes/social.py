"""
Social publishing and linked platform API routes.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from adapters.social.base import SocialCredentials
from api.dependencies import CurrentOwner, Engine, get_account_store, get_adapter_factory
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.content_item import MessageResponse, PublishRequest, PublishResponse
from api.schemas.social import (
    ConnectPlatformRequest,
    DisconnectPlatformRequest,
    PlatformStatus,
    PlatformStatusResponse,
)
from api.utils import parse_platform
from core.domain.content_item import Platform
from core.domain.errors import NotFoundError, ValidationError
from core.domain.linked_account import LinkedAccount
from core.interfaces.repositories import SocialAccountRepository
from services.publication_worker import AdapterFactory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/social", tags=["Social Media"])

AccountStore = Annotated[SocialAccountRepository, Depends(get_account_store)]


def _required_platform(value: str) -> Platform:
    platform = parse_platform(value)
    if platform is None:
        raise ValidationError("Platform is required")
    return platform


@router.post("/publish", response_model=PublishResponse)
@limiter.limit(get_rate_limit("publish"))
async def publish_to_platforms(
    request: Request,
    body: PublishRequest,
    owner_id: CurrentOwner,
    engine: Engine,
):
    """
    Publish content to several platforms right away.

    Returns the outcome for every requested platform; platform failures are
    reported in the results, not as HTTP errors.
    """
    item = await engine.publish_immediately(
        owner_id,
        body=body.content,
        targets=body.platforms,
        media=body.media_urls or [],
    )
    return PublishResponse.from_domain(item)


@router.get("/platforms/status", response_model=PlatformStatusResponse)
async def get_platform_status(owner_id: CurrentOwner, accounts: AccountStore):
    """Connection state for every supported platform."""
    linked = {a.platform: a for a in await accounts.list_for_owner(owner_id)}

    statuses = []
    for platform in Platform:
        account = linked.get(platform)
        connected = account is not None and account.is_active
        statuses.append(
            PlatformStatus(
                platform=platform.value,
                connected=connected,
                username=account.username if connected else None,
                account_id=account.account_id if connected else None,
                connected_at=account.connected_at if connected else None,
            )
        )
    return PlatformStatusResponse(platforms=statuses)


@router.post("/platforms/connect", response_model=PlatformStatus)
async def connect_platform(
    body: ConnectPlatformRequest,
    owner_id: CurrentOwner,
    accounts: AccountStore,
    adapter_factory: Annotated[AdapterFactory, Depends(get_adapter_factory)],
):
    """
    Link a platform account using tokens from a completed OAuth handshake.

    The tokens are checked against the platform before they are stored.
    """
    platform = _required_platform(body.platform)
    account = LinkedAccount(
        owner_id=owner_id,
        platform=platform,
        account_id=body.account_id,
        access_token=body.access_token,
        refresh_token=body.refresh_token,
        username=body.username,
    )

    adapter = adapter_factory(platform)
    if not await adapter.verify_credentials(SocialCredentials.from_account(account)):
        raise ValidationError(f"Could not verify {platform.value} credentials")

    account = await accounts.upsert(account)
    logger.info(
        "Connected %s account for owner %s",
        platform.value,
        owner_id,
        extra={"owner_id": owner_id, "platform": platform.value},
    )
    return PlatformStatus(
        platform=platform.value,
        connected=True,
        username=account.username,
        account_id=account.account_id,
        connected_at=account.connected_at,
    )


@router.post("/platforms/disconnect", response_model=MessageResponse)
async def disconnect_platform(
    body: DisconnectPlatformRequest,
    owner_id: CurrentOwner,
    accounts: AccountStore,
):
    platform = _required_platform(body.platform)
    if not await accounts.deactivate(owner_id, platform):
        raise NotFoundError(f"{platform.value} is not connected")

    logger.info(
        "Disconnected %s account for owner %s",
        platform.value,
        owner_id,
        extra={"owner_id": owner_id, "platform": platform.value},
    )
    return MessageResponse(message=f"{platform.value} disconnected successfully")
