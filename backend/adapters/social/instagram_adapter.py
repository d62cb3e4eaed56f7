"""
Instagram Graph API adapter for social media posting.

Instagram Business accounts publish through the Content Publishing API:

- Text-only posts are not supported; every post needs an image.
- Posts are created in two steps: create a media container, then publish it.
- Captions are limited to 2,200 characters.
"""

import logging
from typing import Optional

import httpx

from core.domain.content_item import Platform
from infrastructure.config.settings import settings

from .base import (
    BaseSocialAdapter,
    PostResult,
    SocialAPIError,
    SocialCredentials,
    SocialValidationError,
)

logger = logging.getLogger(__name__)


class InstagramAdapter(BaseSocialAdapter):
    """
    Instagram Content Publishing API adapter.

    The linked account ID is the Instagram Business Account ID. Only the
    first media URL is used; carousel posts are not implemented.
    """

    platform = Platform.INSTAGRAM

    API_BASE_URL = "https://graph.facebook.com/v21.0"

    CHARACTER_LIMIT = 2200

    def __init__(
        self,
        app_id: Optional[str] = None,
        app_secret: Optional[str] = None,
        timeout: float = 30,
        mock_mode: bool = False,
        **kwargs,
    ):
        super().__init__(timeout=timeout, mock_mode=mock_mode, **kwargs)
        self.app_id = app_id or settings.facebook_app_id
        self.app_secret = app_secret or settings.facebook_app_secret

        if not self.mock_mode and not all([self.app_id, self.app_secret]):
            logger.warning(
                "Instagram OAuth credentials not configured. "
                "Set facebook_app_id and facebook_app_secret in settings."
            )

    async def verify_credentials(self, credentials: SocialCredentials) -> bool:
        if self.mock_mode:
            return True

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.API_BASE_URL}/{credentials.account_id}",
                    params={"fields": "id,username", "access_token": credentials.access_token},
                )
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("Instagram credential check failed: %s", e)
            return False

    async def post_text(self, credentials: SocialCredentials, text: str) -> PostResult:
        """
        Instagram does not support text-only posts.

        Raises:
            SocialValidationError: Always
        """
        raise SocialValidationError("Instagram requires at least one image")

    async def post_with_media(
        self,
        credentials: SocialCredentials,
        text: str,
        media_urls: list[str],
    ) -> PostResult:
        """
        Publish an image post using the container flow.

        1. Create a media container (POST /{ig-user-id}/media)
        2. Publish the container (POST /{ig-user-id}/media_publish)
        """
        self.validate_text_length(text)

        if not media_urls:
            raise SocialValidationError("Instagram requires at least one image")

        user_id = credentials.account_id
        image_url = media_urls[0]
        self.validate_media_url(image_url)

        if self.mock_mode:
            logger.info("Mock mode: Would post to Instagram account %s: %s...", user_id, text[:50])
            return PostResult(
                success=True,
                post_id="17841234567890123",
                post_url="https://www.instagram.com/p/mock_post_id/",
            )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                logger.info("Creating Instagram media container for account %s", user_id)
                container_resp = await client.post(
                    f"{self.API_BASE_URL}/{user_id}/media",
                    data={
                        "image_url": image_url,
                        "caption": text,
                        "access_token": credentials.access_token,
                    },
                )
                creation_id = self.check_response(container_resp, "Container creation").get("id")
                if not creation_id:
                    raise SocialAPIError("Instagram container creation response missing 'id'")

                logger.info("Publishing Instagram media container %s", creation_id)
                publish_resp = await client.post(
                    f"{self.API_BASE_URL}/{user_id}/media_publish",
                    data={
                        "creation_id": creation_id,
                        "access_token": credentials.access_token,
                    },
                )
                media_id = self.check_response(publish_resp, "Instagram publish").get("id", "")
        except httpx.HTTPError as e:
            logger.error("HTTP error during Instagram posting: %s", e)
            return PostResult(success=False, error_message=str(e))

        post_url = f"https://www.instagram.com/p/{media_id}/"
        logger.info("Instagram post published successfully: %s", post_url)
        return PostResult(success=True, post_id=media_id, post_url=post_url)

    def get_character_limit(self) -> int:
        """Get Instagram caption limit."""
        return self.CHARACTER_LIMIT
