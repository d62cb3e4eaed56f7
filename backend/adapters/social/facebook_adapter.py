"""
Facebook Graph API adapter for posting to Pages.

A linked Facebook account stores the Page ID as its account ID and the
Page access token as its access token.
"""

import logging
from typing import List, Optional

import httpx

from core.domain.content_item import Platform
from infrastructure.config.settings import settings

from .base import (
    BaseSocialAdapter,
    PostResult,
    SocialCredentials,
    SocialValidationError,
)

logger = logging.getLogger(__name__)


class FacebookAdapter(BaseSocialAdapter):
    """
    Facebook Graph API adapter for posting to pages.

    Text goes to the page feed; a single image goes to the page photos
    endpoint by URL.
    """

    platform = Platform.FACEBOOK

    API_BASE_URL = "https://graph.facebook.com/v18.0"

    # Facebook allows up to 63,206 characters
    CHARACTER_LIMIT = 63206

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
                "Facebook OAuth credentials not configured. "
                "Set facebook_app_id and facebook_app_secret in settings."
            )

    @staticmethod
    def _post_url(post_id: str) -> str:
        return f"https://www.facebook.com/{post_id.replace('_', '/posts/')}"

    def _page(self, credentials: SocialCredentials) -> tuple[str, str]:
        if not credentials.account_id or not credentials.access_token:
            raise SocialValidationError("page_id and page_token are required for Facebook posting")
        return credentials.account_id, credentials.access_token

    async def verify_credentials(self, credentials: SocialCredentials) -> bool:
        if self.mock_mode:
            return True

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.API_BASE_URL}/me",
                    params={"access_token": credentials.access_token},
                )
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("Facebook credential check failed: %s", e)
            return False

    async def post_text(self, credentials: SocialCredentials, text: str) -> PostResult:
        self.validate_text_length(text)
        page_id, page_token = self._page(credentials)

        if self.mock_mode:
            logger.info("Mock mode: Would post to Facebook page: %s...", text[:50])
            return PostResult(
                success=True,
                post_id="123456789_987654321",
                post_url=f"https://www.facebook.com/{page_id}/posts/987654321",
            )

        return await self._post(
            f"{self.API_BASE_URL}/{page_id}/feed",
            {"message": text, "access_token": page_token},
        )

    async def post_with_media(
        self,
        credentials: SocialCredentials,
        text: str,
        media_urls: List[str],
    ) -> PostResult:
        self.validate_text_length(text)
        page_id, page_token = self._page(credentials)
        self.validate_media_url(media_urls[0])

        if self.mock_mode:
            logger.info("Mock mode: Would post to Facebook page with %d media", len(media_urls))
            return PostResult(
                success=True,
                post_id="123456789_987654321",
                post_url=f"https://www.facebook.com/{page_id}/posts/987654321",
            )

        if len(media_urls) > 1:
            # TODO: publish multi-image posts as unpublished photos attached to one feed post
            logger.warning("Multiple image posting requires album creation - posting first image only")

        return await self._post(
            f"{self.API_BASE_URL}/{page_id}/photos",
            {"url": media_urls[0], "message": text, "access_token": page_token},
        )

    async def _post(self, url: str, data: dict) -> PostResult:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                logger.info("Posting to Facebook: %s", url.rsplit("/", 2)[-2])
                response = await client.post(url, data=data)
        except httpx.HTTPError as e:
            logger.error("HTTP error during Facebook posting: %s", e)
            return PostResult(success=False, error_message=str(e))

        result = self.check_response(response, "Post creation")
        post_id = result.get("post_id") or result.get("id", "")
        post_url = self._post_url(post_id)

        logger.info("Facebook post created successfully: %s", post_url)
        return PostResult(success=True, post_id=post_id, post_url=post_url)

    def get_character_limit(self) -> int:
        """Get Facebook character limit."""
        return self.CHARACTER_LIMIT
