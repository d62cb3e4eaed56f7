"""
LinkedIn UGC Posts API adapter for social media posting.
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
)

logger = logging.getLogger(__name__)


class LinkedInAdapter(BaseSocialAdapter):
    """
    LinkedIn adapter posting member updates via the UGC Posts API.

    Media references are attached as article shares pointing at the
    original URL.
    """

    platform = Platform.LINKEDIN

    API_BASE_URL = "https://api.linkedin.com/v2"

    CHARACTER_LIMIT = 3000

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: float = 30,
        mock_mode: bool = False,
        **kwargs,
    ):
        super().__init__(timeout=timeout, mock_mode=mock_mode, **kwargs)
        self.client_id = client_id or settings.linkedin_client_id
        self.client_secret = client_secret or settings.linkedin_client_secret

        if not self.mock_mode and not all([self.client_id, self.client_secret]):
            logger.warning(
                "LinkedIn OAuth credentials not configured. "
                "Set linkedin_client_id and linkedin_client_secret in settings."
            )

    def _headers(self, credentials: SocialCredentials) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credentials.access_token}",
            "Content-Type": "application/json",
            "X-Restli-Protocol-Version": "2.0.0",
        }

    async def verify_credentials(self, credentials: SocialCredentials) -> bool:
        if self.mock_mode:
            return True

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.API_BASE_URL}/me",
                    headers=self._headers(credentials),
                )
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("LinkedIn credential check failed: %s", e)
            return False

    async def post_text(self, credentials: SocialCredentials, text: str) -> PostResult:
        self.validate_text_length(text)

        if self.mock_mode:
            logger.info("Mock mode: Would post LinkedIn update: %s...", text[:50])
            return PostResult(
                success=True,
                post_id="urn:li:share:1234567890",
                post_url="https://www.linkedin.com/feed/update/urn:li:share:1234567890",
            )

        return await self._create_post(credentials, self._share_content(text))

    async def post_with_media(
        self,
        credentials: SocialCredentials,
        text: str,
        media_urls: List[str],
    ) -> PostResult:
        self.validate_text_length(text)
        for media_url in media_urls:
            self.validate_media_url(media_url)

        if self.mock_mode:
            logger.info("Mock mode: Would post LinkedIn update with %d media", len(media_urls))
            return PostResult(
                success=True,
                post_id="urn:li:share:1234567890",
                post_url="https://www.linkedin.com/feed/update/urn:li:share:1234567890",
            )

        share = self._share_content(text)
        share["shareMediaCategory"] = "ARTICLE"
        share["media"] = [{"status": "READY", "originalUrl": url} for url in media_urls]
        return await self._create_post(credentials, share)

    def _share_content(self, text: str) -> dict:
        return {
            "shareCommentary": {"text": text},
            "shareMediaCategory": "NONE",
        }

    async def _create_post(self, credentials: SocialCredentials, share: dict) -> PostResult:
        post_data = {
            "author": f"urn:li:person:{credentials.account_id}",
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": share},
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                logger.info("Posting LinkedIn update for %s", credentials.account_id)
                response = await client.post(
                    f"{self.API_BASE_URL}/ugcPosts",
                    headers=self._headers(credentials),
                    json=post_data,
                )
        except httpx.HTTPError as e:
            logger.error("HTTP error during LinkedIn posting: %s", e)
            return PostResult(success=False, error_message=str(e))

        result = self.check_response(response, "Post creation")
        # LinkedIn returns the URN in the body and in X-RestLi-Id
        post_id = result.get("id") or response.headers.get("x-restli-id", "")
        post_url = f"https://www.linkedin.com/feed/update/{post_id}"

        logger.info("LinkedIn post created successfully: %s", post_url)
        return PostResult(success=True, post_id=post_id, post_url=post_url)

    def get_character_limit(self) -> int:
        """Get LinkedIn character limit."""
        return self.CHARACTER_LIMIT
