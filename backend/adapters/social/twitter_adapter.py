"""
Twitter/X API v2 adapter for social media posting.

Posts tweets through API v2; media is uploaded through the v1.1 upload
endpoint first and referenced by ID.
"""

import logging
from typing import List, Optional

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


class TwitterAdapter(BaseSocialAdapter):
    """
    Twitter/X API v2 adapter for posting tweets.

    Supports text tweets and tweets with up to four images.
    """

    platform = Platform.TWITTER

    # API endpoints
    API_BASE_URL = "https://api.twitter.com/2"
    UPLOAD_BASE_URL = "https://upload.twitter.com/1.1"

    CHARACTER_LIMIT = 280
    MAX_MEDIA = 4

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: float = 30,
        mock_mode: bool = False,
        **kwargs,
    ):
        """
        Initialize Twitter adapter.

        Args:
            client_id: Twitter OAuth client ID
            client_secret: Twitter OAuth client secret
            timeout: Request timeout in seconds
            mock_mode: Enable mock mode for development
        """
        super().__init__(timeout=timeout, mock_mode=mock_mode, **kwargs)
        self.client_id = client_id or settings.twitter_client_id
        self.client_secret = client_secret or settings.twitter_client_secret

        if not self.mock_mode and not all([self.client_id, self.client_secret]):
            logger.warning(
                "Twitter OAuth credentials not configured. "
                "Set twitter_client_id and twitter_client_secret in settings."
            )

    def _headers(self, credentials: SocialCredentials) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credentials.access_token}",
            "Content-Type": "application/json",
        }

    def _tweet_url(self, credentials: SocialCredentials, tweet_id: str) -> str:
        username = credentials.account_username or "i"
        return f"https://twitter.com/{username}/status/{tweet_id}"

    async def verify_credentials(self, credentials: SocialCredentials) -> bool:
        if self.mock_mode:
            return True

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.API_BASE_URL}/users/me",
                    headers=self._headers(credentials),
                )
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("Twitter credential check failed: %s", e)
            return False

    async def post_text(self, credentials: SocialCredentials, text: str) -> PostResult:
        """
        Post a tweet.

        Raises:
            SocialValidationError: If text exceeds 280 characters
            SocialAPIError: If tweet creation fails
        """
        self.validate_text_length(text)

        if self.mock_mode:
            logger.info("Mock mode: Would post tweet: %s...", text[:50])
            return PostResult(
                success=True,
                post_id="1234567890",
                post_url="https://twitter.com/mockuser/status/1234567890",
            )

        return await self._create_tweet(credentials, {"text": text})

    async def post_with_media(
        self,
        credentials: SocialCredentials,
        text: str,
        media_urls: List[str],
    ) -> PostResult:
        """
        Post a tweet with media attachments.

        Raises:
            SocialValidationError: If validation fails
            SocialAPIError: If posting fails
        """
        self.validate_text_length(text)

        if len(media_urls) > self.MAX_MEDIA:
            raise SocialValidationError(
                f"Twitter allows maximum {self.MAX_MEDIA} images per tweet"
            )
        for media_url in media_urls:
            self.validate_media_url(media_url)

        if self.mock_mode:
            logger.info("Mock mode: Would post tweet with %d media", len(media_urls))
            return PostResult(
                success=True,
                post_id="1234567890",
                post_url="https://twitter.com/mockuser/status/1234567890",
            )

        try:
            media_ids = [await self._upload_from_url(credentials, url) for url in media_urls]
        except httpx.HTTPError as e:
            logger.error("HTTP error during tweet media upload: %s", e)
            return PostResult(success=False, error_message=str(e))

        return await self._create_tweet(
            credentials, {"text": text, "media": {"media_ids": media_ids}}
        )

    async def _create_tweet(self, credentials: SocialCredentials, payload: dict) -> PostResult:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                logger.info("Posting tweet for account %s", credentials.account_id)
                response = await client.post(
                    f"{self.API_BASE_URL}/tweets",
                    headers=self._headers(credentials),
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error("HTTP error during tweet posting: %s", e)
            return PostResult(success=False, error_message=str(e))

        result = self.check_response(response, "Tweet creation", ok_statuses=(201,))
        tweet_id = result.get("data", {}).get("id")
        if not tweet_id:
            raise SocialAPIError("Tweet creation response missing id")

        tweet_url = self._tweet_url(credentials, tweet_id)
        logger.info("Tweet posted successfully: %s", tweet_url)
        return PostResult(success=True, post_id=tweet_id, post_url=tweet_url)

    async def _upload_from_url(self, credentials: SocialCredentials, media_url: str) -> str:
        """Download media and upload it to Twitter; returns the media ID."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            media_response = await client.get(media_url)
            media_response.raise_for_status()

            response = await client.post(
                f"{self.UPLOAD_BASE_URL}/media/upload.json",
                headers={"Authorization": f"Bearer {credentials.access_token}"},
                files={"media": media_response.content},
            )

        result = self.check_response(response, "Media upload", ok_statuses=(200,))
        media_id = result.get("media_id_string") or result.get("media_id")
        if media_id is None:
            raise SocialAPIError("Media upload response missing media_id")

        logger.info("Media uploaded to Twitter: %s", media_id)
        return str(media_id)

    def get_character_limit(self) -> int:
        """Get Twitter character limit."""
        return self.CHARACTER_LIMIT
