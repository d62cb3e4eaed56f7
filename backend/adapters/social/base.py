"""
Base classes and interfaces for social media platform adapters.

Provides abstract base class, data structures, and exceptions for
publishing content to the supported platforms (Twitter, LinkedIn,
Facebook, Instagram).
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx

from core.domain.content_item import Platform
from core.domain.linked_account import LinkedAccount
from infrastructure.config.settings import settings


@dataclass
class SocialCredentials:
    """OAuth credentials for a social media platform."""

    platform: Platform
    access_token: str
    account_id: str
    refresh_token: str | None = None
    account_username: str | None = None

    @classmethod
    def from_account(cls, account: LinkedAccount) -> "SocialCredentials":
        """Build adapter credentials from a linked account."""
        return cls(
            platform=account.platform,
            access_token=account.access_token,
            account_id=account.account_id,
            refresh_token=account.refresh_token,
            account_username=account.username,
        )


@dataclass
class PostResult:
    """Result of a social media post operation."""

    success: bool
    post_id: str | None = None
    post_url: str | None = None
    error_message: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "post_id": self.post_id,
            "post_url": self.post_url,
            "error_message": self.error_message,
        }


# Custom Exceptions
class SocialAdapterError(Exception):
    """Base exception for social media adapter errors."""

    pass


class SocialAuthError(SocialAdapterError):
    """Raised when the platform rejects the account's credentials."""

    pass


class SocialAPIError(SocialAdapterError):
    """Raised when social media API returns an error."""

    pass


class SocialRateLimitError(SocialAdapterError):
    """Raised when API rate limit is exceeded."""

    pass


class SocialValidationError(SocialAdapterError):
    """Raised when post content validation fails."""

    pass


class BaseSocialAdapter(ABC):
    """
    Abstract base class for social media platform adapters.

    One adapter per platform; each owns its authentication headers,
    rate-limit handling and request formatting. Adapters make a single
    attempt per call and never retry.
    """

    platform: Platform

    def __init__(
        self,
        timeout: float = 30,
        mock_mode: bool = False,
        allowed_media_domains: Sequence[str] | None = None,
    ):
        self.timeout = timeout
        self.mock_mode = mock_mode
        self.allowed_media_domains = (
            list(allowed_media_domains)
            if allowed_media_domains is not None
            else settings.media_allowed_domains_list
        )

    async def publish(
        self,
        credentials: SocialCredentials,
        text: str,
        media_urls: Sequence[str] | None = None,
    ) -> PostResult:
        """
        Publish content to the platform.

        Args:
            credentials: Account credentials
            text: Post body
            media_urls: Optional media references to attach

        Returns:
            Result with post ID and URL

        Raises:
            SocialAdapterError: If the platform rejects the post
        """
        if media_urls:
            return await self.post_with_media(credentials, text, list(media_urls))
        return await self.post_text(credentials, text)

    @abstractmethod
    async def verify_credentials(self, credentials: SocialCredentials) -> bool:
        """
        Verify credentials are still valid.

        Args:
            credentials: Credentials to verify

        Returns:
            True if valid, False otherwise
        """
        pass

    @abstractmethod
    async def post_text(self, credentials: SocialCredentials, text: str) -> PostResult:
        """
        Post text content to social media platform.

        Raises:
            SocialValidationError: If text exceeds character limit
            SocialAPIError: If post creation fails
            SocialRateLimitError: If rate limit is exceeded
        """
        pass

    @abstractmethod
    async def post_with_media(
        self, credentials: SocialCredentials, text: str, media_urls: list[str]
    ) -> PostResult:
        """
        Post content with media attachments.

        Raises:
            SocialValidationError: If validation fails
            SocialAPIError: If post creation fails
            SocialRateLimitError: If rate limit is exceeded
        """
        pass

    @abstractmethod
    def get_character_limit(self) -> int:
        """Maximum characters allowed in a post."""
        pass

    def validate_text_length(self, text: str) -> None:
        """
        Validate text length against platform limit.

        Raises:
            SocialValidationError: If text exceeds limit
        """
        limit = self.get_character_limit()
        if len(text) > limit:
            raise SocialValidationError(
                f"Text exceeds {self.platform.value} character limit ({len(text)} > {limit})"
            )

    def validate_media_url(self, url: str) -> None:
        """
        Only HTTPS URLs on allow-listed domains may be handed to a platform.

        Raises:
            SocialValidationError: If the URL is not allowed
        """
        parsed = urlparse(url)
        if parsed.scheme != "https":
            raise SocialValidationError(f"Media URL must use HTTPS: {url}")
        host = (parsed.hostname or "").lower()
        if not any(host == d or host.endswith("." + d) for d in self.allowed_media_domains):
            raise SocialValidationError(f"Media URL domain not allowed: {host}")

    def check_response(
        self,
        response: httpx.Response,
        action: str,
        ok_statuses: Sequence[int] = (200, 201),
    ) -> dict:
        """
        Raise the matching adapter error for a failed platform response.

        Returns:
            Decoded JSON body of a successful response
        """
        if response.status_code == 429:
            raise SocialRateLimitError(f"{self.platform.value} rate limit exceeded")
        if response.status_code in (401, 403):
            raise SocialAuthError(f"{action} rejected: credentials are invalid or expired")
        if response.status_code not in ok_statuses:
            raise SocialAPIError(f"{action} failed: {self._error_message(response)}")
        return response.json() if response.content else {}

    def _error_message(self, response: httpx.Response) -> str:
        """Extract the platform's error text from a response body."""
        try:
            data = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return error["message"]
            for key in ("detail", "message", "title"):
                if data.get(key):
                    return str(data[key])
        return f"HTTP {response.status_code}"
