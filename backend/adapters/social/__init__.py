"""
Social media platform adapters.

Provides a unified publish interface for Twitter, LinkedIn, Facebook and
Instagram on top of each platform's HTTP API.
"""

from core.domain.content_item import Platform

from .base import (
    BaseSocialAdapter,
    PostResult,
    SocialAdapterError,
    SocialAPIError,
    SocialAuthError,
    SocialCredentials,
    SocialRateLimitError,
    SocialValidationError,
)
from .facebook_adapter import FacebookAdapter
from .instagram_adapter import InstagramAdapter
from .linkedin_adapter import LinkedInAdapter
from .twitter_adapter import TwitterAdapter

_ADAPTERS: dict[Platform, type[BaseSocialAdapter]] = {
    Platform.TWITTER: TwitterAdapter,
    Platform.LINKEDIN: LinkedInAdapter,
    Platform.FACEBOOK: FacebookAdapter,
    Platform.INSTAGRAM: InstagramAdapter,
}


def get_social_adapter(
    platform: Platform,
    mock_mode: bool = False,
    **kwargs
) -> BaseSocialAdapter:
    """
    Factory function to get platform-specific social media adapter.

    Args:
        platform: Target platform
        mock_mode: Enable mock mode for development/testing
        **kwargs: Additional adapter-specific arguments (timeout, credentials)

    Returns:
        Platform-specific adapter instance

    Raises:
        ValueError: If platform is not supported

    Examples:
        >>> twitter = get_social_adapter(Platform.TWITTER, mock_mode=True)
        >>> result = await twitter.publish(credentials, "Hello")
    """
    adapter_class = _ADAPTERS.get(Platform(platform))
    if not adapter_class:
        raise ValueError(
            f"Unsupported social platform: {platform}. "
            f"Supported platforms: {', '.join([p.value for p in Platform])}"
        )

    return adapter_class(mock_mode=mock_mode, **kwargs)


__all__ = [
    # Base classes
    "BaseSocialAdapter",
    "SocialCredentials",
    "PostResult",
    # Exceptions
    "SocialAdapterError",
    "SocialAuthError",
    "SocialAPIError",
    "SocialRateLimitError",
    "SocialValidationError",
    # Adapters
    "TwitterAdapter",
    "LinkedInAdapter",
    "FacebookAdapter",
    "InstagramAdapter",
    # Factory
    "get_social_adapter",
]
