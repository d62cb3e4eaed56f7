"""
Unit tests for social media adapters.

Tests the platform API integrations including:
- Adapter factory
- Mock mode responses
- Post creation request formatting
- Rate limit, auth and API error mapping
- Character limit and media URL validation
- Instagram's media requirement
"""

from typing import Any

import httpx
import pytest

from adapters.social import (
    FacebookAdapter,
    InstagramAdapter,
    LinkedInAdapter,
    TwitterAdapter,
    get_social_adapter,
)
from adapters.social.base import (
    SocialAPIError,
    SocialAuthError,
    SocialCredentials,
    SocialRateLimitError,
    SocialValidationError,
)
from core.domain.content_item import Platform

ALLOWED_DOMAINS = ["cdn.postwise.app"]
IMAGE_URL = "https://cdn.postwise.app/images/launch.png"


@pytest.fixture
def mock_http(monkeypatch):
    """
    Route every httpx.AsyncClient created by the adapters through a MockTransport.

    Tests register responses with ``mock_http.respond(method, url_fragment, status, json)``
    and inspect ``mock_http.requests`` afterwards.
    """
    real_client = httpx.AsyncClient

    class Router:
        def __init__(self):
            self.routes: list[tuple[str, str, httpx.Response]] = []
            self.requests: list[httpx.Request] = []

        def respond(self, method: str, fragment: str, status: int = 200, json: Any = None, **kwargs):
            self.routes.append((method, fragment, httpx.Response(status, json=json, **kwargs)))

        def handler(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            for method, fragment, response in self.routes:
                if request.method == method and fragment in str(request.url):
                    return response
            return httpx.Response(404, json={"error": {"message": "no route"}})

    router = Router()

    def client_factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(router.handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)
    return router


def _credentials(platform: Platform, account_id: str = "acct-1") -> SocialCredentials:
    return SocialCredentials(
        platform=platform,
        access_token="test_access_token",
        account_id=account_id,
        account_username="testuser",
    )


# ============================================================================
# Factory
# ============================================================================


@pytest.mark.parametrize(
    "platform,adapter_class",
    [
        (Platform.TWITTER, TwitterAdapter),
        (Platform.LINKEDIN, LinkedInAdapter),
        (Platform.FACEBOOK, FacebookAdapter),
        (Platform.INSTAGRAM, InstagramAdapter),
    ],
)
def test_factory_returns_platform_adapter(platform, adapter_class):
    adapter = get_social_adapter(platform, mock_mode=True, timeout=5)

    assert isinstance(adapter, adapter_class)
    assert adapter.platform == platform
    assert adapter.timeout == 5


def test_factory_rejects_unknown_platform():
    with pytest.raises(ValueError):
        get_social_adapter("myspace")


# ============================================================================
# Mock mode
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize("platform", [Platform.TWITTER, Platform.LINKEDIN, Platform.FACEBOOK])
async def test_mock_mode_text_post(platform, mock_http):
    adapter = get_social_adapter(platform, mock_mode=True)

    result = await adapter.publish(_credentials(platform), "Hello from tests")

    assert result.success
    assert result.post_id
    assert result.post_url.startswith("https://")
    assert mock_http.requests == []


@pytest.mark.asyncio
async def test_mock_mode_verify_credentials(mock_http):
    adapter = TwitterAdapter(mock_mode=True)

    assert await adapter.verify_credentials(_credentials(Platform.TWITTER))
    assert mock_http.requests == []


# ============================================================================
# Twitter/X
# ============================================================================


class TestTwitterAdapter:
    """Tests for Twitter/X API adapter."""

    @pytest.fixture
    def adapter(self):
        return TwitterAdapter(
            client_id="test_twitter_client_id",
            client_secret="test_twitter_client_secret",
            allowed_media_domains=ALLOWED_DOMAINS,
        )

    @pytest.mark.asyncio
    async def test_post_text_success(self, adapter, mock_http):
        mock_http.respond("POST", "/2/tweets", 201, {"data": {"id": "1234567890", "text": "Hi"}})

        result = await adapter.publish(_credentials(Platform.TWITTER), "Hi")

        assert result.success
        assert result.post_id == "1234567890"
        assert result.post_url == "https://twitter.com/testuser/status/1234567890"
        request = mock_http.requests[0]
        assert request.headers["Authorization"] == "Bearer test_access_token"

    @pytest.mark.asyncio
    async def test_post_with_media_uploads_first(self, adapter, mock_http):
        mock_http.respond("GET", IMAGE_URL, 200, content=b"\x89PNG")
        mock_http.respond("POST", "/media/upload.json", 200, {"media_id_string": "555"})
        mock_http.respond("POST", "/2/tweets", 201, {"data": {"id": "777"}})

        result = await adapter.publish(_credentials(Platform.TWITTER), "Look", [IMAGE_URL])

        assert result.success
        assert result.post_id == "777"
        tweet_request = mock_http.requests[-1]
        assert b'"media_ids":["555"]' in tweet_request.content.replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_text_over_limit_is_rejected(self, adapter, mock_http):
        with pytest.raises(SocialValidationError):
            await adapter.publish(_credentials(Platform.TWITTER), "x" * 281)
        assert mock_http.requests == []

    @pytest.mark.asyncio
    async def test_too_many_images(self, adapter, mock_http):
        with pytest.raises(SocialValidationError):
            await adapter.publish(_credentials(Platform.TWITTER), "Hi", [IMAGE_URL] * 5)

    @pytest.mark.asyncio
    async def test_rate_limit(self, adapter, mock_http):
        mock_http.respond("POST", "/2/tweets", 429, {"title": "Too Many Requests"})

        with pytest.raises(SocialRateLimitError):
            await adapter.publish(_credentials(Platform.TWITTER), "Hi")

    @pytest.mark.asyncio
    async def test_expired_token(self, adapter, mock_http):
        mock_http.respond("POST", "/2/tweets", 401, {"title": "Unauthorized"})

        with pytest.raises(SocialAuthError):
            await adapter.publish(_credentials(Platform.TWITTER), "Hi")

    @pytest.mark.asyncio
    async def test_api_error_carries_platform_message(self, adapter, mock_http):
        mock_http.respond("POST", "/2/tweets", 400, {"detail": "duplicate content"})

        with pytest.raises(SocialAPIError, match="duplicate content"):
            await adapter.publish(_credentials(Platform.TWITTER), "Hi")

    @pytest.mark.asyncio
    async def test_transport_error_is_a_failed_result(self, adapter, monkeypatch):
        real_client = httpx.AsyncClient

        def failing_handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        monkeypatch.setattr(
            httpx,
            "AsyncClient",
            lambda *a, **kw: real_client(*a, transport=httpx.MockTransport(failing_handler), **kw),
        )

        result = await adapter.publish(_credentials(Platform.TWITTER), "Hi")

        assert not result.success
        assert "connection refused" in result.error_message

    @pytest.mark.asyncio
    async def test_verify_credentials(self, adapter, mock_http):
        mock_http.respond("GET", "/2/users/me", 200, {"data": {"id": "1"}})
        assert await adapter.verify_credentials(_credentials(Platform.TWITTER))

    def test_character_limit(self, adapter):
        assert adapter.get_character_limit() == 280


# ============================================================================
# LinkedIn
# ============================================================================


class TestLinkedInAdapter:
    """Tests for LinkedIn API adapter."""

    @pytest.fixture
    def adapter(self):
        return LinkedInAdapter(
            client_id="id", client_secret="secret", allowed_media_domains=ALLOWED_DOMAINS
        )

    @pytest.mark.asyncio
    async def test_post_text_success(self, adapter, mock_http):
        mock_http.respond("POST", "/v2/ugcPosts", 201, {"id": "urn:li:share:42"})

        result = await adapter.publish(_credentials(Platform.LINKEDIN, "abc"), "Professional news")

        assert result.success
        assert result.post_id == "urn:li:share:42"
        assert result.post_url == "https://www.linkedin.com/feed/update/urn:li:share:42"
        request = mock_http.requests[0]
        assert request.headers["X-Restli-Protocol-Version"] == "2.0.0"
        assert b"urn:li:person:abc" in request.content

    @pytest.mark.asyncio
    async def test_post_id_from_header(self, adapter, mock_http):
        mock_http.respond("POST", "/v2/ugcPosts", 201, headers={"x-restli-id": "urn:li:share:99"})

        result = await adapter.publish(_credentials(Platform.LINKEDIN), "News")

        assert result.post_id == "urn:li:share:99"

    @pytest.mark.asyncio
    async def test_media_attached_as_article(self, adapter, mock_http):
        mock_http.respond("POST", "/v2/ugcPosts", 201, {"id": "urn:li:share:43"})

        await adapter.publish(_credentials(Platform.LINKEDIN), "With link", [IMAGE_URL])

        body = mock_http.requests[0].content
        assert b"ARTICLE" in body
        assert IMAGE_URL.encode() in body

    @pytest.mark.asyncio
    async def test_rate_limit(self, adapter, mock_http):
        mock_http.respond("POST", "/v2/ugcPosts", 429, {"message": "Throttled"})

        with pytest.raises(SocialRateLimitError):
            await adapter.publish(_credentials(Platform.LINKEDIN), "News")

    def test_character_limit(self, adapter):
        assert adapter.get_character_limit() == 3000


# ============================================================================
# Facebook
# ============================================================================


class TestFacebookAdapter:
    """Tests for Facebook Pages adapter."""

    @pytest.fixture
    def adapter(self):
        return FacebookAdapter(app_id="id", app_secret="secret", allowed_media_domains=ALLOWED_DOMAINS)

    @pytest.mark.asyncio
    async def test_text_goes_to_page_feed(self, adapter, mock_http):
        mock_http.respond("POST", "/page-1/feed", 200, {"id": "page-1_555"})

        result = await adapter.publish(_credentials(Platform.FACEBOOK, "page-1"), "Page update")

        assert result.success
        assert result.post_id == "page-1_555"
        assert result.post_url == "https://www.facebook.com/page-1/posts/555"

    @pytest.mark.asyncio
    async def test_image_goes_to_page_photos(self, adapter, mock_http):
        mock_http.respond("POST", "/page-1/photos", 200, {"id": "photo-1", "post_id": "page-1_777"})

        result = await adapter.publish(
            _credentials(Platform.FACEBOOK, "page-1"), "Photo", [IMAGE_URL]
        )

        assert result.post_id == "page-1_777"

    @pytest.mark.asyncio
    async def test_graph_error_message(self, adapter, mock_http):
        mock_http.respond(
            "POST", "/page-1/feed", 400, {"error": {"message": "(#200) Permissions error"}}
        )

        with pytest.raises(SocialAPIError, match="Permissions error"):
            await adapter.publish(_credentials(Platform.FACEBOOK, "page-1"), "Page update")

    @pytest.mark.asyncio
    async def test_missing_page_id(self, adapter, mock_http):
        with pytest.raises(SocialValidationError):
            await adapter.publish(_credentials(Platform.FACEBOOK, ""), "Page update")


# ============================================================================
# Instagram
# ============================================================================


class TestInstagramAdapter:
    """Tests for Instagram content publishing adapter."""

    @pytest.fixture
    def adapter(self):
        return InstagramAdapter(app_id="id", app_secret="secret", allowed_media_domains=ALLOWED_DOMAINS)

    @pytest.mark.asyncio
    async def test_text_only_is_rejected(self, adapter, mock_http):
        with pytest.raises(SocialValidationError, match="requires at least one image"):
            await adapter.publish(_credentials(Platform.INSTAGRAM), "No picture")
        assert mock_http.requests == []

    @pytest.mark.asyncio
    async def test_container_then_publish(self, adapter, mock_http):
        mock_http.respond("POST", "/ig-1/media_publish", 200, {"id": "1789"})
        mock_http.respond("POST", "/ig-1/media", 200, {"id": "container-1"})

        result = await adapter.publish(_credentials(Platform.INSTAGRAM, "ig-1"), "Pic", [IMAGE_URL])

        assert result.success
        assert result.post_id == "1789"
        assert [r.url.path for r in mock_http.requests] == [
            "/v21.0/ig-1/media",
            "/v21.0/ig-1/media_publish",
        ]
        assert b"creation_id=container-1" in mock_http.requests[1].content

    @pytest.mark.asyncio
    async def test_caption_limit(self, adapter, mock_http):
        with pytest.raises(SocialValidationError):
            await adapter.publish(_credentials(Platform.INSTAGRAM), "x" * 2201, [IMAGE_URL])


# ============================================================================
# Media URL allow-list
# ============================================================================


@pytest.mark.parametrize(
    "url",
    [
        "http://cdn.postwise.app/a.png",
        "https://evil.example.com/a.png",
        "https://cdn.postwise.app.evil.com/a.png",
        "file:///etc/passwd",
    ],
)
def test_media_url_rejected(url):
    adapter = TwitterAdapter(mock_mode=True, allowed_media_domains=ALLOWED_DOMAINS)

    with pytest.raises(SocialValidationError):
        adapter.validate_media_url(url)


def test_media_url_subdomain_allowed():
    adapter = TwitterAdapter(mock_mode=True, allowed_media_domains=ALLOWED_DOMAINS)

    adapter.validate_media_url("https://img.cdn.postwise.app/a.png")
    adapter.validate_media_url(IMAGE_URL)
