"""
Pytest configuration and shared fixtures for backend tests.
"""

import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from typing import AsyncGenerator
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import after path is set
from adapters.social.base import BaseSocialAdapter, PostResult
from core.domain.content_item import Platform
from core.domain.linked_account import LinkedAccount
from core.security import TokenService
from infrastructure.config import get_settings
from infrastructure.database.connection import get_session_factory
from infrastructure.database.models import Base
from infrastructure.database.repositories import (
    SqlAlchemyContentItemRepository,
    SqlAlchemySocialAccountRepository,
)
from services.publish_queue import PublicationDispatcher

settings = get_settings()
token_service = TokenService(secret_key=settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture
async def db_engine(tmp_path):
    """
    Create a test database engine.

    File-backed so that concurrent sessions get their own connections,
    which the claim race tests depend on.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def content_store(session_factory) -> SqlAlchemyContentItemRepository:
    return SqlAlchemyContentItemRepository(session_factory)


@pytest.fixture
def account_store(session_factory) -> SqlAlchemySocialAccountRepository:
    return SqlAlchemySocialAccountRepository(session_factory, settings.secret_key)


@pytest.fixture
def owner_id() -> str:
    return f"owner-{uuid4().hex[:12]}"


@pytest.fixture
def other_owner_id() -> str:
    return f"owner-{uuid4().hex[:12]}"


@pytest.fixture
def auth_headers(owner_id: str) -> dict:
    """Generate authentication headers for the test owner."""
    access_token = token_service.create_access_token(owner_id)
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def other_auth_headers(other_owner_id: str) -> dict:
    access_token = token_service.create_access_token(other_owner_id)
    return {"Authorization": f"Bearer {access_token}"}


# ============================================================================
# Adapter fakes
# ============================================================================


def make_adapter(
    platform: Platform,
    post_id: str | None = None,
    error: str | None = None,
    side_effect=None,
) -> AsyncMock:
    """
    Build an AsyncMock standing in for a platform adapter.

    Succeeds with ``post_id`` unless ``error`` (a failed PostResult) or
    ``side_effect`` (raised or awaited) is given.
    """
    adapter = AsyncMock(spec=BaseSocialAdapter)
    adapter.platform = platform
    adapter.verify_credentials.return_value = True
    if side_effect is not None:
        adapter.publish.side_effect = side_effect
    elif error is not None:
        adapter.publish.return_value = PostResult(success=False, error_message=error)
    else:
        post_id = post_id or f"{platform.value}-post-1"
        adapter.publish.return_value = PostResult(
            success=True,
            post_id=post_id,
            post_url=f"https://{platform.value}.example/{post_id}",
        )
    return adapter


@pytest.fixture
def adapters() -> dict[Platform, AsyncMock]:
    """One succeeding fake adapter per platform; tests may replace entries."""
    return {platform: make_adapter(platform) for platform in Platform}


@pytest.fixture
def adapter_factory(adapters):
    def factory(platform: Platform):
        return adapters[Platform(platform)]

    return factory


@pytest.fixture
async def linked_accounts(account_store, owner_id) -> list[LinkedAccount]:
    """Connect every platform for the test owner."""
    linked = []
    for platform in Platform:
        linked.append(
            await account_store.upsert(
                LinkedAccount(
                    owner_id=owner_id,
                    platform=platform,
                    account_id=f"{platform.value}-account",
                    access_token=f"{platform.value}-token",
                    refresh_token=f"{platform.value}-refresh",
                    username=f"{platform.value}_user",
                )
            )
        )
    return linked


# ============================================================================
# API client
# ============================================================================


@pytest.fixture
def dispatcher() -> PublicationDispatcher:
    return PublicationDispatcher(max_concurrent=5)


@pytest.fixture
async def async_client(
    session_factory, dispatcher, adapter_factory
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from api.dependencies import get_adapter_factory, get_dispatcher
    from main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_adapter_factory] = lambda: adapter_factory

    # The limiter is module state shared by every test; keep it out of the way
    app.state.limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    await dispatcher.drain(timeout=5)
    app.state.limiter.enabled = True
    app.dependency_overrides.clear()
