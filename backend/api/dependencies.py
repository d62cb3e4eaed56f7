"""
API dependencies for authentication and service wiring.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.interfaces.repositories import ContentItemRepository, SocialAccountRepository
from core.security.tokens import TokenService
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_session_factory
from infrastructure.database.repositories import (
    SqlAlchemyContentItemRepository,
    SqlAlchemySocialAccountRepository,
)
from services.publication_worker import (
    AdapterFactory,
    PublicationWorker,
    default_adapter_factory,
)
from services.publish_queue import PublicationDispatcher, publication_dispatcher
from services.scheduling_engine import SchedulingEngine

token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
)


async def get_current_owner(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """
    Dependency resolving the bearer token to the owner ID.

    Token issuance is handled by the identity service; this only verifies.
    """
    token = None
    if authorization and authorization.startswith("Bearer "):
        parts = authorization.split(" ", 1)
        token = parts[1].strip() if len(parts) > 1 else None

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = token_service.verify_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload.sub


def get_content_store(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> ContentItemRepository:
    return SqlAlchemyContentItemRepository(session_factory)


def get_account_store(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> SocialAccountRepository:
    return SqlAlchemySocialAccountRepository(session_factory, settings.secret_key)


def get_dispatcher() -> PublicationDispatcher:
    return publication_dispatcher


def get_adapter_factory() -> AdapterFactory:
    return default_adapter_factory


def get_publication_worker(
    store: Annotated[ContentItemRepository, Depends(get_content_store)],
    accounts: Annotated[SocialAccountRepository, Depends(get_account_store)],
    adapter_factory: Annotated[AdapterFactory, Depends(get_adapter_factory)],
) -> PublicationWorker:
    return PublicationWorker(store, accounts, adapter_factory=adapter_factory)


def get_scheduling_engine(
    store: Annotated[ContentItemRepository, Depends(get_content_store)],
    worker: Annotated[PublicationWorker, Depends(get_publication_worker)],
    dispatcher: Annotated[PublicationDispatcher, Depends(get_dispatcher)],
) -> SchedulingEngine:
    return SchedulingEngine(store, worker, dispatcher)


CurrentOwner = Annotated[str, Depends(get_current_owner)]
Engine = Annotated[SchedulingEngine, Depends(get_scheduling_engine)]
