"""
Service layer for business logic.
"""

from functools import lru_cache

from infrastructure.config.settings import settings
from infrastructure.database.connection import get_session_factory
from infrastructure.database.repositories import (
    SqlAlchemyContentItemRepository,
    SqlAlchemySocialAccountRepository,
)
from services.due_scanner import DueItemScanner, claim_item
from services.publication_worker import PublicationWorker
from services.publish_queue import PublicationDispatcher, publication_dispatcher
from services.scheduling_engine import ItemPatch, SchedulingEngine


@lru_cache
def get_due_scanner() -> DueItemScanner:
    """
    Get singleton scanner instance wired to the application database.

    Returns:
        Configured DueItemScanner instance
    """
    session_factory = get_session_factory()
    store = SqlAlchemyContentItemRepository(session_factory)
    accounts = SqlAlchemySocialAccountRepository(session_factory, settings.secret_key)

    return DueItemScanner(
        store=store,
        worker=PublicationWorker(store, accounts),
        dispatcher=publication_dispatcher,
    )


__all__ = [
    "DueItemScanner",
    "ItemPatch",
    "PublicationDispatcher",
    "PublicationWorker",
    "SchedulingEngine",
    "claim_item",
    "get_due_scanner",
    "publication_dispatcher",
]
