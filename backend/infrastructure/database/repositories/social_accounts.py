"""SQLAlchemy implementation of the linked social account store."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.domain.content_item import Platform, as_utc
from core.domain.linked_account import LinkedAccount
from core.interfaces.repositories import SocialAccountRepository
from core.security.encryption import CredentialEncryption
from infrastructure.database.models.social import SocialAccount

from .base import session_scope

logger = logging.getLogger(__name__)


class SqlAlchemySocialAccountRepository(SocialAccountRepository):
    """Stores OAuth tokens encrypted at rest; hands them out decrypted."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], secret_key: str):
        self._session_factory = session_factory
        self._encryption = CredentialEncryption(secret_key)

    def _to_domain(self, row: SocialAccount) -> LinkedAccount:
        return LinkedAccount(
            id=row.id,
            owner_id=row.owner_id,
            platform=Platform(row.platform),
            account_id=row.platform_account_id,
            access_token=self._encryption.decrypt(row.access_token_encrypted),
            refresh_token=(
                self._encryption.decrypt(row.refresh_token_encrypted)
                if row.refresh_token_encrypted
                else None
            ),
            username=row.platform_username,
            is_active=row.is_active,
            connected_at=as_utc(row.created_at),
        )

    async def _find(
        self, session: AsyncSession, owner_id: str, platform: Platform
    ) -> SocialAccount | None:
        result = await session.execute(
            select(SocialAccount).where(
                SocialAccount.owner_id == owner_id,
                SocialAccount.platform == Platform(platform).value,
            )
        )
        return result.scalar_one_or_none()

    async def get_active(self, owner_id: str, platform: Platform) -> LinkedAccount | None:
        async with session_scope(self._session_factory) as session:
            row = await self._find(session, owner_id, platform)
            if row is None or not row.is_active:
                return None
            try:
                return self._to_domain(row)
            except ValueError:
                # Encrypted under a different secret; treat as not connected
                logger.warning(
                    "Stored %s token for owner %s could not be decrypted",
                    row.platform,
                    owner_id,
                )
                return None

    async def list_for_owner(self, owner_id: str) -> list[LinkedAccount]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(SocialAccount)
                .where(SocialAccount.owner_id == owner_id)
                .order_by(SocialAccount.platform.asc())
            )
            accounts = []
            for row in result.scalars().all():
                try:
                    accounts.append(self._to_domain(row))
                except ValueError:
                    logger.warning(
                        "Skipping %s account for owner %s: token not decryptable",
                        row.platform,
                        owner_id,
                    )
            return accounts

    async def upsert(self, account: LinkedAccount) -> LinkedAccount:
        async with session_scope(self._session_factory) as session:
            row = await self._find(session, account.owner_id, account.platform)
            if row is None:
                row = SocialAccount(
                    id=account.id,
                    owner_id=account.owner_id,
                    platform=Platform(account.platform).value,
                )
                session.add(row)

            row.platform_account_id = account.account_id
            row.platform_username = account.username
            row.access_token_encrypted = self._encryption.encrypt(account.access_token)
            row.refresh_token_encrypted = (
                self._encryption.encrypt(account.refresh_token) if account.refresh_token else None
            )
            row.is_active = True

            await session.commit()
            await session.refresh(row)
            return self._to_domain(row)

    async def deactivate(self, owner_id: str, platform: Platform) -> bool:
        async with session_scope(self._session_factory) as session:
            row = await self._find(session, owner_id, platform)
            if row is None or not row.is_active:
                return False
            row.is_active = False
            await session.commit()
            return True
