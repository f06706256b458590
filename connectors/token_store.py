"""
AccountStore — upsert users, provider accounts and provider tokens.

All writes are single ``INSERT … ON CONFLICT DO UPDATE`` statements keyed on
the unique columns (``users.email``, ``provider_accounts.owner_email``,
``provider_tokens.account_id``), so two callbacks for the same identity can
interleave without duplicating rows; the last token write wins.

The store never commits: the caller owns the transaction so that the
identity, token and session writes of one callback land together.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import EmailConflict
from connectors.encryption import TokenCipher, get_cipher
from connectors.identity import PLACEHOLDER_EMAIL, is_placeholder
from database.helpers import as_utc, persistence_guard, upsert_insert, utcnow
from database.models import ProviderAccount, ProviderToken, User
from utils.schemas import AccountIdentity, StoredToken, TokenSet

logger = logging.getLogger(__name__)


class AccountStore:
    def __init__(
        self,
        cipher: Optional[TokenCipher] = None,
        *,
        placeholder_email: str = PLACEHOLDER_EMAIL,
    ) -> None:
        self._cipher = cipher or get_cipher()
        self.placeholder_email = placeholder_email

    async def upsert_identity(
        self,
        session: AsyncSession,
        email: str,
        tenant_id: Optional[str] = None,
    ) -> AccountIdentity:
        """
        Ensure a ``User`` and a ``ProviderAccount`` exist for *email*.

        Idempotent: repeated calls return the same ids.  The account's
        tenant is refreshed on every call.
        """
        now = utcnow()
        async with persistence_guard("upsert_identity"):
            user_stmt = upsert_insert(session, User).values(
                user_id=uuid.uuid4(),
                email=email,
                created_at=now,
            )
            user_stmt = user_stmt.on_conflict_do_update(
                index_elements=["email"],
                set_={"email": user_stmt.excluded.email},
            ).returning(User.user_id)
            user_id = (await session.execute(user_stmt)).scalar_one()

            account_stmt = upsert_insert(session, ProviderAccount).values(
                account_id=uuid.uuid4(),
                owner_email=email,
                tenant_id=tenant_id,
                created_at=now,
                updated_at=now,
            )
            account_stmt = account_stmt.on_conflict_do_update(
                index_elements=["owner_email"],
                set_={
                    "tenant_id": account_stmt.excluded.tenant_id,
                    "updated_at": account_stmt.excluded.updated_at,
                },
            ).returning(ProviderAccount.account_id)
            account_id = (await session.execute(account_stmt)).scalar_one()

        logger.info("Upserted identity %s (user=%s account=%s)", email, user_id, account_id)
        return AccountIdentity(user_id=user_id, account_id=account_id)

    async def upsert_token(
        self,
        session: AsyncSession,
        account_id: uuid.UUID,
        token_set: TokenSet,
    ) -> StoredToken:
        """Replace the account's token record in full (no field merge)."""
        now = utcnow()
        expires_at = now + timedelta(seconds=token_set.expires_in)
        async with persistence_guard("upsert_token"):
            stmt = upsert_insert(session, ProviderToken).values(
                token_id=uuid.uuid4(),
                account_id=account_id,
                access_token=self._cipher.encrypt(token_set.access_token),
                refresh_token=self._cipher.encrypt(token_set.refresh_token),
                expires_at=expires_at,
                scope=token_set.scope,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["account_id"],
                set_={
                    "access_token": stmt.excluded.access_token,
                    "refresh_token": stmt.excluded.refresh_token,
                    "expires_at": stmt.excluded.expires_at,
                    "scope": stmt.excluded.scope,
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            await session.execute(stmt)

        logger.info("Stored provider token for account %s (expires %s)", account_id, expires_at.isoformat())
        return StoredToken(
            account_id=account_id,
            access_token=token_set.access_token,
            refresh_token=token_set.refresh_token,
            expires_at=expires_at,
            scope=token_set.scope,
        )

    async def get_token(
        self,
        session: AsyncSession,
        account_id: uuid.UUID,
    ) -> Optional[StoredToken]:
        """Read back the decrypted token record for an account."""
        async with persistence_guard("get_token"):
            result = await session.execute(
                select(ProviderToken)
                .where(ProviderToken.account_id == account_id)
                .execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return StoredToken(
            account_id=row.account_id,
            access_token=self._cipher.decrypt(row.access_token),
            refresh_token=self._cipher.decrypt(row.refresh_token),
            expires_at=as_utc(row.expires_at),
            scope=row.scope,
        )

    async def find_account(
        self,
        session: AsyncSession,
        email: str,
    ) -> Optional[ProviderAccount]:
        async with persistence_guard("find_account"):
            result = await session.execute(
                select(ProviderAccount)
                .where(ProviderAccount.owner_email == email)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def count_accounts(self, session: AsyncSession) -> int:
        async with persistence_guard("count_accounts"):
            result = await session.execute(select(func.count()).select_from(ProviderAccount))
            return int(result.scalar_one())

    async def refresh_account_email(
        self,
        session: AsyncSession,
        account_id: uuid.UUID,
        email: Optional[str],
    ) -> Optional[str]:
        """
        Update the account's stored email after an out-of-band identity
        lookup.

        The account and the user sharing its email move together so the
        pair stays linked.  Only a real (non-empty, non-placeholder) email
        replaces the stored value.  Returns the email now on record, or
        None for an unknown account.

        Raises ``EmailConflict`` when *email* already belongs to another
        user or account.
        """
        async with persistence_guard("refresh_account_email"):
            account = await session.get(ProviderAccount, account_id, populate_existing=True)
            if account is None:
                return None
            previous = account.owner_email
            if is_placeholder(email, self.placeholder_email) or email == previous:
                return previous

            if await self._email_taken(session, email):
                raise EmailConflict(detail=str(account_id))

            result = await session.execute(
                select(User)
                .where(User.email == previous)
                .execution_options(populate_existing=True)
            )
            user = result.scalar_one_or_none()

            account.owner_email = email
            account.updated_at = utcnow()
            if user is not None:
                user.email = email
            try:
                await session.flush()
            except IntegrityError as exc:
                raise EmailConflict(detail=str(account_id)) from exc

        logger.info("Account %s email changed to %s", account_id, email)
        return email

    async def _email_taken(self, session: AsyncSession, email: str) -> bool:
        users = await session.execute(select(func.count()).select_from(User).where(User.email == email))
        accounts = await session.execute(
            select(func.count()).select_from(ProviderAccount).where(ProviderAccount.owner_email == email)
        )
        return bool(users.scalar_one() or accounts.scalar_one())
