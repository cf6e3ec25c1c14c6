"""
Persistence of identity records.

Uniqueness is enforced by the database constraints alone, and the session
field is only ever changed through single-statement updates keyed by user
id. Each write commits on its own so it is applied entirely or not at all.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.kernel.errors import Conflict, UpstreamFailure
from vidtube.kernel.models.user import User
from vidtube.logging_config import get_logger

logger = get_logger(__name__)


class SanitizedIdentity(BaseModel):
    """Identity safe to hand outside the kernel: no hash, no session token."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    username: str
    email: str
    full_name: str
    avatar_url: str
    cover_image_url: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def sanitize(user: User) -> SanitizedIdentity:
    return SanitizedIdentity.model_validate(user)


class CredentialStore:
    """Identity persistence over an explicitly provided session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _backend_errors(self, operation: str) -> AsyncIterator[None]:
        """Roll back and surface driver errors as UpstreamFailure without detail."""
        try:
            yield
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(
                "Credential store %s failed: %s",
                operation,
                type(exc).__name__,
                exc_info=True,
            )
            raise UpstreamFailure() from exc

    async def create(
        self,
        *,
        username: str,
        email: str,
        full_name: str,
        password_hash: str,
        avatar_url: str,
        cover_image_url: str,
    ) -> User:
        """
        Insert a new identity.

        Raises:
            Conflict: username or email already taken
        """
        user = User(
            username=username.strip().lower(),
            email=email,
            full_name=full_name.strip(),
            password_hash=password_hash,
            avatar_url=avatar_url,
            cover_image_url=cover_image_url,
        )
        async with self._backend_errors("create"):
            self.session.add(user)
            try:
                await self.session.flush()
                await self.session.commit()
            except IntegrityError as exc:
                await self.session.rollback()
                raise Conflict(str(exc.orig)) from exc
            await self.session.refresh(user)
        return user

    async def find_by_email_or_username(self, identifier: str) -> Optional[User]:
        """
        Match a single identifier against either the email or the username.

        A username match wins over an email match when both exist.
        """
        username = identifier.lower()
        query = (
            select(User)
            .where(or_(User.email == identifier, User.username == username))
            .order_by(case((User.username == username, 0), else_=1))
            .limit(1)
            .execution_options(populate_existing=True)
        )
        async with self._backend_errors("lookup"):
            result = await self.session.execute(query)
            return result.scalars().first()

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        query = (
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        async with self._backend_errors("lookup"):
            result = await self.session.execute(query)
            return result.scalar_one_or_none()

    async def set_refresh_token(self, user_id: uuid.UUID, token: Optional[str]) -> bool:
        """
        Overwrite the stored refresh token (None clears it).

        Returns:
            False if no such identity exists
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(refresh_token=token)
            .execution_options(synchronize_session=False)
        )
        async with self._backend_errors("set_refresh_token"):
            result = await self.session.execute(stmt)
            await self.session.commit()
        return result.rowcount == 1

    async def rotate_refresh_token(
        self,
        user_id: uuid.UUID,
        expected: str,
        replacement: Optional[str],
    ) -> bool:
        """
        Replace the stored refresh token only if it still equals ``expected``.

        Returns:
            True if this call performed the swap. Of several concurrent
            callers presenting the same ``expected`` value, at most one
            gets True.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.refresh_token == expected)
            .values(refresh_token=replacement)
            .execution_options(synchronize_session=False)
        )
        async with self._backend_errors("rotate_refresh_token"):
            result = await self.session.execute(stmt)
            await self.session.commit()
        return result.rowcount == 1

    async def count(self) -> int:
        async with self._backend_errors("count"):
            result = await self.session.execute(select(func.count()).select_from(User))
            return result.scalar_one()
