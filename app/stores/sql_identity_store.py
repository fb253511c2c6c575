"""SQLAlchemy (async) adapter for the identity store."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.exceptions import (
    RELATIONAL_STORE,
    DuplicateUserError,
    StoreReadFailed,
    StoreWriteFailed,
)
from app.models.user import User
from app.schemas.user import UserProfile, UserRead
from app.stores.base import IdentityStore


class SqlIdentityStore(IdentityStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_external_auth_id(self, external_auth_id: str) -> Optional[UserRead]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(User).where(User.external_auth_id == external_auth_id)
                )
                user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreReadFailed(RELATIONAL_STORE, str(e)) from e
        return UserRead.model_validate(user) if user is not None else None

    async def create(self, profile: UserProfile) -> UserRead:
        user = User(
            external_auth_id=profile.external_auth_id,
            display_name=profile.display_name,
            picture_url=profile.picture_url,
        )
        try:
            async with self._session_factory() as db:
                db.add(user)
                await db.commit()
                await db.refresh(user)
        except IntegrityError as e:
            raise DuplicateUserError(profile.external_auth_id) from e
        except SQLAlchemyError as e:
            raise StoreWriteFailed(RELATIONAL_STORE, str(e)) from e
        return UserRead.model_validate(user)
