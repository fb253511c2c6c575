"""
Get-or-create resolution of the internal user for an external auth id.

Concurrent first contacts for the same external id race on the unique
constraint; the loser re-reads and returns the winner's row.
"""

from __future__ import annotations

from app.adapters.base import ProfileGateway
from app.exceptions import RELATIONAL_STORE, DuplicateUserError, StoreReadFailed
from app.infra.logging_config import get_logger
from app.schemas.user import UserRead
from app.stores.base import IdentityStore

logger = get_logger("identity_resolver")


class IdentityResolver:
    def __init__(self, store: IdentityStore, profiles: ProfileGateway) -> None:
        self._store = store
        self._profiles = profiles

    async def resolve(self, external_auth_id: str) -> UserRead:
        """
        Return the user for external_auth_id, creating it on first sight.

        Raises:
            ExternalProfileFetchFailed: profile API failed; no user is fabricated.
            StoreReadFailed / StoreWriteFailed: relational store failure.
        """
        user = await self._store.get_by_external_auth_id(external_auth_id)
        if user is not None:
            return user

        profile = await self._profiles.get_profile(external_auth_id)
        try:
            user = await self._store.create(profile)
        except DuplicateUserError:
            logger.info(
                "Concurrent insert for %s won; re-reading existing user",
                external_auth_id,
            )
            user = await self._store.get_by_external_auth_id(external_auth_id)
            if user is None:
                raise StoreReadFailed(
                    RELATIONAL_STORE,
                    f"user {external_auth_id} conflicted on insert but is missing",
                )
            return user

        logger.info("Created user %s for %s", user.id, external_auth_id)
        return user
