"""
Store capabilities used by the ingestion pipeline.

Each backing technology gets one concrete adapter; the pipeline only sees
these interfaces. Adapters translate library errors into StoreReadFailed /
StoreWriteFailed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from app.schemas.event import Event
from app.schemas.talk_room import SummaryUpdate, TalkRoom
from app.schemas.user import UserProfile, UserRead


class IdentityStore(ABC):
    """Relational mapping of external auth id to internal user."""

    @abstractmethod
    async def get_by_external_auth_id(self, external_auth_id: str) -> Optional[UserRead]:
        ...

    @abstractmethod
    async def create(self, profile: UserProfile) -> UserRead:
        """Insert a user. Raise DuplicateUserError if the external id already exists."""
        ...


class ConversationStore(ABC):
    """Talk room documents (the conversation card)."""

    @abstractmethod
    async def get(self, talk_room_id: UUID) -> Optional[TalkRoom]:
        ...

    @abstractmethod
    async def create_if_absent(self, talk_room: TalkRoom) -> tuple[TalkRoom, bool]:
        """Create talk_room unless one with the same id exists. Returns (stored, created)."""
        ...

    @abstractmethod
    async def apply_summary(self, talk_room_id: UUID, update: SummaryUpdate) -> bool:
        """
        Atomically apply update if it is not older than the stored summary.
        Returns True when the update won.
        """
        ...

    @abstractmethod
    async def list_talk_rooms(self, offset: int = 0, limit: int = 50) -> list[TalkRoom]:
        """Talk rooms ordered by sort_time, newest first."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


class TimelineStore(ABC):
    """Append-only per-talk-room event timeline."""

    @abstractmethod
    async def append(self, event: Event) -> bool:
        """Write event under its talk room. Returns False if it was already recorded."""
        ...

    @abstractmethod
    async def get_event(self, talk_room_id: UUID, event_id: UUID) -> Optional[Event]:
        ...

    @abstractmethod
    async def list_events(
        self, talk_room_id: UUID, offset: int = 0, limit: int = 100
    ) -> list[Event]:
        """Events ordered by created_at ascending."""
        ...

    @abstractmethod
    async def latest_event(self, talk_room_id: UUID) -> Optional[Event]:
        ...
