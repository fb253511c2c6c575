"""Get-or-create resolution of a user's talk room."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from app.core.identifiers import talk_room_id_for
from app.infra.logging_config import get_logger
from app.schemas.event import EventKind, InboundEvent
from app.schemas.talk_room import MessageSummary, TalkRoom
from app.schemas.user import UserRead
from app.stores.base import ConversationStore

logger = get_logger("conversation_resolver")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationResolver:
    """
    One talk room per user. Its id is derived from the owner's id, so racing
    creators target the same document and the store's create-if-absent makes
    them converge.
    """

    def __init__(
        self,
        store: ConversationStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._clock = clock

    async def resolve(self, user: UserRead, trigger: InboundEvent) -> TalkRoom:
        talk_room_id = talk_room_id_for(user.id)
        talk_room = await self._store.get(talk_room_id)
        if talk_room is not None:
            return talk_room

        talk_room, created = await self._store.create_if_absent(
            self._new_talk_room(user, trigger)
        )
        if created:
            logger.info("Created talk room %s for user %s", talk_room.id, user.id)
        return talk_room

    def _new_talk_room(self, user: UserRead, trigger: InboundEvent) -> TalkRoom:
        now = self._clock()
        return TalkRoom(
            id=talk_room_id_for(user.id),
            owner_user_id=user.id,
            display_name=user.display_name,
            rsvp=False,
            pinned=False,
            following=trigger.kind != EventKind.UNFOLLOW,
            # Placeholder until the triggering event is appended.
            latest_message_summary=MessageSummary(kind=trigger.kind),
            latest_messaged_at=trigger.timestamp,
            sort_time=trigger.timestamp,
            created_at=now,
            updated_at=now,
        )
