"""
Append events to a talk room timeline and refresh its summary card.

The event write is the source of truth and is never undone. The summary is a
last-value projection keyed by event time, so a failed or lost summary update
heals on the next newer append or through reconcile().
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from app.exceptions import PartialWriteInconsistency, StoreError
from app.infra.logging_config import get_logger
from app.schemas.event import Event
from app.schemas.talk_room import SummaryUpdate, TalkRoom
from app.stores.base import ConversationStore, TimelineStore

logger = get_logger("event_recorder")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventRecorder:
    def __init__(
        self,
        timeline: TimelineStore,
        conversations: ConversationStore,
        summary_attempts: int = 3,
        retry_delay: float = 0.1,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._timeline = timeline
        self._conversations = conversations
        self._summary_attempts = max(1, summary_attempts)
        self._retry_delay = retry_delay
        self._clock = clock

    async def append(self, talk_room: TalkRoom, event: Event) -> None:
        """
        Record event under talk_room, then refresh the summary card.

        Raises:
            StoreWriteFailed: the event itself could not be written.
            PartialWriteInconsistency: the event is recorded, the summary is stale.
        """
        created = await self._timeline.append(event)
        if not created:
            logger.debug("Event %s was already on the timeline", event.id)

        update = SummaryUpdate.from_event(event, now=self._clock())
        await self._refresh_summary(talk_room.id, event.id, update)

    async def reconcile(self, talk_room_id: UUID) -> bool:
        """Re-derive the summary from the newest timeline event. Returns True if it changed."""
        latest = await self._timeline.latest_event(talk_room_id)
        if latest is None:
            return False
        update = SummaryUpdate.from_event(latest, now=self._clock())
        return await self._conversations.apply_summary(talk_room_id, update)

    async def _refresh_summary(
        self, talk_room_id: UUID, event_id: UUID, update: SummaryUpdate
    ) -> None:
        last_error: Exception | None = None
        for attempt in range(1, self._summary_attempts + 1):
            try:
                applied = await self._conversations.apply_summary(talk_room_id, update)
            except StoreError as e:
                last_error = e
                logger.warning(
                    "Summary update %d/%d for talk room %s failed: %s",
                    attempt,
                    self._summary_attempts,
                    talk_room_id,
                    e,
                )
                if attempt < self._summary_attempts:
                    await asyncio.sleep(self._retry_delay * attempt)
                continue
            if not applied:
                logger.debug(
                    "Summary for talk room %s already newer than event %s",
                    talk_room_id,
                    event_id,
                )
            return
        raise PartialWriteInconsistency(talk_room_id, event_id, last_error)
