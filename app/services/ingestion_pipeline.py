"""
Per-event ingestion: resolve user, resolve talk room, record event.

States advance Decoded -> UserResolved -> ConversationResolved -> Recorded
-> Acked. Every step is idempotent or last-writer-wins, so a failed attempt
is retried by re-running the whole event from the start.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional
from uuid import UUID

from app.core.identifiers import event_id_for
from app.exceptions import IngestionError, PartialWriteInconsistency
from app.infra.logging_config import get_logger
from app.schemas.event import Event, EventKind, InboundEvent
from app.schemas.talk_room import TalkRoom
from app.services.conversation_resolver import ConversationResolver
from app.services.event_recorder import EventRecorder
from app.services.identity_resolver import IdentityResolver

logger = get_logger("ingestion_pipeline")

RecordedHandler = Callable[[Event, TalkRoom], Awaitable[None]]


class IngestionState(str, Enum):
    DECODED = "decoded"
    USER_RESOLVED = "user_resolved"
    CONVERSATION_RESOLVED = "conversation_resolved"
    RECORDED = "recorded"
    ACKED = "acked"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class IngestionOutcome:
    state: IngestionState
    external_auth_id: Optional[str] = None
    event_id: Optional[UUID] = None
    talk_room_id: Optional[UUID] = None
    attempts: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state in (IngestionState.ACKED, IngestionState.SKIPPED)


class IngestionPipeline:
    def __init__(
        self,
        identities: IdentityResolver,
        conversations: ConversationResolver,
        recorder: EventRecorder,
        max_attempts: int = 3,
        retry_base_delay: float = 0.5,
        on_recorded: Optional[RecordedHandler] = None,
    ) -> None:
        self._identities = identities
        self._conversations = conversations
        self._recorder = recorder
        self._max_attempts = max(1, max_attempts)
        self._retry_base_delay = retry_base_delay
        self._on_recorded = on_recorded

    async def process_delivery(self, events: list[InboundEvent]) -> list[IngestionOutcome]:
        """Process each event independently; one failure never aborts its siblings."""
        outcomes = []
        for inbound in events:
            try:
                outcome = await self.process_event(inbound)
            except Exception as e:
                logger.exception(
                    "Unexpected error ingesting %s event for %s",
                    inbound.kind.value,
                    inbound.external_auth_id,
                )
                outcome = IngestionOutcome(
                    state=IngestionState.FAILED,
                    external_auth_id=inbound.external_auth_id,
                    error=repr(e),
                )
            outcomes.append(outcome)
        acked = sum(1 for o in outcomes if o.state == IngestionState.ACKED)
        failed = sum(1 for o in outcomes if o.state == IngestionState.FAILED)
        logger.info(
            "Delivery processed: %d event(s), %d acked, %d failed",
            len(outcomes),
            acked,
            failed,
        )
        return outcomes

    async def process_event(self, inbound: InboundEvent) -> IngestionOutcome:
        if not inbound.is_supported:
            logger.info(
                "Skipping unsupported event (%s): %s",
                getattr(inbound.payload, "raw_type", inbound.kind.value),
                getattr(inbound.payload, "reason", "no external user id"),
            )
            return IngestionOutcome(
                state=IngestionState.SKIPPED,
                external_auth_id=inbound.external_auth_id,
            )

        # Fixed before the first attempt so retries write the same event document.
        event_id = event_id_for(inbound.delivery.webhook_event_id)
        outcome = IngestionOutcome(
            state=IngestionState.DECODED,
            external_auth_id=inbound.external_auth_id,
            event_id=event_id,
        )

        for attempt in range(1, self._max_attempts + 1):
            outcome.attempts = attempt
            outcome.state = IngestionState.DECODED
            outcome.error = None
            try:
                event, talk_room = await self._run(inbound, event_id, outcome)
            except IngestionError as e:
                outcome.error = str(e)
                if not e.retryable or attempt == self._max_attempts:
                    logger.error(
                        "Ingestion of event %s failed in state %s after %d attempt(s): %s",
                        event_id,
                        outcome.state.value,
                        attempt,
                        e,
                    )
                    outcome.state = IngestionState.FAILED
                    return outcome
                delay = self._retry_base_delay * (2 ** (attempt - 1))
                logger.warning(
                    "Retry %d/%d for event %s (%s), waiting %.1fs",
                    attempt,
                    self._max_attempts - 1,
                    event_id,
                    type(e).__name__,
                    delay,
                )
                await asyncio.sleep(delay)
                continue

            await self._notify_recorded(event, talk_room)
            outcome.state = IngestionState.ACKED
            return outcome

        return outcome

    async def _run(
        self, inbound: InboundEvent, event_id: UUID, outcome: IngestionOutcome
    ) -> tuple[Event, TalkRoom]:
        user = await self._identities.resolve(inbound.external_auth_id)
        outcome.state = IngestionState.USER_RESOLVED
        logger.debug("Resolved %s to user %s", inbound.external_auth_id, user.id)

        talk_room = await self._conversations.resolve(user, inbound)
        outcome.state = IngestionState.CONVERSATION_RESOLVED
        outcome.talk_room_id = talk_room.id

        event = Event(
            id=event_id,
            talk_room_id=talk_room.id,
            kind=inbound.kind,
            payload=inbound.payload,
            delivery=inbound.delivery,
            created_at=inbound.timestamp,
        )
        try:
            await self._recorder.append(talk_room, event)
        except PartialWriteInconsistency as e:
            # Recorded; the summary self-heals on the next newer append.
            logger.warning("%s", e)
            outcome.error = str(e)
        outcome.state = IngestionState.RECORDED
        logger.debug("Recorded %s event %s", event.kind.value, event.id)
        return event, talk_room

    async def _notify_recorded(self, event: Event, talk_room: TalkRoom) -> None:
        if self._on_recorded is None or event.kind != EventKind.FOLLOW:
            return
        try:
            await self._on_recorded(event, talk_room)
        except Exception:
            logger.exception("Recorded-event handler failed for event %s", event.id)
