"""
Firestore adapter for talk rooms and their event timelines.

Layout:
    talkRooms/{talkRoomId}                  conversation card (camelCase fields)
    talkRooms/{talkRoomId}/events/{eventId} immutable timeline entries

Creation uses DocumentReference.create, which fails if the document exists,
so racing writers converge on one document. Summary refreshes run in a
transaction that re-reads the card and only writes newer values.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, TypeVar
from uuid import UUID

from google.api_core import exceptions as gcloud_exceptions
from google.cloud import firestore
from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel

from app.exceptions import DOCUMENT_STORE, StoreReadFailed, StoreWriteFailed
from app.infra.logging_config import get_logger
from app.schemas.event import Event
from app.schemas.talk_room import SummaryUpdate, TalkRoom
from app.stores.base import ConversationStore, TimelineStore

logger = get_logger("firestore_store")

TALK_ROOM_COLLECTION_NAME = "talkRooms"
EVENT_COLLECTION_NAME = "events"

ModelT = TypeVar("ModelT", bound=BaseModel)


def firestore_value(value: Any) -> Any:
    """Convert python values into types the Firestore client can encode."""
    if isinstance(value, BaseModel):
        return to_document(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): firestore_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [firestore_value(v) for v in value]
    return value


def to_document(model: BaseModel) -> dict[str, Any]:
    """Serialize a schema with camelCase keys, keeping datetimes native."""
    return firestore_value(model.model_dump(by_alias=True))


def summary_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Map snake_case update fields onto document field paths."""
    return {to_camel(key): firestore_value(value) for key, value in fields.items()}


def from_snapshot(model: type[ModelT], snapshot) -> ModelT:
    """Validate a stored document, reporting unreadable documents as store failures."""
    try:
        return model.model_validate(snapshot.to_dict())
    except ValidationError as e:
        raise StoreReadFailed(
            DOCUMENT_STORE, f"invalid {model.__name__} document {snapshot.id}: {e}"
        ) from e


class FirestoreDocumentStore(ConversationStore, TimelineStore):
    def __init__(self, client: firestore.AsyncClient) -> None:
        self._client = client
        self._rooms = client.collection(TALK_ROOM_COLLECTION_NAME)

    def _room_ref(self, talk_room_id: UUID):
        return self._rooms.document(str(talk_room_id))

    def _events(self, talk_room_id: UUID):
        return self._room_ref(talk_room_id).collection(EVENT_COLLECTION_NAME)

    # -------------------------------------------------------------------------
    # Conversation store
    # -------------------------------------------------------------------------

    async def get(self, talk_room_id: UUID) -> Optional[TalkRoom]:
        try:
            snapshot = await self._room_ref(talk_room_id).get()
        except gcloud_exceptions.GoogleAPIError as e:
            raise StoreReadFailed(DOCUMENT_STORE, str(e)) from e
        if not snapshot.exists:
            return None
        return from_snapshot(TalkRoom, snapshot)

    async def create_if_absent(self, talk_room: TalkRoom) -> tuple[TalkRoom, bool]:
        ref = self._room_ref(talk_room.id)
        try:
            await ref.create(to_document(talk_room))
            return talk_room, True
        except gcloud_exceptions.Conflict:
            logger.info("Talk room %s already exists, reusing it", talk_room.id)
        except gcloud_exceptions.GoogleAPIError as e:
            raise StoreWriteFailed(DOCUMENT_STORE, str(e)) from e

        existing = await self.get(talk_room.id)
        if existing is None:
            raise StoreReadFailed(
                DOCUMENT_STORE, f"talk room {talk_room.id} conflicted but is missing"
            )
        return existing, False

    async def apply_summary(self, talk_room_id: UUID, update: SummaryUpdate) -> bool:
        ref = self._room_ref(talk_room_id)
        apply = firestore.async_transactional(self._apply_summary_in)
        try:
            return await apply(self._client.transaction(), ref, update)
        except gcloud_exceptions.GoogleAPIError as e:
            raise StoreWriteFailed(DOCUMENT_STORE, str(e)) from e
        except ValueError as e:
            # The transaction helper raises ValueError once commits keep aborting.
            raise StoreWriteFailed(DOCUMENT_STORE, str(e)) from e

    async def _apply_summary_in(self, transaction, ref, update: SummaryUpdate) -> bool:
        """Transaction body: re-read the card and write only a newer summary."""
        snapshot = await ref.get(transaction=transaction)
        if not snapshot.exists:
            raise StoreWriteFailed(DOCUMENT_STORE, f"talk room {ref.id} does not exist")
        current = from_snapshot(TalkRoom, snapshot)
        if not update.applies_to(current):
            return False
        transaction.update(ref, summary_fields(update.merged_fields(current)))
        return True

    async def list_talk_rooms(self, offset: int = 0, limit: int = 50) -> list[TalkRoom]:
        query = (
            self._rooms.order_by("sortTime", direction=firestore.Query.DESCENDING)
            .offset(offset)
            .limit(limit)
        )
        try:
            return [
                from_snapshot(TalkRoom, snapshot)
                async for snapshot in query.stream()
            ]
        except gcloud_exceptions.GoogleAPIError as e:
            raise StoreReadFailed(DOCUMENT_STORE, str(e)) from e

    async def count(self) -> int:
        try:
            results = await self._rooms.count().get()
        except gcloud_exceptions.GoogleAPIError as e:
            raise StoreReadFailed(DOCUMENT_STORE, str(e)) from e
        return int(results[0][0].value) if results else 0

    # -------------------------------------------------------------------------
    # Timeline store
    # -------------------------------------------------------------------------

    async def append(self, event: Event) -> bool:
        ref = self._events(event.talk_room_id).document(str(event.id))
        try:
            await ref.create(to_document(event))
        except gcloud_exceptions.Conflict:
            logger.info("Event %s already recorded", event.id)
            return False
        except gcloud_exceptions.GoogleAPIError as e:
            raise StoreWriteFailed(DOCUMENT_STORE, str(e)) from e
        return True

    async def get_event(self, talk_room_id: UUID, event_id: UUID) -> Optional[Event]:
        try:
            snapshot = await self._events(talk_room_id).document(str(event_id)).get()
        except gcloud_exceptions.GoogleAPIError as e:
            raise StoreReadFailed(DOCUMENT_STORE, str(e)) from e
        if not snapshot.exists:
            return None
        return from_snapshot(Event, snapshot)

    async def list_events(
        self, talk_room_id: UUID, offset: int = 0, limit: int = 100
    ) -> list[Event]:
        query = (
            self._events(talk_room_id)
            .order_by("createdAt", direction=firestore.Query.ASCENDING)
            .offset(offset)
            .limit(limit)
        )
        try:
            return [
                from_snapshot(Event, snapshot)
                async for snapshot in query.stream()
            ]
        except gcloud_exceptions.GoogleAPIError as e:
            raise StoreReadFailed(DOCUMENT_STORE, str(e)) from e

    async def latest_event(self, talk_room_id: UUID) -> Optional[Event]:
        query = (
            self._events(talk_room_id)
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
            .limit(1)
        )
        try:
            async for snapshot in query.stream():
                return from_snapshot(Event, snapshot)
        except gcloud_exceptions.GoogleAPIError as e:
            raise StoreReadFailed(DOCUMENT_STORE, str(e)) from e
        return None
