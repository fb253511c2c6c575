"""Talk room (conversation card) schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from app.schemas.event import CamelModel, Event, EventKind


class MessageSummary(CamelModel):
    """Projection of the latest event, enough to render a conversation row."""

    kind: EventKind
    event_id: Optional[UUID] = None
    text: str = ""

    @classmethod
    def from_event(cls, event: Event) -> "MessageSummary":
        return cls(
            kind=event.kind,
            event_id=event.id,
            text=event.payload.summary_text(),
        )


class TalkRoom(CamelModel):
    """Per-user conversation aggregate. Owned by the document store."""

    id: UUID
    owner_user_id: UUID
    display_name: str = ""
    rsvp: bool = False
    pinned: bool = False
    following: bool = True
    latest_message_summary: MessageSummary
    latest_messaged_at: datetime
    sort_time: datetime
    created_at: datetime
    updated_at: datetime


class SummaryUpdate(CamelModel):
    """
    Last-value projection written onto a talk room after an event append.

    Applied only when it is at least as recent as what the room already shows,
    so latest_messaged_at and sort_time never move backward.
    """

    latest_message_summary: MessageSummary
    latest_messaged_at: datetime
    sort_time: datetime
    updated_at: datetime
    following: Optional[bool] = None
    rsvp: Optional[bool] = None

    @classmethod
    def from_event(cls, event: Event, now: datetime) -> "SummaryUpdate":
        flags = event.payload.talk_room_flags()
        return cls(
            latest_message_summary=MessageSummary.from_event(event),
            latest_messaged_at=event.created_at,
            sort_time=event.created_at,
            updated_at=now,
            following=flags.get("following"),
            rsvp=flags.get("rsvp"),
        )

    def applies_to(self, talk_room: TalkRoom) -> bool:
        return self.latest_messaged_at >= talk_room.latest_messaged_at

    def merged_fields(self, talk_room: TalkRoom) -> dict[str, Any]:
        """Fields to write on talk_room, in python (snake_case) names."""
        fields: dict[str, Any] = {
            "latest_message_summary": self.latest_message_summary,
            "latest_messaged_at": max(
                self.latest_messaged_at, talk_room.latest_messaged_at
            ),
            "sort_time": max(self.sort_time, talk_room.sort_time),
            "updated_at": max(self.updated_at, talk_room.updated_at),
        }
        if self.following is not None:
            fields["following"] = self.following
        if self.rsvp is not None:
            fields["rsvp"] = self.rsvp
        return fields

    def apply(self, talk_room: TalkRoom) -> TalkRoom:
        """Return talk_room with this update applied, or unchanged if stale."""
        if not self.applies_to(talk_room):
            return talk_room
        return talk_room.model_copy(update=self.merged_fields(talk_room))
