"""Deterministic identifiers that let racing writers converge on one document."""

from __future__ import annotations

import uuid
from typing import Optional
from uuid import UUID

TALK_ROOM_NAMESPACE = uuid.UUID("6f1c1c1e-4a53-5a1b-9c52-0b7d7c3a8f10")
EVENT_NAMESPACE = uuid.UUID("0d4b4f3e-2c8a-5e61-8a7e-3f0a9b2d1c44")


def talk_room_id_for(owner_user_id: UUID) -> UUID:
    """One talk room per user, so its id is derived from the owner."""
    return uuid.uuid5(TALK_ROOM_NAMESPACE, str(owner_user_id))


def event_id_for(webhook_event_id: Optional[str]) -> UUID:
    """Stable across redeliveries when the platform supplies a webhook event id."""
    if webhook_event_id:
        return uuid.uuid5(EVENT_NAMESPACE, webhook_event_id)
    return uuid.uuid4()
