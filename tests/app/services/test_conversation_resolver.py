"""Tests for talk room get-or-create."""

import asyncio
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from app.core.decoder import EventDecoder
from app.core.identifiers import talk_room_id_for
from app.schemas.event import EventKind
from app.schemas.user import UserRead
from app.services.conversation_resolver import ConversationResolver
from tests.fixtures.line_events import envelope, follow_event, unfollow_event


@pytest.fixture
def user(faker):
    now = datetime.now(timezone.utc)
    return UserRead(
        id=uuid4(),
        external_auth_id="U123",
        display_name=faker.name(),
        picture_url="",
        created_at=now,
        updated_at=now,
    )


def decode_one(raw):
    (event,) = EventDecoder().decode(envelope(raw)).events
    return event


@pytest.mark.asyncio
async def test_first_contact_creates_talk_room(document_store, user):
    trigger = decode_one(follow_event())
    resolver = ConversationResolver(document_store)

    room = await resolver.resolve(user, trigger)

    assert room.id == talk_room_id_for(user.id)
    assert room.owner_user_id == user.id
    assert room.display_name == user.display_name
    assert room.following is True
    assert room.rsvp is False
    assert room.pinned is False
    assert room.latest_message_summary.kind == EventKind.FOLLOW
    assert room.latest_messaged_at == trigger.timestamp
    assert room.sort_time == trigger.timestamp
    assert await document_store.count() == 1


@pytest.mark.asyncio
async def test_existing_talk_room_is_returned(document_store, user):
    resolver = ConversationResolver(document_store)
    first = await resolver.resolve(user, decode_one(follow_event()))

    second = await resolver.resolve(user, decode_one(unfollow_event()))

    assert second == first
    assert await document_store.count() == 1


@pytest.mark.asyncio
async def test_concurrent_first_contact_converges_on_one_room(document_store, user):
    resolver = ConversationResolver(document_store)
    trigger = decode_one(follow_event())

    rooms = await asyncio.gather(*(resolver.resolve(user, trigger) for _ in range(5)))

    assert len({r.id for r in rooms}) == 1
    assert await document_store.count() == 1
    assert [kind for kind, _ in document_store.writes] == ["talk_room"]


@pytest.mark.asyncio
async def test_unfollow_as_first_event_creates_unfollowed_room(document_store, user):
    resolver = ConversationResolver(document_store)

    room = await resolver.resolve(user, decode_one(unfollow_event()))

    assert room.following is False
