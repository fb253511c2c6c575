"""Tests for the per-event ingestion pipeline."""

import pytest

from app.core.components import build_components
from app.core.decoder import EventDecoder
from app.core.identifiers import event_id_for, talk_room_id_for
from app.schemas.event import EventKind
from app.services.ingestion_pipeline import IngestionState
from tests.fixtures.fakes import FakeProfileGateway
from tests.fixtures.line_events import (
    BASE_TIMESTAMP,
    beacon_event,
    envelope,
    follow_event,
    text_message_event,
)

pytestmark = pytest.mark.asyncio


def decode(*raw_events):
    return EventDecoder().decode(envelope(*raw_events)).events


def make_pipeline(settings, identity_store, document_store, profiles, hook=None):
    components = build_components(
        settings=settings,
        identity_store=identity_store,
        conversations=document_store,
        timeline=document_store,
        profiles=profiles,
        on_recorded=hook,
    )
    return components.pipeline


async def test_follow_event_is_recorded_end_to_end(
    settings, identity_store, document_store, profiles
):
    pipeline = make_pipeline(settings, identity_store, document_store, profiles)

    (outcome,) = await pipeline.process_delivery(decode(follow_event()))

    assert outcome.state == IngestionState.ACKED
    assert outcome.attempts == 1
    assert outcome.event_id == event_id_for("01FOLLOW")
    user = identity_store.users["U123"]
    assert outcome.talk_room_id == talk_room_id_for(user.id)
    room = await document_store.get(outcome.talk_room_id)
    assert room.following is True
    assert room.latest_message_summary.kind == EventKind.FOLLOW
    assert room.latest_message_summary.event_id == outcome.event_id
    (event,) = await document_store.list_events(room.id)
    assert event.kind == EventKind.FOLLOW


async def test_transient_profile_failure_is_retried(
    settings, identity_store, document_store
):
    profiles = FakeProfileGateway(fail_times=1)
    pipeline = make_pipeline(settings, identity_store, document_store, profiles)

    (outcome,) = await pipeline.process_delivery(decode(follow_event()))

    assert outcome.state == IngestionState.ACKED
    assert outcome.attempts == 2
    assert len(identity_store.users) == 1
    assert profiles.calls == ["U123", "U123"]


async def test_persistent_failure_exhausts_attempts(
    settings, identity_store, document_store
):
    profiles = FakeProfileGateway(always_fail_for=("U123",))
    pipeline = make_pipeline(settings, identity_store, document_store, profiles)

    (outcome,) = await pipeline.process_delivery(decode(follow_event()))

    assert outcome.state == IngestionState.FAILED
    assert outcome.attempts == settings.ingestion_max_attempts
    assert "U123" in outcome.error
    assert identity_store.users == {}
    assert document_store.writes == []


async def test_retry_after_event_write_failure_reuses_event_id(
    settings, identity_store, document_store, profiles
):
    document_store.fail_append = 1
    pipeline = make_pipeline(settings, identity_store, document_store, profiles)

    (outcome,) = await pipeline.process_delivery(decode(text_message_event()))

    assert outcome.state == IngestionState.ACKED
    assert outcome.attempts == 2
    events = await document_store.list_events(outcome.talk_room_id)
    assert [e.id for e in events] == [event_id_for("01MESSAGE")]


async def test_summary_failure_still_acks(
    settings, identity_store, document_store, profiles
):
    document_store.fail_summary = settings.summary_update_attempts
    pipeline = make_pipeline(settings, identity_store, document_store, profiles)

    (outcome,) = await pipeline.process_delivery(decode(text_message_event()))

    assert outcome.state == IngestionState.ACKED
    assert "summary update failed" in outcome.error
    assert await document_store.get_event(outcome.talk_room_id, outcome.event_id)


async def test_unsupported_event_is_skipped(
    settings, identity_store, document_store, profiles
):
    pipeline = make_pipeline(settings, identity_store, document_store, profiles)

    (outcome,) = await pipeline.process_delivery(decode(beacon_event()))

    assert outcome.state == IngestionState.SKIPPED
    assert outcome.ok
    assert profiles.calls == []
    assert document_store.writes == []


async def test_failed_event_does_not_block_siblings(
    settings, identity_store, document_store
):
    profiles = FakeProfileGateway(always_fail_for=("Ubad",))
    pipeline = make_pipeline(settings, identity_store, document_store, profiles)

    outcomes = await pipeline.process_delivery(
        decode(
            follow_event(user_id="Ubad", webhook_event_id="01A"),
            beacon_event(),
            follow_event(user_id="Ugood", webhook_event_id="01B"),
        )
    )

    assert [o.state for o in outcomes] == [
        IngestionState.FAILED,
        IngestionState.SKIPPED,
        IngestionState.ACKED,
    ]
    assert set(identity_store.users) == {"Ugood"}


async def test_unexpected_error_fails_only_that_event(
    settings, identity_store, document_store, profiles, monkeypatch
):
    pipeline = make_pipeline(settings, identity_store, document_store, profiles)
    original = identity_store.get_by_external_auth_id

    async def flaky(external_auth_id):
        if external_auth_id == "Uboom":
            raise RuntimeError("unexpected")
        return await original(external_auth_id)

    monkeypatch.setattr(identity_store, "get_by_external_auth_id", flaky)

    outcomes = await pipeline.process_delivery(
        decode(
            follow_event(user_id="Uboom", webhook_event_id="01A"),
            follow_event(user_id="Ugood", webhook_event_id="01B"),
        )
    )

    assert [o.state for o in outcomes] == [IngestionState.FAILED, IngestionState.ACKED]
    assert "unexpected" in outcomes[0].error


async def test_messages_from_same_user_share_one_room(
    settings, identity_store, document_store, profiles
):
    pipeline = make_pipeline(settings, identity_store, document_store, profiles)

    outcomes = await pipeline.process_delivery(
        decode(
            follow_event(timestamp=BASE_TIMESTAMP, webhook_event_id="01A"),
            text_message_event(
                "hello", timestamp=BASE_TIMESTAMP + 1000, webhook_event_id="01B"
            ),
        )
    )

    assert len({o.talk_room_id for o in outcomes}) == 1
    room = await document_store.get(outcomes[0].talk_room_id)
    assert room.latest_message_summary.kind == EventKind.MESSAGE
    assert room.latest_message_summary.text == "hello"
    assert room.rsvp is True
    assert len(await document_store.list_events(room.id)) == 2


async def test_recorded_hook_receives_event_and_room(
    settings, identity_store, document_store, profiles
):
    seen = []

    async def hook(event, talk_room):
        seen.append((event.id, talk_room.id))

    pipeline = make_pipeline(settings, identity_store, document_store, profiles, hook)

    (outcome,) = await pipeline.process_delivery(decode(follow_event()))

    assert seen == [(outcome.event_id, outcome.talk_room_id)]


async def test_failing_recorded_hook_does_not_fail_event(
    settings, identity_store, document_store, profiles
):
    async def hook(event, talk_room):
        raise RuntimeError("hook failed")

    pipeline = make_pipeline(settings, identity_store, document_store, profiles, hook)

    (outcome,) = await pipeline.process_delivery(decode(follow_event()))

    assert outcome.state == IngestionState.ACKED


async def test_recorded_hook_only_receives_follow_events(
    settings, identity_store, document_store, profiles
):
    seen = []

    async def hook(event, talk_room):
        seen.append(event.kind)

    pipeline = make_pipeline(settings, identity_store, document_store, profiles, hook)

    outcomes = await pipeline.process_delivery(
        decode(
            text_message_event("hello", webhook_event_id="01M"),
            follow_event(timestamp=BASE_TIMESTAMP + 1000, webhook_event_id="01F"),
        )
    )

    assert [o.state for o in outcomes] == [IngestionState.ACKED, IngestionState.ACKED]
    assert seen == [EventKind.FOLLOW]
