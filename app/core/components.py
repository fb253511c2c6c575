"""Process-wide wiring of the ingestion pipeline, assembled once at startup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.adapters.base import ProfileGateway
from app.config import Settings
from app.core.decoder import EventDecoder
from app.core.dispatcher import BackgroundDispatcher
from app.core.signature import SignatureVerifier
from app.services.conversation_resolver import ConversationResolver
from app.services.event_recorder import EventRecorder
from app.services.identity_resolver import IdentityResolver
from app.services.ingestion_pipeline import IngestionPipeline, RecordedHandler
from app.stores.base import ConversationStore, IdentityStore, TimelineStore


@dataclass
class AppComponents:
    settings: Settings
    verifier: SignatureVerifier
    decoder: EventDecoder
    pipeline: IngestionPipeline
    recorder: EventRecorder
    dispatcher: BackgroundDispatcher
    conversations: ConversationStore
    timeline: TimelineStore


def build_components(
    settings: Settings,
    identity_store: IdentityStore,
    conversations: ConversationStore,
    timeline: TimelineStore,
    profiles: ProfileGateway,
    on_recorded: Optional[RecordedHandler] = None,
) -> AppComponents:
    recorder = EventRecorder(
        timeline=timeline,
        conversations=conversations,
        summary_attempts=settings.summary_update_attempts,
        retry_delay=settings.ingestion_retry_base_delay,
    )
    pipeline = IngestionPipeline(
        identities=IdentityResolver(identity_store, profiles),
        conversations=ConversationResolver(conversations),
        recorder=recorder,
        max_attempts=settings.ingestion_max_attempts,
        retry_base_delay=settings.ingestion_retry_base_delay,
        on_recorded=on_recorded,
    )
    return AppComponents(
        settings=settings,
        verifier=SignatureVerifier(settings.line_channel_secret or ""),
        decoder=EventDecoder(),
        pipeline=pipeline,
        recorder=recorder,
        dispatcher=BackgroundDispatcher(),
        conversations=conversations,
        timeline=timeline,
    )
