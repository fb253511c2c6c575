from app.services.conversation_resolver import ConversationResolver
from app.services.event_recorder import EventRecorder
from app.services.identity_resolver import IdentityResolver
from app.services.ingestion_pipeline import (
    IngestionOutcome,
    IngestionPipeline,
    IngestionState,
)

__all__ = [
    "ConversationResolver",
    "EventRecorder",
    "IdentityResolver",
    "IngestionOutcome",
    "IngestionPipeline",
    "IngestionState",
]
