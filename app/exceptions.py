"""
Error taxonomy for webhook ingestion.

SignatureInvalid and DecodeError are terminal for a delivery and map to 4xx.
Everything raised inside the pipeline is retryable because each step is
idempotent or converges on last-writer-wins.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

RELATIONAL_STORE = "relational"
DOCUMENT_STORE = "document"


class IngestionError(Exception):
    """Base class for ingestion failures."""

    retryable = False


class SignatureInvalid(IngestionError):
    """Request body was not signed with the channel secret."""


class DecodeError(IngestionError):
    """Webhook envelope is not valid JSON of the expected shape."""


class ExternalProfileFetchFailed(IngestionError):
    retryable = True

    def __init__(self, external_auth_id: str, reason: str) -> None:
        super().__init__(f"profile fetch failed for {external_auth_id}: {reason}")
        self.external_auth_id = external_auth_id
        self.reason = reason


class StoreError(IngestionError):
    retryable = True
    action = "access"

    def __init__(self, store: str, reason: str) -> None:
        super().__init__(f"{store} store {self.action} failed: {reason}")
        self.store = store
        self.reason = reason


class StoreReadFailed(StoreError):
    action = "read"


class StoreWriteFailed(StoreError):
    action = "write"


class DuplicateUserError(IngestionError):
    """Insert lost the race on the unique external_auth_id constraint."""

    def __init__(self, external_auth_id: str) -> None:
        super().__init__(f"user already exists for {external_auth_id}")
        self.external_auth_id = external_auth_id


class PartialWriteInconsistency(IngestionError):
    """Event is recorded but the talk room summary could not be refreshed."""

    def __init__(
        self, talk_room_id: UUID, event_id: UUID, cause: Optional[Exception] = None
    ) -> None:
        super().__init__(
            f"event {event_id} recorded in talk room {talk_room_id} "
            f"but summary update failed: {cause}"
        )
        self.talk_room_id = talk_room_id
        self.event_id = event_id
        self.cause = cause
