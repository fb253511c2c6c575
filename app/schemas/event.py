"""
Normalized event contracts.

Every platform event is decoded into one of the payload shapes below. The
payload union is matched once, in the decoder; everything downstream only
calls the methods every payload exposes (summary_text, talk_room_flags).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SUMMARY_TEXT_LIMIT = 100


class CamelModel(BaseModel):
    """Base model stored with camelCase keys in the document store."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventKind(str, Enum):
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    POSTBACK = "postback"
    VIDEO_PLAY_COMPLETE = "videoPlayComplete"
    MESSAGE = "message"
    UNSUPPORTED = "unsupported"


# -----------------------------------------------------------------------------
# Message content (one union, keyed by "type")
# -----------------------------------------------------------------------------


class TextContent(CamelModel):
    type: Literal["text"] = "text"
    id: str
    text: str
    emojis: list[dict[str, Any]] = Field(default_factory=list)

    def summary_text(self) -> str:
        return self.text[:SUMMARY_TEXT_LIMIT]


class ImageContent(CamelModel):
    type: Literal["image"] = "image"
    id: str
    content_provider: dict[str, Any] = Field(default_factory=dict)
    image_set: Optional[dict[str, Any]] = None

    def summary_text(self) -> str:
        return "[image]"


class VideoContent(CamelModel):
    type: Literal["video"] = "video"
    id: str
    duration: Optional[int] = None
    content_provider: dict[str, Any] = Field(default_factory=dict)

    def summary_text(self) -> str:
        return "[video]"


class AudioContent(CamelModel):
    type: Literal["audio"] = "audio"
    id: str
    duration: Optional[int] = None
    content_provider: dict[str, Any] = Field(default_factory=dict)

    def summary_text(self) -> str:
        return "[audio]"


class FileContent(CamelModel):
    type: Literal["file"] = "file"
    id: str
    file_name: str
    file_size: int

    def summary_text(self) -> str:
        return f"[file] {self.file_name}"[:SUMMARY_TEXT_LIMIT]


class LocationContent(CamelModel):
    type: Literal["location"] = "location"
    id: str
    title: Optional[str] = None
    address: Optional[str] = None
    latitude: float
    longitude: float

    def summary_text(self) -> str:
        label = self.title or self.address or f"{self.latitude},{self.longitude}"
        return f"[location] {label}"[:SUMMARY_TEXT_LIMIT]


class StickerContent(CamelModel):
    type: Literal["sticker"] = "sticker"
    id: str
    package_id: str
    sticker_id: str
    sticker_resource_type: Optional[str] = None

    def summary_text(self) -> str:
        return "[sticker]"


class UnsupportedContent(CamelModel):
    """Message content of a type this service does not model."""

    type: Literal["unsupported"] = "unsupported"
    id: Optional[str] = None
    raw_type: str

    def summary_text(self) -> str:
        return f"[{self.raw_type}]"


MessageContent = Annotated[
    Union[
        TextContent,
        ImageContent,
        VideoContent,
        AudioContent,
        FileContent,
        LocationContent,
        StickerContent,
        UnsupportedContent,
    ],
    Field(discriminator="type"),
]

MESSAGE_CONTENT_TYPES = {
    "text",
    "image",
    "video",
    "audio",
    "file",
    "location",
    "sticker",
}


# -----------------------------------------------------------------------------
# Event payloads (one union, keyed by "kind")
# -----------------------------------------------------------------------------


class FollowPayload(CamelModel):
    kind: Literal["follow"] = "follow"
    is_unblocked: bool = False

    def summary_text(self) -> str:
        return ""

    def talk_room_flags(self) -> dict[str, bool]:
        return {"following": True}


class UnfollowPayload(CamelModel):
    kind: Literal["unfollow"] = "unfollow"

    def summary_text(self) -> str:
        return ""

    def talk_room_flags(self) -> dict[str, bool]:
        return {"following": False}


class PostbackPayload(CamelModel):
    kind: Literal["postback"] = "postback"
    data: str
    params: dict[str, Any] = Field(default_factory=dict)

    def summary_text(self) -> str:
        return self.data[:SUMMARY_TEXT_LIMIT]

    def talk_room_flags(self) -> dict[str, bool]:
        return {}


class VideoPlayCompletePayload(CamelModel):
    kind: Literal["videoPlayComplete"] = "videoPlayComplete"
    tracking_id: str

    def summary_text(self) -> str:
        return ""

    def talk_room_flags(self) -> dict[str, bool]:
        return {}


class MessagePayload(CamelModel):
    kind: Literal["message"] = "message"
    message: MessageContent

    def summary_text(self) -> str:
        return self.message.summary_text()

    def talk_room_flags(self) -> dict[str, bool]:
        # A user message means the room needs a reply.
        return {"rsvp": True}


class UnsupportedPayload(CamelModel):
    """Sub-event the decoder could not map; kept so siblings still process."""

    kind: Literal["unsupported"] = "unsupported"
    raw_type: str
    reason: str
    raw: dict[str, Any] = Field(default_factory=dict)

    def summary_text(self) -> str:
        return ""

    def talk_room_flags(self) -> dict[str, bool]:
        return {}


EventPayload = Annotated[
    Union[
        FollowPayload,
        UnfollowPayload,
        PostbackPayload,
        VideoPlayCompletePayload,
        MessagePayload,
        UnsupportedPayload,
    ],
    Field(discriminator="kind"),
]


# -----------------------------------------------------------------------------
# Inbound (ephemeral) and recorded events
# -----------------------------------------------------------------------------


class DeliveryInfo(CamelModel):
    """Platform delivery metadata carried alongside every event."""

    webhook_event_id: Optional[str] = None
    reply_token: Optional[str] = None
    is_redelivery: bool = False
    mode: Optional[str] = None
    source_type: Optional[str] = None


class InboundEvent(CamelModel):
    """Decoder output. Not persisted."""

    external_auth_id: Optional[str] = None
    kind: EventKind
    payload: EventPayload
    timestamp: datetime
    delivery: DeliveryInfo = Field(default_factory=DeliveryInfo)

    @property
    def is_supported(self) -> bool:
        return self.kind != EventKind.UNSUPPORTED and bool(self.external_auth_id)


class Event(CamelModel):
    """Immutable timeline entry stored under its talk room."""

    id: UUID
    talk_room_id: UUID
    kind: EventKind
    payload: EventPayload
    delivery: DeliveryInfo = Field(default_factory=DeliveryInfo)
    created_at: datetime
