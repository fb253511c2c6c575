"""
Wire schemas for LINE Messaging API webhook deliveries.

Only the envelope and the per-event fields the decoder needs are modelled;
message content is validated into app.schemas.event.MessageContent.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LineModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class LineWebhookEnvelope(LineModel):
    """Outer delivery body. Events stay raw so one bad event cannot fail the batch."""

    destination: str
    events: list[Any]


class LineSource(LineModel):
    type: str
    user_id: Optional[str] = None
    group_id: Optional[str] = None
    room_id: Optional[str] = None


class LineDeliveryContext(LineModel):
    is_redelivery: bool = False


class LineWebhookEvent(LineModel):
    """Fields shared by every webhook event type."""

    type: str
    timestamp: int
    mode: Optional[str] = None
    source: Optional[LineSource] = None
    webhook_event_id: Optional[str] = None
    reply_token: Optional[str] = None
    delivery_context: LineDeliveryContext = Field(default_factory=LineDeliveryContext)


class LineFollowDetail(LineModel):
    is_unblocked: bool = False


class LineFollowEvent(LineWebhookEvent):
    follow: LineFollowDetail = Field(default_factory=LineFollowDetail)


class LinePostbackDetail(LineModel):
    data: str
    params: dict[str, Any] = Field(default_factory=dict)


class LinePostbackEvent(LineWebhookEvent):
    postback: LinePostbackDetail


class LineVideoPlayCompleteDetail(LineModel):
    tracking_id: str


class LineVideoPlayCompleteEvent(LineWebhookEvent):
    video_play_complete: LineVideoPlayCompleteDetail


class LineMessageEvent(LineWebhookEvent):
    message: dict[str, Any]


class LineProfileResponse(LineModel):
    """Body of GET /v2/bot/profile/{userId}."""

    user_id: Optional[str] = None
    display_name: str = ""
    picture_url: Optional[str] = None
    status_message: Optional[str] = None
    language: Optional[str] = None
