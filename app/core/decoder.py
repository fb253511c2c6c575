"""
Decode raw LINE webhook bodies into normalized InboundEvents.

Only the envelope can fail a delivery. Each sub-event is decoded on its own;
unknown kinds or malformed fields become an UNSUPPORTED event so sibling
events in the same batch are still processed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from app.exceptions import DecodeError
from app.infra.logging_config import get_logger
from app.schemas.event import (
    MESSAGE_CONTENT_TYPES,
    DeliveryInfo,
    EventKind,
    FollowPayload,
    InboundEvent,
    MessageContent,
    MessagePayload,
    PostbackPayload,
    UnfollowPayload,
    UnsupportedContent,
    UnsupportedPayload,
    VideoPlayCompletePayload,
)
from app.schemas.line_webhook import (
    LineFollowEvent,
    LineMessageEvent,
    LinePostbackEvent,
    LineVideoPlayCompleteEvent,
    LineWebhookEnvelope,
    LineWebhookEvent,
)

logger = get_logger("decoder")

_EVENT_MODELS: dict[str, type[LineWebhookEvent]] = {
    "follow": LineFollowEvent,
    "unfollow": LineWebhookEvent,
    "postback": LinePostbackEvent,
    "videoPlayComplete": LineVideoPlayCompleteEvent,
    "message": LineMessageEvent,
}

_message_content_adapter: TypeAdapter = TypeAdapter(MessageContent)


@dataclass
class DecodedDelivery:
    destination: str
    events: list[InboundEvent] = field(default_factory=list)


class EventDecoder:
    """Stateless; safe to share across deliveries."""

    def decode(self, body: bytes) -> DecodedDelivery:
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodeError(f"body is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise DecodeError("body must be a JSON object")
        try:
            envelope = LineWebhookEnvelope.model_validate(data)
        except ValidationError as e:
            raise DecodeError(f"invalid webhook envelope: {e}") from e

        events = [self.decode_event(raw) for raw in envelope.events]
        return DecodedDelivery(destination=envelope.destination, events=events)

    def decode_event(self, raw: Any) -> InboundEvent:
        """Decode one sub-event. Never raises."""
        if not isinstance(raw, dict):
            return _unsupported("<invalid>", "event is not a JSON object", {}, None)

        event_type = raw.get("type")
        model = _EVENT_MODELS.get(event_type) if isinstance(event_type, str) else None
        if model is None:
            return _unsupported(
                str(event_type), "unknown event type", raw, raw.get("timestamp")
            )

        try:
            wire = model.model_validate(raw)
            payload = _to_payload(wire)
            timestamp = _from_epoch_millis(wire.timestamp)
        except ValueError as e:
            logger.warning("Malformed %s event: %s", event_type, e)
            return _unsupported(event_type, str(e), raw, raw.get("timestamp"))

        source = wire.source
        external_auth_id = source.user_id if source else None
        if not external_auth_id:
            return _unsupported(
                event_type, "event has no source userId", raw, wire.timestamp
            )

        return InboundEvent(
            external_auth_id=external_auth_id,
            kind=EventKind(payload.kind),
            payload=payload,
            timestamp=timestamp,
            delivery=_delivery_info(wire),
        )


def _to_payload(wire: LineWebhookEvent):
    """Translate a wire event into its domain payload. The only place kinds are matched."""
    if isinstance(wire, LineFollowEvent):
        return FollowPayload(is_unblocked=wire.follow.is_unblocked)
    if isinstance(wire, LinePostbackEvent):
        return PostbackPayload(data=wire.postback.data, params=wire.postback.params)
    if isinstance(wire, LineVideoPlayCompleteEvent):
        return VideoPlayCompletePayload(
            tracking_id=wire.video_play_complete.tracking_id
        )
    if isinstance(wire, LineMessageEvent):
        content_type = wire.message.get("type")
        if content_type in MESSAGE_CONTENT_TYPES:
            content = _message_content_adapter.validate_python(wire.message)
        else:
            message_id = wire.message.get("id")
            content = UnsupportedContent(
                id=str(message_id) if message_id is not None else None,
                raw_type=str(content_type),
            )
        return MessagePayload(message=content)
    if wire.type == "unfollow":
        return UnfollowPayload()
    raise ValueError(f"no payload mapping for {wire.type}")


def _delivery_info(wire: LineWebhookEvent) -> DeliveryInfo:
    return DeliveryInfo(
        webhook_event_id=wire.webhook_event_id,
        reply_token=wire.reply_token,
        is_redelivery=wire.delivery_context.is_redelivery,
        mode=wire.mode,
        source_type=wire.source.type if wire.source else None,
    )


def _from_epoch_millis(value: int) -> datetime:
    if value <= 0:
        raise ValueError(f"timestamp {value} is not a positive epoch millisecond")
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise ValueError(f"timestamp {value} is out of range") from e


def _timestamp_or_now(value: Any) -> datetime:
    """Best-effort time for events that are skipped, never recorded."""
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return _from_epoch_millis(value)
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def _unsupported(
    raw_type: str, reason: str, raw: dict[str, Any], timestamp: Optional[Any]
) -> InboundEvent:
    source = raw.get("source") if isinstance(raw.get("source"), dict) else {}
    user_id = source.get("userId")
    webhook_event_id = raw.get("webhookEventId")
    return InboundEvent(
        external_auth_id=user_id if isinstance(user_id, str) else None,
        kind=EventKind.UNSUPPORTED,
        payload=UnsupportedPayload(raw_type=raw_type, reason=reason, raw=raw),
        timestamp=_timestamp_or_now(timestamp),
        delivery=DeliveryInfo(
            webhook_event_id=(
                webhook_event_id if isinstance(webhook_event_id, str) else None
            ),
        ),
    )
