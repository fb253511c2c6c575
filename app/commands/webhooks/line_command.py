"""
Command to handle LINE webhook deliveries.

Verifies the signature over the raw body, decodes the envelope, schedules
ingestion in the background and acknowledges immediately. Nothing touches a
store before the 200 is returned.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException

from app.core.components import AppComponents
from app.exceptions import DecodeError, SignatureInvalid


class LineWebhookCommand:
    """
    Command to handle LINE webhook deliveries.
    401 on signature mismatch, 400 on a malformed envelope, 503 when the
    channel secret is not configured, otherwise 200 and background ingestion.
    """

    def __init__(self, components: AppComponents) -> None:
        self.components = components
        self.settings = components.settings
        self.logger = logging.getLogger(__name__)

    async def execute(self, body: bytes, signature: Optional[str]) -> dict[str, str]:
        """
        Execute the LINE webhook: verify, decode, dispatch.

        Args:
            body: Raw request body exactly as received.
            signature: Value of the x-line-signature header.

        Returns:
            dict: {"status": "ok"} once the delivery is accepted.

        Raises:
            HTTPException: 503 if not configured, 401 on invalid signature,
                400 on invalid envelope.
        """
        if not self.settings.line_channel_secret:
            raise HTTPException(
                status_code=503,
                detail="LINE integration is not configured",
            )
        try:
            self.components.verifier.verify(body, signature)
        except SignatureInvalid as e:
            self.logger.warning("LINE webhook signature rejected: %s", e)
            raise HTTPException(status_code=401, detail="Invalid signature") from e
        try:
            delivery = self.components.decoder.decode(body)
        except DecodeError as e:
            self.logger.warning("LINE webhook decode error: %s", e)
            raise HTTPException(status_code=400, detail="Invalid webhook body") from e

        if delivery.events:
            events = delivery.events
            pipeline = self.components.pipeline
            self.components.dispatcher.dispatch(
                lambda: pipeline.process_delivery(events),
                name=f"line-delivery:{delivery.destination}",
            )
        self.logger.info(
            "LINE webhook accepted: destination=%s events=%d",
            delivery.destination,
            len(delivery.events),
        )
        return {"status": "ok"}
