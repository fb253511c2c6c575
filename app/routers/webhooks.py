"""
Webhook route for LINE Messaging API deliveries.

The platform POSTs signed event batches here; we verify, decode, hand the
batch to the ingestion pipeline in the background and return 200.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from app.commands.webhooks.line_command import LineWebhookCommand
from app.core.components import AppComponents
from app.routers.utils.dependencies import get_components

router = APIRouter(tags=["webhooks"])


@router.post("/webhook")
async def line_webhook(
    request: Request,
    x_line_signature: Optional[str] = Header(default=None),
    components: AppComponents = Depends(get_components),
) -> dict[str, str]:
    """Receive a LINE webhook delivery. The raw body is read before any parsing."""
    body = await request.body()
    command = LineWebhookCommand(components)
    return await command.execute(body, x_line_signature)
