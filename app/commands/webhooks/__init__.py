"""Webhook command handlers."""

from app.commands.webhooks.line_command import LineWebhookCommand

__all__ = ["LineWebhookCommand"]
