"""Discord Webhook Notification Tool.

Posts the assembled application message to the recruitment channel's
webhook. Delivery is attempted exactly once; a failure is reported back to
the applicant, who may resubmit.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.models.errors import DeliveryFailed
from app.models.response_models import WebhookMessage

logger = logging.getLogger(__name__)

TRUNCATION_SUFFIX = "…"


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` characters, marking the cut."""
    if limit <= 0 or len(text) <= limit:
        return text
    if limit <= len(TRUNCATION_SUFFIX):
        return text[:limit]
    return text[:limit - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX


class DiscordWebhookNotifier:
    """Sends a single message to a Discord webhook."""

    def __init__(self, webhook_url: str, timeout: float = 10.0, error_body_limit: int = 500) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.error_body_limit = error_body_limit

    async def send(self, message: WebhookMessage) -> dict[str, Any]:
        """Deliver the message; raise DeliveryFailed on any non-2xx or network error."""
        payload = message.to_payload()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Discord webhook request failed: %s", exc)
            raise DeliveryFailed(
                "Discord request failed",
                details={"error": str(exc) or type(exc).__name__},
            ) from exc

        if not resp.is_success:
            body = truncate(resp.text, self.error_body_limit)
            logger.error("Discord webhook returned HTTP %d: %s", resp.status_code, body)
            raise DeliveryFailed(
                "Discord webhook rejected the message",
                details={"status": resp.status_code, "body": body},
            )

        logger.info("Discord notification sent (HTTP %d)", resp.status_code)
        return {"sent": True, "status": resp.status_code}
