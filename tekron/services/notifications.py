"""
tekron.services.notifications - Push Gateway Client
====================================================

The notification collaborator: ``send(tokens, title, body, data)``.

Delivery is best-effort.  Invalid tokens are skipped, messages are chunked
at the gateway's batch limit, and a failed chunk is logged and dropped; no
exception escapes :meth:`ExpoPushNotifier.send`.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

# Expo accepts at most 100 messages per request
EXPO_BATCH_LIMIT = 100

_EXPO_TOKEN_RE = re.compile(r"^(ExponentPushToken|ExpoPushToken)\[[^\]]+\]$")


class PushNotifier(Protocol):
    async def send(
        self,
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> int:
        """Send one notification to every token; return messages accepted."""
        ...


def is_expo_push_token(token: str) -> bool:
    return bool(_EXPO_TOKEN_RE.match(token))


def chunk(items: list, size: int) -> list[list]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class ExpoPushNotifier:
    """Talks to the Expo push API over httpx with a bounded timeout."""

    def __init__(self, gateway_url: str, *, timeout: float = 10.0) -> None:
        self.gateway_url = gateway_url
        self.timeout = timeout

    def build_messages(
        self,
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        messages = []
        for token in tokens:
            if not is_expo_push_token(token):
                logger.warning("Skipping invalid push token %r", token)
                continue
            messages.append({
                "to": token,
                "sound": "default",
                "title": title,
                "body": body,
                "data": data or {},
            })
        return messages

    async def send(
        self,
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> int:
        messages = self.build_messages(tokens, title, body, data)
        if not messages:
            return 0

        accepted = 0
        transport = httpx.AsyncHTTPTransport(retries=1)
        async with httpx.AsyncClient(timeout=self.timeout, transport=transport) as client:
            for batch in chunk(messages, EXPO_BATCH_LIMIT):
                try:
                    resp = await client.post(
                        self.gateway_url,
                        json=batch,
                        headers={"Accept": "application/json"},
                    )
                    resp.raise_for_status()
                except httpx.HTTPError:
                    logger.exception(
                        "Failed to deliver push chunk of %d messages", len(batch)
                    )
                    continue
                accepted += len(batch)

        logger.info("Push sent: %d/%d messages accepted", accepted, len(messages))
        return accepted
