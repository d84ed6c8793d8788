"""Posts messages to Slack ``response_url`` webhooks."""
from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

logger = logging.getLogger(__name__)


class SlackNotifier:
    """Fire-and-forget poster for slash-command delayed responses.

    Delivery failures are logged and reported as ``False``; they never raise.
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    async def send_response(self, payload: Mapping[str, Any], response_url: str) -> bool:
        """POST ``payload`` as JSON to ``response_url``."""

        if not response_url:
            logger.error("Cannot send Slack response: response_url is missing")
            return False

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(response_url, json=dict(payload))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Sending Slack response to %s failed: %s", response_url, exc)
            return False

        if response.status_code >= 400:
            logger.error(
                "Slack rejected response (%s): %s",
                response.status_code,
                response.text,
            )
            return False

        logger.debug("Slack response delivered to %s", response_url)
        return True
