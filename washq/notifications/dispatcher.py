"""
Outbound customer messaging.

The core only depends on the NotificationDispatcher protocol. WhatsAppDispatcher
talks to a WhatsApp Business API endpoint; LoggingDispatcher stands in for it
when no endpoint is configured.
"""

import logging
import time
from typing import Protocol
from uuid import UUID

import httpx

from washq.config import get_settings
from washq.types.job import DispatchResult

logger = logging.getLogger(__name__)


class NotificationDispatcher(Protocol):
    async def send(
        self,
        recipient: str,
        message: str,
        template_id: UUID | None = None,
    ) -> DispatchResult: ...


class LoggingDispatcher:
    """Logs messages instead of sending them."""

    async def send(
        self,
        recipient: str,
        message: str,
        template_id: UUID | None = None,
    ) -> DispatchResult:
        logger.info(
            "WhatsApp message (not sent, no API configured)",
            extra={
                "recipient": recipient,
                "template_id": str(template_id) if template_id else None,
                "body": message,
            },
        )
        return DispatchResult(success=True, message_id=f"msg_{time.time_ns() // 1_000_000}")


class WhatsAppDispatcher:
    """
    Sends messages through a WhatsApp Business API compatible HTTP endpoint.

    Transport and API errors are reported in the DispatchResult rather than
    raised.
    """

    def __init__(
        self,
        api_url: str,
        api_token: str | None = None,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._api_url = api_url.rstrip("/")
        self._api_token = api_token
        self._timeout = timeout_seconds
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Bearer {self._api_token}"
        return headers

    async def send(
        self,
        recipient: str,
        message: str,
        template_id: UUID | None = None,
    ) -> DispatchResult:
        payload = {
            "to": recipient,
            "message": message,
            "templateId": str(template_id) if template_id else None,
        }
        try:
            if self._client is not None:
                response = await self._client.post(
                    f"{self._api_url}/messages",
                    json=payload,
                    headers=self._headers(),
                    timeout=self._timeout,
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        f"{self._api_url}/messages",
                        json=payload,
                        headers=self._headers(),
                    )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "WhatsApp send failed",
                extra={"recipient": recipient, "error": str(e)},
            )
            return DispatchResult(success=False, error=str(e))

        message_id = None
        if response.content:
            try:
                message_id = response.json().get("messageId")
            except ValueError:
                message_id = None
        return DispatchResult(success=True, message_id=message_id)


def get_dispatcher() -> NotificationDispatcher:
    """Build the dispatcher configured for this process."""
    settings = get_settings()
    if settings.whatsapp_api_url:
        return WhatsAppDispatcher(
            api_url=settings.whatsapp_api_url,
            api_token=settings.whatsapp_api_token,
            timeout_seconds=settings.whatsapp_timeout_seconds,
        )
    return LoggingDispatcher()
