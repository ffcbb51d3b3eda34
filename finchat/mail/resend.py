"""Resend transactional email API transport."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from finchat.mail.base import EmailMessage, MailTransport, TransportResult

LOGGER = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"


class ResendTransport(MailTransport):
    name = "resend"

    def __init__(
        self,
        api_key: str,
        from_address: str,
        from_name: str,
        timeout_seconds: float = 15.0,
    ) -> None:
        self._api_key = api_key
        self._from_address = from_address
        self._from_name = from_name
        self._timeout_seconds = timeout_seconds

    async def send(self, message: EmailMessage) -> TransportResult:
        if not self._api_key:
            LOGGER.error("[Email] Resend failed: RESEND_API_KEY not configured")
            return TransportResult(success=False, error="RESEND_API_KEY not configured")

        payload: dict[str, Any] = {
            "from": f"{self._from_name} <{self._from_address}>",
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
            "headers": {
                "X-Mailer": "Waiveer Platform via Resend",
                "Reply-To": self._from_address,
            },
        }
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    RESEND_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=payload,
                    timeout=self._timeout_seconds,
                )
        except httpx.HTTPError as exc:
            LOGGER.error("[Email] Resend failed: %s", exc)
            return TransportResult(success=False, error=str(exc) or "Unknown Resend error")

        try:
            data = resp.json()
        except ValueError:
            # Gateway errors often come back as HTML.
            data = None

        if resp.status_code >= 400:
            error = _error_message(data) or f"HTTP {resp.status_code}"
            LOGGER.error("[Email] Resend failed: %s", error)
            return TransportResult(success=False, error=error)

        message_id = data.get("id") if isinstance(data, dict) else None
        LOGGER.info("[Email] Resend message sent successfully: %s", message_id)
        return TransportResult(success=True, message_id=message_id)


def _error_message(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        return error.get("message")
    return data.get("message") or (str(error) if error else None)
