"""Resend HTTP API sender."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from payroll_admin.notifications.base import DeliveryStatus, PayslipEmail, SendResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.resend.com"


def _error_text(e: Exception) -> str:
    if isinstance(e, httpx.HTTPStatusError):
        try:
            body = e.response.json()
        except ValueError:
            body = None
        detail = body.get("message") if isinstance(body, dict) else None
        return f"HTTP {e.response.status_code}: {detail or e.response.text}"
    return str(e) or type(e).__name__


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


class ResendEmailSender:
    """Sends through the Resend REST API.

    A client can be injected; otherwise one is opened per call.
    """

    name = "resend"

    def __init__(
        self,
        api_key: str,
        sender: str,
        reply_to: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.sender = sender
        self.reply_to = reply_to
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.timeout = timeout

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        url = f"{self.base_url}{path}"
        if self.client is not None:
            response = await self.client.request(method, url, headers=headers, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        response.raise_for_status()
        return response.json()

    async def send(self, email: PayslipEmail) -> SendResult:
        payload: dict[str, Any] = {
            "from": self.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
            "text": email.text,
        }
        if self.reply_to:
            payload["reply_to"] = self.reply_to

        try:
            data = await self._request("POST", "/emails", json=payload)
        except (httpx.HTTPError, ValueError) as e:
            error = _error_text(e)
            logger.error("Resend rejected email to %s: %s", email.to, error)
            return SendResult(ok=False, error=error)

        message_id = data.get("id")
        if not message_id:
            logger.warning("Resend accepted email to %s without an id: %s", email.to, data)
        return SendResult(ok=True, message_id=message_id)

    async def get_status(self, message_id: str) -> DeliveryStatus:
        try:
            data = await self._request("GET", f"/emails/{message_id}")
        except (httpx.HTTPError, ValueError) as e:
            return DeliveryStatus(message_id, error=_error_text(e))

        return DeliveryStatus(
            message_id,
            last_event=data.get("last_event"),
            created_at=_parse_timestamp(data.get("created_at")),
        )
