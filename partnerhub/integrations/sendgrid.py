"""SendGrid email integration client.

Uses real SendGrid API when a valid key is configured, otherwise
falls back to logging-only mock mode.
"""

from __future__ import annotations

import base64
import uuid
from datetime import datetime, timezone
from typing import Any

import httpx

from partnerhub.config import settings
from partnerhub.integrations.base import BaseIntegration


def _is_mock() -> bool:
    return settings.SENDGRID_API_KEY.startswith("mock_")


def build_attachment(content: bytes, filename: str, mime_type: str) -> dict[str, str]:
    return {
        "content": base64.b64encode(content).decode("ascii"),
        "filename": filename,
        "type": mime_type,
        "disposition": "attachment",
    }


class EmailClient(BaseIntegration):
    """Email client with real SendGrid API and mock fallback."""

    SENDGRID_URL = "https://api.sendgrid.com/v3"

    def __init__(self) -> None:
        super().__init__("sendgrid")

    async def health_check(self) -> bool:
        if _is_mock():
            self.logger.info("SendGrid health check: OK (mock)")
            return True
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.get(
                    f"{self.SENDGRID_URL}/scopes",
                    headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
                )
                return resp.status_code == 200
        except httpx.HTTPError as e:
            self.logger.error("SendGrid health check failed: %s", e)
            return False

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        attachments: list[dict[str, str]] | None = None,
        from_email: str | None = None,
    ) -> dict[str, Any]:
        sender = from_email or settings.FROM_EMAIL
        message_id = str(uuid.uuid4())
        timestamp = datetime.now(timezone.utc).isoformat()

        if not _is_mock():
            self.logger.info("Sending email to=%s subject='%s'", to, subject)
            content = [{"type": "text/html", "value": html_body}]
            if text_body:
                content.insert(0, {"type": "text/plain", "value": text_body})
            payload: dict[str, Any] = {
                "personalizations": [{"to": [{"email": to}]}],
                "from": {"email": sender},
                "subject": subject,
                "content": content,
            }
            if attachments:
                payload["attachments"] = attachments
            try:
                async with httpx.AsyncClient(timeout=30) as client:
                    resp = await client.post(
                        f"{self.SENDGRID_URL}/mail/send",
                        headers={
                            "Authorization": f"Bearer {settings.SENDGRID_API_KEY}",
                            "Content-Type": "application/json",
                        },
                        json=payload,
                    )
                    resp.raise_for_status()
                    sg_id = resp.headers.get("X-Message-Id", message_id)
                    self.logger.info("Email sent via SendGrid: %s", sg_id)
                    return {"status": "sent", "message_id": sg_id, "to": to, "timestamp": timestamp}
            except httpx.HTTPError as e:
                self.logger.error("SendGrid email to %s failed: %s", to, e)
                return {"status": "failed", "error": str(e), "to": to}

        self.logger.info(
            "Mock email | from=%s | to=%s | subject='%s' | attachments=%d",
            sender,
            to,
            subject,
            len(attachments or []),
        )
        return {"status": "sent", "message_id": message_id, "to": to, "timestamp": timestamp}
