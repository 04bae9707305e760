import logging
from typing import Optional

import httpx

from core.config import settings
from core.error_reporting import log_info

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


class EmailDeliveryError(Exception):
    pass


class EmailClient:
    """Transactional email through the Brevo HTTP API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        sender_email: Optional[str] = None,
        sender_name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.brevo_api_key if api_key is None else api_key
        self.sender_email = sender_email or settings.brevo_sender_email
        self.sender_name = sender_name or settings.brevo_sender_name
        self._transport = transport

    async def send(self, to: str, subject: str, html_content: str) -> bool:
        """Send one email. Returns False when no API key is configured."""
        if not self.api_key:
            log_info("BREVO_API_KEY is missing, skipping email.")
            return False

        payload = {
            "sender": {"name": self.sender_name, "email": self.sender_email},
            "to": [{"email": to}],
            "subject": subject,
            "htmlContent": html_content,
        }
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(
                BREVO_SEND_URL,
                json=payload,
                headers={"api-key": self.api_key, "content-type": "application/json"},
            )
        if response.status_code >= 400:
            raise EmailDeliveryError(f"Failed to send email: {response.status_code} {response.text}")
        logger.info("Email sent to %s", to)
        return True


def get_email_client() -> EmailClient:
    return EmailClient()
