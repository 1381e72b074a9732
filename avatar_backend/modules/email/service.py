"""Email notifications through the Resend REST API."""
import logging
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from avatar_backend.config import settings
from avatar_backend.modules.email import templates

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
REQUEST_TIMEOUT_SEC = 10.0


class EmailService:
    def __init__(self, api_key: Optional[str] = None, client: Optional[httpx.Client] = None):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.client = client
        self.enabled = bool(self.api_key)
        if not self.enabled:
            logger.info("Resend API key not configured, email notifications disabled")

    def send(self, to: List[str], subject: str, html: str) -> bool:
        """Send one email. Returns False instead of raising; callers treat email as best effort."""
        if not self.enabled:
            logger.info(f"Email '{subject}' to {to} skipped: service disabled")
            return False
        payload = {
            "from": settings.email_from,
            "to": to,
            "subject": subject,
            "html": html,
        }
        if settings.email_reply_to:
            payload["reply_to"] = settings.email_reply_to
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self.client is not None:
                response = self.client.post(RESEND_API_URL, json=payload, headers=headers)
            else:
                response = httpx.post(RESEND_API_URL, json=payload, headers=headers, timeout=REQUEST_TIMEOUT_SEC)
            response.raise_for_status()
            logger.info(f"Email '{subject}' sent to {to}")
            return True
        except httpx.HTTPError as e:
            logger.error(f"Error sending email '{subject}' to {to}: {e}")
            return False

    def send_new_registration_notice(self, full_name: str, email: str, referred_by: Optional[str] = None) -> bool:
        name = full_name or "Nowy użytkownik"
        registered_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        return self.send(
            [settings.admin_email],
            f"Nowa rejestracja: {name}",
            templates.new_registration_html(name, email, registered_at, referred_by),
        )

    def send_welcome_email(self, email: str, first_name: str) -> bool:
        return self.send(
            [email],
            f"Witamy w AVATAR, {first_name}!",
            templates.welcome_html(first_name, f"{settings.app_url}/dashboard"),
        )
