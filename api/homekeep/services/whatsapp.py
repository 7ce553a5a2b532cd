"""
WhatsApp push channel.

Talks to the whatsapp-bot Node.js service on the private Docker network.
Any failure surfaces as NotificationDeliveryFailed; the notification
scheduler catches it and falls back to the in-app toast inbox.
"""

import logging

import requests

from homekeep.core.config import settings
from homekeep.core.errors import NotificationDeliveryFailed

logger = logging.getLogger(__name__)


def format_reminder(title: str, body: str) -> str:
    return f"*{title}*\n{body}" if body else f"*{title}*"


def send_whatsapp(to: str, message: str) -> None:
    """Send `message` to `to` (E.164, e.g. +12223334444) or raise NotificationDeliveryFailed."""
    try:
        resp = requests.post(
            f"{settings.whatsapp_bot_url}/send",
            json={"to": to, "message": message},
            timeout=10,
        )
    except requests.RequestException as exc:
        raise NotificationDeliveryFailed(f"WhatsApp bot unreachable: {exc}") from exc

    if resp.status_code != 200:
        raise NotificationDeliveryFailed(
            f"WhatsApp /send returned {resp.status_code}: {resp.text[:200]}"
        )


class WhatsAppChannel:
    """Push channel bound to one recipient phone number."""

    name = "whatsapp"

    def __init__(self, phone: str | None):
        self.phone = phone

    @property
    def permitted(self) -> bool:
        return settings.whatsapp_enabled and bool(self.phone)

    def send(self, title: str, body: str) -> None:
        if not self.permitted:
            raise NotificationDeliveryFailed("WhatsApp delivery not permitted for this user")
        send_whatsapp(self.phone, format_reminder(title, body))
        logger.debug("WhatsApp reminder sent to %s: %s", self.phone, title)
