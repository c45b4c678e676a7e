"""
WhatsApp Cloud API client
Sends text replies and resolves media ids through the Graph API
"""
import logging
from typing import Optional

import requests

from app.core.config import settings

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15


def send_whatsapp_message(to: str, text: str) -> bool:
    """
    Send a text message to a WhatsApp number.
    Failures are logged and reported as False, never raised.
    """
    if not settings.WHATSAPP_ACCESS_TOKEN or not settings.WHATSAPP_PHONE_NUMBER_ID:
        logger.error("WhatsApp credentials not configured")
        return False

    message = {
        "messaging_product": "whatsapp",
        "to": to,
        "type": "text",
        "text": {"body": text},
    }
    try:
        response = requests.post(
            f"{settings.WHATSAPP_GRAPH_URL}/{settings.WHATSAPP_PHONE_NUMBER_ID}/messages",
            headers={"Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}"},
            json=message,
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"Error sending WhatsApp message: {e}")
        return False

    if not response.ok:
        logger.error(f"WhatsApp send error ({response.status_code}): {response.text}")
        return False

    logger.info(f"WhatsApp message sent to {to}")
    return True


def get_media_url(media_id: str) -> Optional[str]:
    """Resolve a media id from an incoming message to a downloadable URL."""
    if not settings.WHATSAPP_ACCESS_TOKEN:
        return None

    try:
        response = requests.get(
            f"{settings.WHATSAPP_GRAPH_URL}/{media_id}",
            headers={"Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}"},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error(f"Error getting WhatsApp media URL: {e}")
        return None

    if not response.ok:
        logger.error(f"WhatsApp media lookup failed ({response.status_code}): {response.text}")
        return None
    return response.json().get("url")
