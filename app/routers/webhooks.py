"""
WhatsApp Webhook Router
Verification handshake and incoming messages from the WhatsApp Cloud API.
Every processed POST answers 200 so the platform does not redeliver it.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Query
from fastapi.responses import PlainTextResponse

from app.core.config import settings
from app.db import dynamo
from app.utils import whatsapp_service
from app.utils.ai_processor import process_transaction_message
from app.utils.subscription import validate_access

router = APIRouter()
logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I could not process your message."


def _registration_message() -> str:
    return (
        "👋 Hi! To use the financial assistant on WhatsApp you first need to sign up "
        "in our app and link your phone number.\n\n"
        f"Visit: {settings.APP_URL}"
    )


UPGRADE_MESSAGE = (
    "🔒 The WhatsApp financial assistant is available to Premium/Family subscribers only.\n\n"
    "Upgrade in our app!"
)


def extract_message(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        return payload["entry"][0]["changes"][0]["value"]["messages"][0]
    except (KeyError, IndexError, TypeError):
        return None


@router.get("/whatsapp")
def verify_webhook(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    if mode == "subscribe" and settings.WHATSAPP_WEBHOOK_TOKEN and token == settings.WHATSAPP_WEBHOOK_TOKEN:
        logger.info("WhatsApp webhook verified")
        return PlainTextResponse(challenge or "")
    return PlainTextResponse("Verification failed", status_code=403)


@router.post("/whatsapp")
def receive_message(payload: Dict[str, Any] = Body(...)):
    message = extract_message(payload)
    if not message:
        return PlainTextResponse("No message data")

    from_number = message.get("from", "")
    message_type = message.get("type")
    logger.info(f"Processing WhatsApp message from {from_number} (type: {message_type})")

    profile = dynamo.get_user_by_phone(from_number)
    if not profile:
        whatsapp_service.send_whatsapp_message(from_number, _registration_message())
        return PlainTextResponse("User not found")

    user_id = profile["user_id"]
    if not validate_access(dynamo.get_subscription(user_id), "premium").allowed:
        whatsapp_service.send_whatsapp_message(from_number, UPGRADE_MESSAGE)
        return PlainTextResponse("Access denied")

    input_content = (message.get("text") or {}).get("body", "")
    input_type = "text"
    if message_type == "image":
        image_id = (message.get("image") or {}).get("id")
        image_url = whatsapp_service.get_media_url(image_id) if image_id else None
        if image_url:
            input_content = image_url
            input_type = "image"

    try:
        result = process_transaction_message(user_id, input_content, input_type=input_type, source="whatsapp")
    except Exception as e:
        logger.error(f"Error processing WhatsApp message: {e}", exc_info=True)
        result = {}

    reply = result.get("response") or FALLBACK_REPLY
    if result.get("transaction_created"):
        label = "Income" if result.get("type") == "income" else "Expense"
        reply += f"\n\n💰 {label} of {float(result.get('amount', 0)):.2f} recorded!"

    whatsapp_service.send_whatsapp_message(from_number, reply)
    return PlainTextResponse("Message processed")
