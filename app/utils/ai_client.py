"""
Thin wrappers around the OpenAI SDK.

Two clients are used: the OpenAI API itself (transaction parsing, Whisper
transcription, vision OCR) and an OpenAI-compatible gateway for the
narrative calls (insights, reports, voice commands, categorization).
"""
import base64
import binascii
import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from app.core.config import settings

logger = logging.getLogger(__name__)

MAX_COMPLETION_TOKENS = 500

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class AIServiceError(Exception):
    pass


def get_openai_client() -> OpenAI:
    if not settings.OPENAI_API_KEY:
        raise AIServiceError("OpenAI API key not configured")
    return OpenAI(api_key=settings.OPENAI_API_KEY)


def get_gateway_client() -> OpenAI:
    if not settings.AI_GATEWAY_API_KEY:
        raise AIServiceError("AI gateway API key is not configured")
    return OpenAI(api_key=settings.AI_GATEWAY_API_KEY, base_url=settings.AI_GATEWAY_BASE_URL)


def chat_completion(
    messages: List[Dict[str, Any]],
    client: Optional[OpenAI] = None,
    model: Optional[str] = None,
    json_mode: bool = False,
    max_tokens: Optional[int] = None,
) -> str:
    """Run a chat completion and return the first choice's text."""
    client = client or get_gateway_client()
    kwargs: Dict[str, Any] = {
        "model": model or settings.AI_GATEWAY_MODEL,
        "messages": messages,
    }
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}
    if max_tokens:
        kwargs["max_tokens"] = max_tokens

    try:
        response = client.chat.completions.create(**kwargs)
    except OpenAIError as e:
        logger.error(f"Chat completion failed: {e}")
        raise AIServiceError(f"AI API error: {e}") from e

    content = response.choices[0].message.content if response.choices else None
    if not content:
        raise AIServiceError("AI API returned an empty response")
    return content


def parse_json_content(content: str) -> Dict[str, Any]:
    """Parse a model reply as a JSON object, tolerating markdown code fences."""
    text = _FENCE_RE.sub("", content.strip())
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise AIServiceError(f"AI response is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise AIServiceError("AI response is not a JSON object")
    return parsed


def number_field(value: Any) -> float:
    """Numeric field from a model reply; missing or unparsable values count as 0."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def chat_json(
    messages: List[Dict[str, Any]],
    client: Optional[OpenAI] = None,
    model: Optional[str] = None,
    json_mode: bool = False,
    max_tokens: Optional[int] = None,
) -> Dict[str, Any]:
    content = chat_completion(messages, client=client, model=model, json_mode=json_mode, max_tokens=max_tokens)
    return parse_json_content(content)


def decode_data_url(data_url: str) -> bytes:
    """Decode 'data:<mime>;base64,<payload>' (or a bare base64 string)."""
    payload = data_url.split(",", 1)[1] if "," in data_url else data_url
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise AIServiceError(f"Invalid base64 audio payload: {e}") from e


def transcribe_audio(data_url: str, client: Optional[OpenAI] = None) -> str:
    client = client or get_openai_client()
    audio_bytes = decode_data_url(data_url)
    try:
        result = client.audio.transcriptions.create(
            model=settings.OPENAI_TRANSCRIPTION_MODEL,
            file=("audio.wav", audio_bytes, "audio/wav"),
            language=settings.ASSISTANT_LANGUAGE,
        )
    except OpenAIError as e:
        logger.error(f"Audio transcription failed: {e}")
        raise AIServiceError("Failed to transcribe audio") from e
    logger.info(f"Audio transcription: {result.text}")
    return result.text


def describe_image(image_url: str, client: Optional[OpenAI] = None) -> str:
    """Extract the financial details (amounts, merchant, date, items) from a receipt or slip."""
    client = client or get_openai_client()
    messages = [
        {
            "role": "system",
            "content": (
                "You extract financial information from images. Read the image and list every "
                "detail relevant to a financial transaction: amounts, products, merchant, dates. "
                f"Answer in the language '{settings.ASSISTANT_LANGUAGE}'."
            ),
        },
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "Extract all financial information from this image (receipt, invoice, slip)."},
                {"type": "image_url", "image_url": {"url": image_url}},
            ],
        },
    ]
    try:
        text = chat_completion(
            messages, client=client, model=settings.OPENAI_VISION_MODEL, max_tokens=MAX_COMPLETION_TOKENS
        )
    except AIServiceError as e:
        raise AIServiceError("Failed to analyze image") from e
    logger.info(f"Image analysis: {text}")
    return text
