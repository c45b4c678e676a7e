"""
Natural-language transaction entry.

Text, voice notes and receipt photos are turned into text, handed to the
chat model together with the user's categories and recent conversation,
and high-confidence transactions are saved straight away.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from app.core.config import settings
from app.db import dynamo
from app.models.category import DEFAULT_CATEGORIES
from app.models.transaction import TransactionInDB
from app.utils import ai_client

logger = logging.getLogger(__name__)

AUTO_CREATE_CONFIDENCE = 0.8
HISTORY_LIMIT = 10

ERROR_RESPONSE = (
    "Sorry, something went wrong while processing your message. "
    "Please try again or use the manual form."
)

SYSTEM_PROMPT = """You are a financial assistant that records transactions.

YOUR JOB:
1. Read messages about financial transactions
2. Extract structured data (type, amount, category, description, date)
3. Answer in a friendly way and confirm what you understood
4. Suggest a transaction when there is enough information
5. Use the conversation so far to understand follow-up messages

AVAILABLE CATEGORIES: {categories}

EXAMPLES:
"Spent 45 on Uber" -> expense 45.00, category Transporte
"Got my 3000 salary" -> income 3000.00, category Salário
"Lunch 35" -> expense 35.00, category Alimentação

When you identify a valid transaction, ALWAYS answer with this JSON:
{{
  "has_transaction": true,
  "transaction": {{
    "type": "income" or "expense",
    "description": "clear description",
    "amount": numeric_value,
    "category": "identified_category",
    "date": "YYYY-MM-DD or null",
    "confidence": 0.0_to_1.0
  }},
  "response": "friendly message for the user"
}}

When there is no transaction, answer:
{{
  "has_transaction": false,
  "response": "ask for clarification or greet the user"
}}

Write the "response" text in the language '{language}'."""


def category_list(categories: List[Dict[str, Any]]) -> str:
    if not categories:
        return ", ".join(c["name"] for c in DEFAULT_CATEGORIES)
    return ", ".join(f"{c.get('name')} ({c.get('type')})" for c in categories)


def build_messages(
    text: str,
    categories: List[Dict[str, Any]],
    history: List[Dict[str, str]],
) -> List[Dict[str, Any]]:
    system = SYSTEM_PROMPT.format(categories=category_list(categories), language=settings.ASSISTANT_LANGUAGE)
    messages = [{"role": "system", "content": system}]
    messages.extend({"role": m["role"], "content": m["content"]} for m in history[-HISTORY_LIMIT:])
    messages.append({"role": "user", "content": text})
    return messages


def create_transaction(user_id: str, data: Dict[str, Any], source: str) -> Optional[Dict[str, Any]]:
    """Validate and store a transaction extracted by the assistant; None when it cannot be saved."""
    try:
        tx = TransactionInDB(
            user_id=user_id,
            type=data.get("type"),
            description=data.get("description") or "Transaction",
            amount=data.get("amount"),
            category=data.get("category"),
            date=data.get("date") or date.today(),
            metadata={"source": source},
        )
    except ValidationError as e:
        logger.error(f"Invalid transaction from assistant: {e}")
        return None

    item = tx.model_dump(mode="json")
    if not dynamo.put_transaction(item):
        return None
    return item


def process_transaction_message(
    user_id: str,
    input_text: str,
    input_type: str = "text",
    conversation_history: Optional[List[Dict[str, str]]] = None,
    confirm_suggestion: bool = False,
    suggestion: Optional[Dict[str, Any]] = None,
    source: str = "ai_chat",
) -> Dict[str, Any]:
    """
    Returns the response payload for one assistant turn. Model and storage
    failures propagate; callers turn them into an error envelope.
    """
    logger.info(
        f"AI transaction request: user={user_id} type={input_type} "
        f"confirm={confirm_suggestion} history={len(conversation_history or [])}"
    )

    if confirm_suggestion and suggestion:
        created = create_transaction(user_id, suggestion, source)
        if created is None:
            raise RuntimeError("Failed to save the confirmed transaction")
        return {
            "success": True,
            "transaction_id": created["id"],
            "response": "✅ Transaction confirmed and saved!",
        }

    text = input_text
    if input_type == "audio":
        text = ai_client.transcribe_audio(input_text)
    elif input_type == "image":
        text = ai_client.describe_image(input_text)

    categories = dynamo.list_categories(user_id)
    messages = build_messages(text, categories, conversation_history or [])
    parsed = ai_client.chat_json(
        messages,
        client=ai_client.get_openai_client(),
        model=settings.OPENAI_CHAT_MODEL,
        json_mode=True,
        max_tokens=ai_client.MAX_COMPLETION_TOKENS,
    )
    logger.info(f"AI response: {parsed}")

    reply = parsed.get("response", "")
    transaction = parsed.get("transaction")

    if not parsed.get("has_transaction") or not isinstance(transaction, dict) or not transaction:
        return {"success": True, "response": reply}

    confidence = ai_client.number_field(transaction.get("confidence"))
    amount = ai_client.number_field(transaction.get("amount"))
    if confidence > AUTO_CREATE_CONFIDENCE and amount > 0:
        created = create_transaction(user_id, transaction, source)
        if created is None:
            return {
                "success": True,
                "response": f"{reply}\n\n⚠️ The transaction could not be saved. "
                            "Try again or use the manual form.",
                "suggestion": transaction,
            }
        return {
            "success": True,
            "response": f"✅ {reply}\n\nTransaction recorded automatically!",
            "transaction_created": True,
            "transaction_id": created["id"],
            "type": created["type"],
            "amount": created["amount"],
            "category": created.get("category"),
        }

    return {"success": True, "response": reply, "suggestion": transaction}
