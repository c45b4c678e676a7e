import logging
from datetime import date
from typing import Any, Dict, Optional

from app.core.config import settings
from app.db import dynamo
from app.utils import ai_client
from app.utils.ai_processor import create_transaction
from app.utils.analyzer import FinanceAnalyzer

logger = logging.getLogger(__name__)

ACTIONS = ("navigate", "create_transaction", "show_info", "search", "error")
CONTEXT_TRANSACTIONS = 10

SYSTEM_PROMPT = """You are a financial assistant that handles voice commands.

User context:
- Current page: {current_page}
- Net worth: {net_worth:.2f}
- Recent transactions: {recent_count}

Analyze the command and return ONLY valid JSON in this format:
{{
  "action": "navigate|create_transaction|show_info|search|error",
  "target": "destination page or null",
  "params": {{
    "type": "income or expense",
    "amount": number,
    "description": "string",
    "category": "string",
    "info": "text answer"
  }},
  "response": "answer for the user"
}}

Examples:
- "go to transactions" -> action "navigate", target "/transacoes"
- "add income of 5000" -> action "create_transaction", params {{"type": "income", "amount": 5000}}
- "how much did I spend" -> action "show_info"
- "show my assets" -> action "navigate", target "/patrimonio"
- "create a report" -> action "navigate", target "/relatorios"
- "see family" -> action "navigate", target "/familia"

Write "response" in the language '{language}'."""


class VoiceCommandError(ValueError):
    pass


def _money(value: float) -> str:
    return f"{value:,.2f}"


def route_voice_command(user_id: str, command: str, current_page: Optional[str] = None,
                        today: Optional[date] = None) -> Dict[str, Any]:
    if not command or not command.strip():
        raise VoiceCommandError("No command provided")

    today = today or date.today()
    logger.info(f"Processing voice command: {command!r} (page: {current_page})")

    analyzer = FinanceAnalyzer()
    recent = dynamo.list_transactions(user_id, limit=CONTEXT_TRANSACTIONS)
    assets, liabilities = dynamo.get_patrimony(user_id)
    net_worth = analyzer.calculate_net_worth(assets, liabilities)["net_worth"]

    messages = [
        {
            "role": "system",
            "content": SYSTEM_PROMPT.format(
                current_page=current_page or "/",
                net_worth=net_worth,
                recent_count=len(recent),
                language=settings.ASSISTANT_LANGUAGE,
            ),
        },
        {"role": "user", "content": command},
    ]
    content = ai_client.chat_completion(messages)

    try:
        result = ai_client.parse_json_content(content)
    except ai_client.AIServiceError as e:
        logger.error(f"Failed to parse voice command response: {e}")
        return {"action": "error", "response": "Sorry, I could not understand the command."}

    if result.get("action") not in ACTIONS:
        result["action"] = "error"

    params = result.get("params") or {}

    if result["action"] == "create_transaction" and params.get("type") and params.get("amount"):
        created = create_transaction(
            user_id,
            {
                "type": params["type"],
                "amount": params["amount"],
                "description": params.get("description") or "Voice transaction",
                "category": params.get("category"),
                "date": today.isoformat(),
            },
            source="voice",
        )
        if created is None:
            result["response"] = "Could not create the transaction."
        else:
            label = "Income" if created["type"] == "income" else "Expense"
            result["response"] = f"✅ Transaction created: {label} of {_money(created['amount'])}"

    if result["action"] == "show_info":
        month = analyzer.in_month(
            dynamo.list_transactions(user_id, start_date=today.replace(day=1).isoformat()),
            today.year,
            today.month,
        )
        totals = analyzer.totals(month)
        result["params"] = {
            **params,
            "income": totals["income"],
            "expenses": totals["expenses"],
            "balance": totals["balance"],
            "net_worth": net_worth,
        }
        result["response"] = (
            "📊 Financial summary:\n\n"
            f"💰 Income: {_money(totals['income'])}\n"
            f"💸 Expenses: {_money(totals['expenses'])}\n"
            f"📈 Balance: {_money(totals['balance'])}\n"
            f"🏆 Net worth: {_money(net_worth)}"
        )

    return result
