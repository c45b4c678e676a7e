import json
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.db import dynamo
from app.utils import ai_client
from app.utils.analyzer import FinanceAnalyzer

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 90
INSIGHT_COUNT = 4

SYSTEM_PROMPT = """You are a smart financial assistant. Analyze the financial data and produce practical, personalized insights.

Return exactly {count} insights in this JSON format:
{{
  "insights": [
    {{
      "type": "alert|success|warning|info",
      "title": "Short, direct title",
      "message": "Clear, actionable message",
      "action": "Suggested action (optional)",
      "priority": "high|medium|low"
    }}
  ]
}}

Insight kinds to consider:
- Spending above the usual level
- Positive saving patterns
- Optimization suggestions
- Month over month comparisons
- Category analysis
- Trend-based forecasts

Quote the real numbers and percentages from the data. Write in the language '{language}'."""


def fallback_insights(transaction_count: int) -> List[Dict[str, Any]]:
    return [
        {
            "type": "info",
            "title": "Data analyzed",
            "message": f"We analyzed {transaction_count} transactions this month.",
            "priority": "medium",
        }
    ]


def build_summary(user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or date.today()
    since = (today - timedelta(days=LOOKBACK_DAYS)).isoformat()
    transactions = dynamo.list_transactions(user_id, start_date=since)
    assets, liabilities = dynamo.get_patrimony(user_id)

    analyzer = FinanceAnalyzer()
    net_worth = analyzer.calculate_net_worth(assets, liabilities)
    return analyzer.dashboard_summary(transactions, net_worth, today)


def generate_insights(user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Summarize the last three months and ask the gateway model for insights.
    Transport errors raise AIServiceError; an unparsable reply falls back
    to a single informational insight.
    """
    summary = build_summary(user_id, today)
    logger.info(f"Insights summary prepared for user {user_id}")

    messages = [
        {
            "role": "system",
            "content": SYSTEM_PROMPT.format(count=INSIGHT_COUNT, language=settings.ASSISTANT_LANGUAGE),
        },
        {
            "role": "user",
            "content": (
                f"Analyze this financial data and produce {INSIGHT_COUNT} relevant insights:\n\n"
                f"{json.dumps(summary, indent=2)}"
            ),
        },
    ]
    content = ai_client.chat_completion(messages)

    try:
        insights = ai_client.parse_json_content(content).get("insights")
    except ai_client.AIServiceError as e:
        logger.error(f"Failed to parse insights: {e}")
        insights = None
    if not isinstance(insights, list):
        insights = fallback_insights(summary["current_month"]["transaction_count"])

    return {"insights": insights, "summary": summary}
