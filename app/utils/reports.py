from __future__ import annotations

import calendar
import json
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from app.core.config import settings
from app.db import dynamo
from app.models.ai import ReportRequest
from app.utils import ai_client
from app.utils.analyzer import FinanceAnalyzer
from app.utils.pdf_report import generate_and_upload_csv, generate_and_upload_pdf

logger = logging.getLogger(__name__)

BASE_PROMPT = """You are an expert financial analyst who writes detailed, actionable reports.

Structure your answer as markdown with these sections:

# Executive Summary
A short overview of the financial situation (2-3 paragraphs)

# Detailed Analysis
In-depth analysis of the numbers, trends and patterns found

# Highlights
- Positive points (with 💚)
- Points of attention (with ⚠️)
- Improvement opportunities (with 💡)

# Practical Recommendations
Numbered list of specific, practical actions

# Projections
Forecasts for the next period based on the current data

Use clear, empathetic and motivating language. Include specific numbers and relevant percentages.
Write in the language '{language}'."""

REPORT_FOCUS = {
    "monthly": "Full monthly analysis with a comparison over time.",
    "category": "In-depth analysis of spending in a specific category.",
    "family_member": "Spending and patterns of one specific family member.",
    "patrimony": "Evolution of net worth (assets vs liabilities).",
    "comparison": "Comparison between periods and trends over time.",
    "projection": "Future projections and financial planning.",
}


def system_prompt(report_type: str) -> str:
    prompt = BASE_PROMPT.format(language=settings.ASSISTANT_LANGUAGE)
    focus = REPORT_FOCUS.get(report_type)
    return f"{prompt}\n\nFocus: {focus}" if focus else prompt


def one_month_before(day: date) -> date:
    year, month = FinanceAnalyzer.previous_month(day.year, day.month)
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def resolve_period(request: ReportRequest, today: Optional[date] = None) -> Tuple[date, date]:
    if request.period:
        return request.period.start, request.period.end
    today = today or date.today()
    return one_month_before(today), today


def generate_visualizations(summary: Dict[str, Any]) -> Dict[str, Any]:
    financial = summary["financial"]
    income = financial["income"]
    return {
        "pie_chart": {
            "title": "Spending by category",
            "data": [
                {"name": c["name"], "value": c["amount"], "percentage": c["percentage"]}
                for c in summary["categories"]
            ],
        },
        "bar_chart": {
            "title": "Income vs expenses",
            "data": [
                {"name": "Income", "value": income, "color": "#10b981"},
                {"name": "Expenses", "value": financial["expenses"], "color": "#ef4444"},
            ],
        },
        "metrics": {
            "savings_rate": round(financial["balance"] / income * 100, 1) if income > 0 else 0.0,
            "daily_average": financial["daily_avg_expense"],
            "category_count": len(summary["categories"]),
            "transaction_count": financial["transaction_count"],
        },
    }


def generate_report(user_id: str, request: ReportRequest, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Build the period summary, have the gateway model write the narrative and
    optionally export PDF/CSV artifacts to S3.
    """
    start, end = resolve_period(request, today)
    logger.info(f"Generating {request.report_type} report for user {user_id} ({start} to {end})")

    transactions = dynamo.list_transactions(
        user_id,
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        category=request.category,
        family_member_id=request.family_member_id,
    )
    assets, liabilities = dynamo.get_patrimony(user_id)
    family_members = dynamo.list_family_members(user_id)

    analyzer = FinanceAnalyzer()
    summary = analyzer.period_summary(
        transactions,
        start,
        end,
        request.report_type,
        analyzer.calculate_net_worth(assets, liabilities),
        family_member_count=len(family_members),
    )

    content = ai_client.chat_completion([
        {"role": "system", "content": system_prompt(request.report_type)},
        {
            "role": "user",
            "content": f"Write a detailed report based on this data:\n\n{json.dumps(summary, indent=2)}",
        },
    ])
    logger.info("Report generated successfully")

    report = {
        "id": str(uuid4()),
        "type": request.report_type,
        "period": summary["period"],
        "generated_at": datetime.utcnow().isoformat(),
        "user_id": user_id,
        "data": summary,
        "content": content,
        "visualizations": generate_visualizations(summary),
    }

    if request.export_pdf:
        report["pdf_url"] = generate_and_upload_pdf(user_id, report)
        report["csv_url"] = generate_and_upload_csv(user_id, transactions, report["id"])

    return report
