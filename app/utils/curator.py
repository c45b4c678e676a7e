"""
Data curation over a user's recent transactions.

Three kinds of suggestions are produced: a category for uncategorized rows
(from learned patterns, else from the AI gateway), duplicate flags, and
recurrence tags. Each suggestion carries a confidence score that decides
whether it is applied directly, queued for the user to review, or dropped.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.db import dynamo
from app.models.suggestion import TransactionSuggestionRecord
from app.utils import ai_client

logger = logging.getLogger(__name__)

CURATION_FETCH_LIMIT = 100

AUTO_APPLY_THRESHOLD = 0.90
REVIEW_THRESHOLD = 0.70

DUPLICATE_CONFIDENCE = 0.85
RECURRING_CONFIDENCE = 0.90

DUPLICATE_WINDOW = timedelta(days=3)
RECURRENCE_TOLERANCE = timedelta(days=5)
MIN_RECURRING_OCCURRENCES = 3
RECURRENCE_PERIODS = {"weekly": 7, "biweekly": 14, "monthly": 30}

CategorySuggester = Callable[[str, List[Dict[str, Any]]], Optional[Dict[str, Any]]]


def normalize_description(description: Optional[str]) -> str:
    return (description or "").lower().strip()


def _tx_datetime(tx: Dict[str, Any]) -> datetime:
    value = str(tx.get("date", ""))
    if len(value) == 10:
        return datetime.fromisoformat(value)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def is_duplicate_pair(a: Dict[str, Any], b: Dict[str, Any]) -> bool:
    return (
        abs(float(a.get("amount", 0)) - float(b.get("amount", 0))) < 0.01
        and a.get("type") == b.get("type")
        and normalize_description(a.get("description")) == normalize_description(b.get("description"))
        and abs(_tx_datetime(a) - _tx_datetime(b)) < DUPLICATE_WINDOW
    )


def detect_duplicates(transactions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Flag each transaction that repeats an older (or same-day) one.

    Rows are walked newest first; a row is compared with the following rows
    until they fall outside the window, and is flagged at most once against
    its nearest match.
    """
    ordered = sorted(transactions, key=_tx_datetime, reverse=True)
    suggestions = []
    for i, newer in enumerate(ordered):
        for older in ordered[i + 1:]:
            if _tx_datetime(newer) - _tx_datetime(older) >= DUPLICATE_WINDOW:
                break
            if is_duplicate_pair(newer, older):
                suggestions.append({
                    "transaction_id": newer["id"],
                    "suggestion_type": "duplicate",
                    "original_value": None,
                    "suggested_value": {
                        "duplicate_of": older["id"],
                        "reason": "Same description and amount on a close date",
                    },
                    "confidence_score": DUPLICATE_CONFIDENCE,
                })
                break
    return suggestions


def classify_interval(interval_days: float) -> str:
    """Nearest of weekly / biweekly / monthly; ties go to the shorter period."""
    return min(
        RECURRENCE_PERIODS,
        key=lambda name: (abs(interval_days - RECURRENCE_PERIODS[name]), RECURRENCE_PERIODS[name]),
    )


def detect_recurring(transactions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Tag groups of 3+ transactions sharing description, amount and type whose
    gaps stay within the tolerance of their mean gap. The suggestion targets
    the most recent row of the group.
    """
    groups: Dict[Tuple[str, float, Any], List[Dict[str, Any]]] = defaultdict(list)
    for tx in transactions:
        key = (normalize_description(tx.get("description")), round(float(tx.get("amount", 0)), 2), tx.get("type"))
        groups[key].append(tx)

    suggestions = []
    for group in groups.values():
        if len(group) < MIN_RECURRING_OCCURRENCES:
            continue

        group = sorted(group, key=_tx_datetime)
        intervals = [
            _tx_datetime(group[i]) - _tx_datetime(group[i - 1]) for i in range(1, len(group))
        ]
        avg_interval = sum(intervals, timedelta()) / len(intervals)
        if not all(abs(interval - avg_interval) < RECURRENCE_TOLERANCE for interval in intervals):
            continue

        avg_days = avg_interval.total_seconds() / 86400
        interval_days = round(avg_days)
        if interval_days < 1:
            continue

        latest = group[-1]
        if latest.get("is_recurring"):
            continue

        suggestions.append({
            "transaction_id": latest["id"],
            "suggestion_type": "recurring",
            "original_value": None,
            "suggested_value": {
                "pattern": classify_interval(avg_days),
                "interval_days": interval_days,
                "occurrences": len(group),
            },
            "confidence_score": RECURRING_CONFIDENCE,
        })
    return suggestions


def match_pattern(description: Optional[str], patterns: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    text = normalize_description(description)
    if not text:
        return None
    for pattern in patterns:
        key = normalize_description(pattern.get("pattern_key"))
        if pattern.get("pattern_type") == "category" and key and key in text:
            return pattern
    return None


def suggest_category_with_ai(description: str, categories: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Ask the gateway for {category, confidence, reason}; None when the call or parse fails."""
    category_lines = "\n".join(
        f"- {c.get('name')} ({c.get('type')}): {c.get('emoji') or ''}".rstrip() for c in categories
    )
    messages = [
        {
            "role": "system",
            "content": (
                "You are a financial categorization assistant.\n\n"
                f"Available categories:\n{category_lines}\n\n"
                "Read the transaction description and pick the most appropriate category.\n"
                "Return ONLY valid JSON:\n"
                '{"category": "category_name", "confidence": 0.85, "reason": "why"}'
            ),
        },
        {"role": "user", "content": f"Description: {description}"},
    ]
    try:
        result = ai_client.chat_json(messages)
    except ai_client.AIServiceError as e:
        logger.error(f"AI categorization error: {e}")
        return None
    if not result.get("category"):
        return None
    return result


def category_suggestions(
    transactions: List[Dict[str, Any]],
    patterns: List[Dict[str, Any]],
    categories: List[Dict[str, Any]],
    suggester: Optional[CategorySuggester] = None,
) -> List[Dict[str, Any]]:
    suggester = suggester or suggest_category_with_ai
    suggestions = []
    for tx in transactions:
        if tx.get("category"):
            continue

        pattern = match_pattern(tx.get("description"), patterns)
        if pattern:
            value = pattern.get("pattern_value")
            if not isinstance(value, dict):
                value = {"category": value}
            confidence = ai_client.number_field(pattern.get("confidence_score"))
        else:
            value = suggester(tx.get("description") or "", categories)
            if not value:
                continue
            confidence = ai_client.number_field(value.get("confidence"))

        suggestions.append({
            "transaction_id": tx["id"],
            "suggestion_type": "category",
            "original_value": tx.get("category"),
            "suggested_value": value,
            "confidence_score": confidence,
        })
    return suggestions


def route_suggestion(confidence: float) -> str:
    """'apply' at or above 0.90, 'review' from 0.70, otherwise 'discard'."""
    if confidence >= AUTO_APPLY_THRESHOLD:
        return "apply"
    if confidence >= REVIEW_THRESHOLD:
        return "review"
    return "discard"


def partition_suggestions(suggestions: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    to_apply, to_review = [], []
    for suggestion in suggestions:
        route = route_suggestion(suggestion["confidence_score"])
        if route == "apply":
            to_apply.append(suggestion)
        elif route == "review":
            to_review.append(suggestion)
    return to_apply, to_review


def apply_suggestion(user_id: str, suggestion: Dict[str, Any], description: Optional[str] = None) -> bool:
    """
    Write a suggestion through to its transaction. Category suggestions
    also teach a pattern keyed on the transaction's description.
    """
    transaction_id = suggestion["transaction_id"]
    value = suggestion.get("suggested_value") or {}
    now = datetime.utcnow().isoformat()
    suggestion_type = suggestion["suggestion_type"]

    if suggestion_type == "category":
        updated = dynamo.update_transaction(
            user_id,
            transaction_id,
            {"category": value.get("category"), "auto_categorized": True, "updated_at": now},
        )
        if updated is None:
            return False
        pattern_key = description if description is not None else updated.get("description", "")
        if pattern_key:
            dynamo.upsert_pattern(user_id, "category", pattern_key, value, suggestion["confidence_score"])
        return True

    if suggestion_type == "recurring":
        updated = dynamo.update_transaction(
            user_id,
            transaction_id,
            {
                "is_recurring": True,
                "recurrence_pattern": value.get("pattern"),
                "metadata": value,
                "updated_at": now,
            },
        )
        return updated is not None

    if suggestion_type == "duplicate":
        return dynamo.delete_transaction(user_id, transaction_id)

    logger.warning(f"Unknown suggestion type: {suggestion_type}")
    return False


def curate_user(user_id: str, suggester: Optional[CategorySuggester] = None) -> Dict[str, Any]:
    """
    Run every detector over the user's most recent transactions, apply the
    high-confidence results and queue the medium-confidence ones.
    """
    logger.info(f"Starting data curation for user: {user_id}")

    transactions = dynamo.list_transactions(user_id, limit=CURATION_FETCH_LIMIT)
    if not transactions:
        return {"message": "No transactions to curate", "suggestions": []}

    patterns = dynamo.list_patterns(user_id)
    categories = dynamo.list_categories(user_id)
    logger.info(f"Analyzing {len(transactions)} transactions")

    suggestions = (
        category_suggestions(transactions, patterns, categories, suggester)
        + detect_duplicates(transactions)
        + detect_recurring(transactions)
    )
    to_apply, to_review = partition_suggestions(suggestions)

    descriptions = {tx["id"]: tx.get("description", "") for tx in transactions}
    applied = 0
    for suggestion in to_apply:
        if apply_suggestion(user_id, suggestion, descriptions.get(suggestion["transaction_id"])):
            applied += 1

    review_records = [
        TransactionSuggestionRecord(user_id=user_id, **suggestion).model_dump() for suggestion in to_review
    ]
    if review_records and not dynamo.put_suggestions(review_records):
        raise RuntimeError("Failed to save suggestions for review")

    logger.info(f"Created {applied} auto-applied suggestions and {len(review_records)} for review")

    return {
        "message": "Data curation completed",
        "applied": applied,
        "pending": len(review_records),
        "suggestions": review_records,
    }
