"""
Subscription access rules.

Pure functions over a subscription row ({status, plan, trial_end,
current_period_end}) shared by the API dependencies, the admin tools and
the WhatsApp webhook.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from fastapi import Depends, HTTPException, status

from app.core.security import get_current_user_id
from app.db import dynamo

logger = logging.getLogger(__name__)

PLAN_HIERARCHY = {"free": 0, "premium": 1, "family": 2}
PLAN_PRICES = {"free": 0.0, "premium": 29.90, "family": 49.90}

Timestamp = Union[str, datetime, None]


@dataclass
class AccessDecision:
    allowed: bool
    reason: str


def _parse_timestamp(value: Timestamp) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _utc_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return now if now.tzinfo else now.replace(tzinfo=timezone.utc)


def has_access(subscription: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> bool:
    """
    Active subscriptions always grant access. Trials grant access until
    trial_end. Any other status grants access only while current_period_end
    is in the future.
    """
    if not subscription:
        return False

    now = _utc_now(now)
    sub_status = subscription.get("status")

    if sub_status == "active":
        return True

    if sub_status == "trial":
        trial_end = _parse_timestamp(subscription.get("trial_end"))
        return trial_end is not None and trial_end > now

    period_end = _parse_timestamp(subscription.get("current_period_end"))
    if period_end is not None:
        return period_end > now
    return False


def plan_level(plan: Optional[str]) -> int:
    return PLAN_HIERARCHY.get(plan or "free", 0)


def validate_access(
    subscription: Optional[Dict[str, Any]],
    required_plan: str = "free",
    now: Optional[datetime] = None,
) -> AccessDecision:
    if not subscription:
        return AccessDecision(False, "no_subscription")
    if not has_access(subscription, now):
        return AccessDecision(False, "expired")
    if plan_level(subscription.get("plan")) < plan_level(required_plan):
        return AccessDecision(False, "insufficient_plan")
    return AccessDecision(True, "ok")


def preview_subscription(
    sub_status: str,
    trial_end: Timestamp = None,
    period_end: Timestamp = None,
    now: Optional[datetime] = None,
) -> AccessDecision:
    """What an admin's pending edit would grant, before it is saved."""
    now = _utc_now(now)
    trial_end_dt = _parse_timestamp(trial_end)
    period_end_dt = _parse_timestamp(period_end)

    if sub_status == "active":
        valid = period_end_dt is None or period_end_dt > now
        return AccessDecision(valid, "Active subscription" if valid else "Period expired")
    if sub_status == "trial":
        valid = trial_end_dt is None or trial_end_dt > now
        return AccessDecision(valid, "Trial valid" if valid else "Trial expired")
    return AccessDecision(False, "Canceled" if sub_status == "canceled" else "Expired")


def build_subscription_update(
    current: Optional[Dict[str, Any]],
    sub_status: str,
    plan: str,
    trial_end: Timestamp = None,
    period_end: Timestamp = None,
) -> Dict[str, Any]:
    """
    Normalize an admin edit into the fields to store.

    Trials need a trial_end and drop the period end; active subscriptions
    need a period end and drop the trial end; canceled/expired keep the
    dates already on record.
    """
    current = current or {}
    trial_end_dt = _parse_timestamp(trial_end)
    period_end_dt = _parse_timestamp(period_end)

    update: Dict[str, Any] = {
        "status": sub_status,
        "plan": plan,
        "updated_at": datetime.utcnow().isoformat(),
    }
    if sub_status == "trial":
        if trial_end_dt is None:
            raise ValueError("trial_end is required for status 'trial'")
        update["trial_end"] = trial_end_dt.isoformat()
        update["current_period_end"] = None
    elif sub_status == "active":
        if period_end_dt is None:
            raise ValueError("current_period_end is required for status 'active'")
        update["current_period_end"] = period_end_dt.isoformat()
        update["trial_end"] = None
    else:
        update["trial_end"] = current.get("trial_end")
        update["current_period_end"] = current.get("current_period_end")
    return update


def quick_action_update(
    current: Optional[Dict[str, Any]],
    action: str,
    days: int = 7,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Admin shortcuts: 'trial' (N days), 'activate' (one month), 'cancel'."""
    now = _utc_now(now)
    current = current or {}
    plan = current.get("plan", "premium")

    if action == "trial":
        return build_subscription_update(current, "trial", plan, trial_end=now + timedelta(days=days))
    if action == "activate":
        return build_subscription_update(current, "active", plan, period_end=now + timedelta(days=30))
    if action == "cancel":
        return build_subscription_update(current, "canceled", plan)
    raise ValueError(f"Unknown subscription action: {action}")


def new_trial_subscription(user_id: str, trial_days: int, plan: str = "premium") -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    return {
        "user_id": user_id,
        "status": "trial",
        "plan": plan,
        "trial_end": (now + timedelta(days=trial_days)).isoformat(),
        "current_period_end": None,
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
    }


def require_plan(required_plan: str = "free"):
    """
    FastAPI dependency factory guarding premium features.
    Denied requests get a 403 with the reason; granted ones are audited.
    """

    def dependency(user_id: str = Depends(get_current_user_id)) -> str:
        subscription = dynamo.get_subscription(user_id)
        decision = validate_access(subscription, required_plan)
        if not decision.allowed:
            detail = {
                "no_subscription": "No subscription found for this account.",
                "expired": "Your subscription has expired. Renew it to keep using this feature.",
                "insufficient_plan": f"This feature requires the {required_plan} plan.",
            }[decision.reason]
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

        dynamo.put_audit_log(
            user_id,
            f"access_{required_plan}",
            {"required_plan": required_plan, "user_plan": subscription.get("plan")},
        )
        return user_id

    return dependency
