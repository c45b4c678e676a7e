import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from app.core.security import get_current_admin
from app.db import dynamo
from app.utils.subscription import PLAN_PRICES, has_access

router = APIRouter()
logger = logging.getLogger(__name__)

PAID_PLANS = ("premium", "family")


class RoleUpdate(BaseModel):
    role: Literal["admin", "member"]


def subscription_metrics(subscriptions: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Counts by status and plan, MRR from active paid plans, ARPU and churn rate."""
    total = len(subscriptions)
    by_status = Counter(s.get("status", "unknown") for s in subscriptions)
    by_plan = Counter(s.get("plan", "free") for s in subscriptions)

    paying = [s for s in subscriptions if s.get("status") == "active" and s.get("plan") in PAID_PLANS]
    mrr = round(sum(PLAN_PRICES[s["plan"]] for s in paying), 2)

    return {
        "total_subscriptions": total,
        "by_status": dict(by_status),
        "by_plan": dict(by_plan),
        "active_paying": len(paying),
        "mrr": mrr,
        "arpu": round(mrr / len(paying), 2) if paying else 0.0,
        "churn_rate": round(by_status.get("canceled", 0) / total * 100, 1) if total else 0.0,
    }


@router.get("/users")
def list_users(admin: dict = Depends(get_current_admin)):
    subscriptions = {s["user_id"]: s for s in dynamo.list_subscriptions()}
    users = []
    for user in dynamo.list_users():
        subscription = subscriptions.get(user["user_id"])
        profile = {k: v for k, v in user.items() if k != "password_hash"}
        users.append({**profile, "subscription": subscription, "has_access": has_access(subscription)})
    users.sort(key=lambda u: u.get("created_at", ""), reverse=True)
    return {"users": users}


@router.put("/users/{user_id}/role")
def change_role(user_id: str, update: RoleUpdate, admin: dict = Depends(get_current_admin)):
    if user_id == admin["user_id"] and update.role != "admin":
        raise HTTPException(status_code=400, detail="You cannot remove your own admin role")

    user = dynamo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    dynamo.update_user(user_id, {"role": update.role, "updated_at": datetime.utcnow().isoformat()})
    dynamo.put_audit_log(
        admin["user_id"],
        "role_changed",
        {"target_user_id": user_id, "old_role": user.get("role"), "new_role": update.role},
    )
    logger.info(f"Admin {admin['user_id']} set role of {user_id} to {update.role}")
    return {"success": True, "user_id": user_id, "role": update.role}


@router.get("/audit-logs")
def list_audit_logs(limit: int = Query(default=100, ge=1, le=1000), admin: dict = Depends(get_current_admin)):
    return {"logs": dynamo.list_audit_logs(limit)}


@router.get("/metrics")
def metrics(admin: dict = Depends(get_current_admin)):
    return subscription_metrics(dynamo.list_subscriptions())
