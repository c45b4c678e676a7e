import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.security import get_current_admin, get_current_user_id
from app.db import dynamo
from app.models.subscription import SubscriptionPreview, SubscriptionPublic, SubscriptionUpdate
from app.utils.subscription import (
    build_subscription_update,
    has_access,
    preview_subscription,
    quick_action_update,
)

router = APIRouter()
admin_router = APIRouter()
logger = logging.getLogger(__name__)


def _public(subscription: dict) -> SubscriptionPublic:
    return SubscriptionPublic(**subscription, has_access=has_access(subscription))


def _require_subscription(user_id: str) -> dict:
    subscription = dynamo.get_subscription(user_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return subscription


def _save(admin: dict, user_id: str, current: dict, update: dict, action: str) -> SubscriptionPublic:
    subscription = {**current, **update, "user_id": user_id}
    if not dynamo.put_subscription(subscription):
        raise HTTPException(status_code=500, detail="Failed to save subscription")

    dynamo.put_audit_log(
        admin["user_id"],
        action,
        {
            "target_user_id": user_id,
            "old": {k: current.get(k) for k in ("status", "plan", "trial_end", "current_period_end")},
            "new": {k: subscription.get(k) for k in ("status", "plan", "trial_end", "current_period_end")},
        },
    )
    logger.info(f"Admin {admin['user_id']} applied {action} to subscription of {user_id}")
    return _public(subscription)


@router.get("/me", response_model=SubscriptionPublic)
def get_my_subscription(user_id: str = Depends(get_current_user_id)):
    return _public(_require_subscription(user_id))


@admin_router.get("/{user_id}", response_model=SubscriptionPublic)
def get_user_subscription(user_id: str, admin: dict = Depends(get_current_admin)):
    return _public(_require_subscription(user_id))


@admin_router.put("/{user_id}", response_model=SubscriptionPublic)
def update_user_subscription(user_id: str, update: SubscriptionUpdate, admin: dict = Depends(get_current_admin)):
    current = dynamo.get_subscription(user_id) or {}
    try:
        fields = build_subscription_update(
            current, update.status, update.plan, update.trial_end, update.current_period_end
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _save(admin, user_id, current, fields, "subscription_updated")


@admin_router.post("/{user_id}/actions/{action}", response_model=SubscriptionPublic)
def subscription_quick_action(
    user_id: str,
    action: str,
    days: int = Query(default=7, ge=1, le=365),
    admin: dict = Depends(get_current_admin),
):
    """Shortcuts: 'trial' starts an N-day trial, 'activate' grants one month, 'cancel' cancels"""
    current = dynamo.get_subscription(user_id) or {}
    try:
        fields = quick_action_update(current, action, days=days)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _save(admin, user_id, current, fields, f"subscription_{action}")


@admin_router.post("/{user_id}/preview", response_model=SubscriptionPreview)
def preview_user_subscription(user_id: str, update: SubscriptionUpdate, admin: dict = Depends(get_current_admin)):
    decision = preview_subscription(update.status, update.trial_end, update.current_period_end)
    return SubscriptionPreview(access_valid=decision.allowed, access_reason=decision.reason)
