from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

SubscriptionStatus = Literal["trial", "active", "canceled", "expired"]
SubscriptionPlan = Literal["free", "premium", "family"]


class Subscription(BaseModel):
    user_id: str
    status: SubscriptionStatus = "trial"
    plan: SubscriptionPlan = "free"
    trial_end: Optional[str] = None
    current_period_end: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


class SubscriptionUpdate(BaseModel):
    status: SubscriptionStatus
    plan: SubscriptionPlan
    trial_end: Optional[datetime] = None
    current_period_end: Optional[datetime] = None


class SubscriptionPublic(Subscription):
    has_access: bool = False


class SubscriptionPreview(BaseModel):
    access_valid: bool
    access_reason: str
