from datetime import datetime
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

FamilyRole = Literal["father", "mother", "son", "daughter", "other"]


class FamilyMemberCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    role: FamilyRole
    linked_user_id: Optional[str] = None
    is_active: bool = True


class FamilyMemberUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[FamilyRole] = None
    linked_user_id: Optional[str] = None
    is_active: Optional[bool] = None


class FamilyMemberInDB(FamilyMemberCreate):
    user_id: str
    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
