from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class AssetCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    value: float = Field(ge=0)
    category: Optional[str] = None
    purchase_date: Optional[date] = None
    depreciation_rate: Optional[float] = Field(default=None, ge=0, le=100)
    current_value: Optional[float] = Field(default=None, ge=0)


class AssetUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    value: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    purchase_date: Optional[date] = None
    depreciation_rate: Optional[float] = Field(default=None, ge=0, le=100)
    current_value: Optional[float] = Field(default=None, ge=0)


class AssetInDB(AssetCreate):
    user_id: str
    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


class LiabilityCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    total_amount: float = Field(ge=0)
    remaining_amount: float = Field(ge=0)
    interest_rate: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    monthly_payment: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    creditor: Optional[str] = None


class LiabilityUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    total_amount: Optional[float] = Field(default=None, ge=0)
    remaining_amount: Optional[float] = Field(default=None, ge=0)
    interest_rate: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    monthly_payment: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    creditor: Optional[str] = None


class LiabilityInDB(LiabilityCreate):
    user_id: str
    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


class NetWorth(BaseModel):
    total_assets: float
    total_liabilities: float
    net_worth: float
