import datetime as dt
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

TransactionType = Literal["income", "expense"]


class TransactionCreate(BaseModel):
    type: TransactionType
    description: str = Field(min_length=1, max_length=255)
    amount: float = Field(gt=0, le=999999.99)
    date: dt.date = Field(default_factory=dt.date.today)
    category: Optional[str] = None
    family_member_id: Optional[str] = None
    observation: Optional[str] = Field(default=None, max_length=500)
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None


class TransactionUpdate(BaseModel):
    type: Optional[TransactionType] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[float] = Field(default=None, gt=0, le=999999.99)
    date: Optional[dt.date] = None
    category: Optional[str] = None
    family_member_id: Optional[str] = None
    observation: Optional[str] = Field(default=None, max_length=500)
    is_recurring: Optional[bool] = None
    recurrence_pattern: Optional[str] = None


class TransactionInDB(TransactionCreate):
    user_id: str
    id: str = Field(default_factory=lambda: str(uuid4()))
    auto_categorized: bool = False
    metadata: Optional[Dict[str, Any]] = None
    created_at: str = Field(default_factory=lambda: dt.datetime.utcnow().isoformat())
    updated_at: str = Field(default_factory=lambda: dt.datetime.utcnow().isoformat())


class TransactionPublic(BaseModel):
    id: str
    type: str
    description: str = ""
    amount: float
    date: str
    category: Optional[str] = None
    family_member_id: Optional[str] = None
    observation: Optional[str] = None
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None
    auto_categorized: bool = False
    metadata: Optional[Dict[str, Any]] = None
    created_at: str = ""


class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(min_length=1)


class BulkCategorizeRequest(BaseModel):
    ids: List[str] = Field(min_length=1)
    category: str = Field(min_length=1)
