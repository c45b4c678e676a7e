from datetime import datetime
from typing import Any, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

SuggestionType = Literal["category", "duplicate", "recurring"]
SuggestionStatus = Literal["pending", "accepted", "rejected"]


class TransactionSuggestionRecord(BaseModel):
    user_id: str
    id: str = Field(default_factory=lambda: str(uuid4()))
    transaction_id: str
    suggestion_type: SuggestionType
    original_value: Optional[Any] = None
    suggested_value: Any = None
    confidence_score: float
    status: SuggestionStatus = "pending"
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    reviewed_at: Optional[str] = None
