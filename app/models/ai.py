from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ConversationMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class TransactionSuggestion(BaseModel):
    type: Literal["income", "expense"]
    description: str
    amount: float = Field(gt=0)
    category: Optional[str] = None
    date: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AITransactionRequest(BaseModel):
    input: str = ""
    type: Literal["text", "audio", "image"] = "text"
    conversation_history: List[ConversationMessage] = Field(default_factory=list)
    confirm_suggestion: bool = False
    suggestion: Optional[TransactionSuggestion] = None


class VoiceCommandRequest(BaseModel):
    command: str = ""
    current_page: Optional[str] = None


ReportType = Literal["monthly", "category", "family_member", "patrimony", "comparison", "projection"]


class ReportPeriod(BaseModel):
    start: date
    end: date


class ReportRequest(BaseModel):
    report_type: ReportType = "monthly"
    period: Optional[ReportPeriod] = None
    category: Optional[str] = None
    family_member_id: Optional[str] = None
    export_pdf: bool = False


class Insight(BaseModel):
    type: str = "info"
    title: str
    message: str
    action: Optional[str] = None
    priority: str = "medium"


class InsightsResponse(BaseModel):
    insights: List[Dict[str, Any]]
    summary: Dict[str, Any]
