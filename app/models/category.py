from datetime import datetime
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

CategoryType = Literal["income", "expense"]


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    type: CategoryType
    emoji: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    type: Optional[CategoryType] = None
    emoji: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryInDB(CategoryCreate):
    user_id: str
    id: str = Field(default_factory=lambda: str(uuid4()))
    is_default: bool = False
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


# Seeded for every new account
DEFAULT_CATEGORIES = [
    {"name": "Alimentação", "type": "expense", "emoji": "🍽️"},
    {"name": "Transporte", "type": "expense", "emoji": "🚗"},
    {"name": "Moradia", "type": "expense", "emoji": "🏠"},
    {"name": "Saúde", "type": "expense", "emoji": "💊"},
    {"name": "Lazer", "type": "expense", "emoji": "🎉"},
    {"name": "Salário", "type": "income", "emoji": "💼"},
    {"name": "Freelance", "type": "income", "emoji": "💻"},
]
