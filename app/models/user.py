from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional
from uuid import uuid4
from datetime import datetime


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1, max_length=100)
    family_name: Optional[str] = Field(default=None, max_length=100)
    phone_number: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone_number: Optional[str] = None
    assistant_name: Optional[str] = Field(default=None, max_length=50)
    family_name: Optional[str] = Field(default=None, max_length=100)


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    email: EmailStr
    password_hash: str
    full_name: str
    role: Literal["admin", "member"] = "member"
    phone_number: Optional[str] = None
    assistant_name: Optional[str] = None
    family_name: Optional[str] = None
    created_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


class UserPublic(BaseModel):
    user_id: str
    email: EmailStr
    full_name: str = ""
    role: str = "member"
    phone_number: Optional[str] = None
    assistant_name: Optional[str] = None
    family_name: Optional[str] = None
    created_at: str = ""
