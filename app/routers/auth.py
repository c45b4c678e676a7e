import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.config import settings
from app.core.security import create_access_token, get_current_user_id, get_password_hash, verify_password
from app.db import dynamo
from app.models.category import DEFAULT_CATEGORIES, CategoryInDB
from app.models.user import UserCreate, UserInDB, UserLogin, UserPublic, UserUpdate
from app.utils.subscription import new_trial_subscription

router = APIRouter()
logger = logging.getLogger(__name__)


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    # Stored as digits only so it matches the WhatsApp sender id
    digits = "".join(ch for ch in (phone or "") if ch.isdigit())
    return digits or None


def _public(user: dict) -> UserPublic:
    return UserPublic(**{k: v for k, v in user.items() if k in UserPublic.model_fields})


@router.post("/register", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate):
    existing = dynamo.get_user_by_email(user.email)
    if existing:
        raise HTTPException(status_code=400, detail="User already exists")

    user_db = UserInDB(
        email=user.email,
        password_hash=get_password_hash(user.password),
        full_name=user.full_name,
        family_name=user.family_name,
        phone_number=normalize_phone(user.phone_number),
    )

    success = dynamo.put_user(user_db.model_dump())
    if not success:
        raise HTTPException(status_code=500, detail="Error saving user")

    # New accounts start on a premium trial
    dynamo.put_subscription(new_trial_subscription(user_db.user_id, settings.DEFAULT_TRIAL_DAYS))

    categories = [
        CategoryInDB(user_id=user_db.user_id, is_default=True, **category).model_dump()
        for category in DEFAULT_CATEGORIES
    ]
    dynamo.put_owned_items(dynamo.categories_table, categories)

    logger.info(f"Registered user {user_db.user_id}")
    return _public(user_db.model_dump())


@router.post("/login")
def login(login_data: UserLogin):
    logger.info(f"Login attempt for email: {login_data.email}")
    user = dynamo.get_user_by_email(login_data.email)

    if not user:
        logger.warning(f"User not found: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not verify_password(login_data.password, user["password_hash"]):
        logger.warning(f"Invalid password for user: {login_data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": user["user_id"]})
    logger.info(f"Login successful for user: {login_data.email}")

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": _public(user).model_dump(),
    }


@router.get("/me", response_model=UserPublic)
def get_current_user(user_id: str = Depends(get_current_user_id)):
    """Get current user profile"""
    user = dynamo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _public(user)


@router.put("/me", response_model=UserPublic)
def update_current_user(update: UserUpdate, user_id: str = Depends(get_current_user_id)):
    """Update profile settings: name, WhatsApp number, assistant name, family name"""
    fields = update.model_dump(exclude_unset=True)
    removes = []
    if "phone_number" in fields:
        fields["phone_number"] = normalize_phone(fields["phone_number"])
        if fields["phone_number"] is None:
            # phone-index keys cannot be null, so unlinking removes the attribute
            del fields["phone_number"]
            removes.append("phone_number")
    if not fields and not removes:
        raise HTTPException(status_code=400, detail="No fields to update")

    fields["updated_at"] = datetime.utcnow().isoformat()
    updated = dynamo.update_user(user_id, fields, removes=removes)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _public(updated)
