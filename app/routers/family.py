from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import get_current_user_id
from app.db import dynamo
from app.models.family import FamilyMemberCreate, FamilyMemberInDB, FamilyMemberUpdate

router = APIRouter()


@router.get("/")
def list_family_members(user_id: str = Depends(get_current_user_id)):
    members = dynamo.list_family_members(user_id)
    members.sort(key=lambda m: m.get("created_at", ""))
    return {"members": members}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_family_member(member: FamilyMemberCreate, user_id: str = Depends(get_current_user_id)):
    item = FamilyMemberInDB(user_id=user_id, **member.model_dump()).model_dump()
    if not dynamo.put_owned_item(dynamo.family_members_table, item):
        raise HTTPException(status_code=500, detail="Failed to save family member")
    return item


@router.put("/{member_id}")
def update_family_member(member_id: str, update: FamilyMemberUpdate, user_id: str = Depends(get_current_user_id)):
    fields = update.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    fields["updated_at"] = datetime.utcnow().isoformat()
    updated = dynamo.update_owned_item(dynamo.family_members_table, user_id, member_id, fields)
    if not updated:
        raise HTTPException(status_code=404, detail="Family member not found")
    return updated


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_family_member(member_id: str, user_id: str = Depends(get_current_user_id)):
    if not dynamo.delete_owned_item(dynamo.family_members_table, user_id, member_id):
        raise HTTPException(status_code=404, detail="Family member not found")
    return None
