from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import get_current_user_id
from app.db import dynamo
from app.models.category import CategoryCreate, CategoryInDB, CategoryUpdate

router = APIRouter()


@router.get("/")
def list_categories(user_id: str = Depends(get_current_user_id)):
    categories = dynamo.list_categories(user_id)
    categories.sort(key=lambda c: (c.get("type", ""), c.get("name", "")))
    return {"categories": categories}


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_category(category: CategoryCreate, user_id: str = Depends(get_current_user_id)):
    existing = dynamo.list_categories(user_id)
    if any(c.get("name", "").lower() == category.name.lower() and c.get("type") == category.type for c in existing):
        raise HTTPException(status_code=400, detail="Category already exists")

    item = CategoryInDB(user_id=user_id, **category.model_dump()).model_dump()
    if not dynamo.put_owned_item(dynamo.categories_table, item):
        raise HTTPException(status_code=500, detail="Failed to save category")
    return item


@router.put("/{category_id}")
def update_category(category_id: str, update: CategoryUpdate, user_id: str = Depends(get_current_user_id)):
    fields = update.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    updated = dynamo.update_owned_item(dynamo.categories_table, user_id, category_id, fields)
    if not updated:
        raise HTTPException(status_code=404, detail="Category not found")
    return updated


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: str, user_id: str = Depends(get_current_user_id)):
    category = dynamo.get_owned_item(dynamo.categories_table, user_id, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    if category.get("is_default"):
        raise HTTPException(status_code=400, detail="Default categories cannot be deleted")
    dynamo.delete_owned_item(dynamo.categories_table, user_id, category_id)
    return None
