from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.security import get_current_user_id
from app.db import dynamo
from app.models.patrimony import (
    AssetCreate,
    AssetInDB,
    AssetUpdate,
    LiabilityCreate,
    LiabilityInDB,
    LiabilityUpdate,
    NetWorth,
)
from app.utils.analyzer import FinanceAnalyzer

router = APIRouter()


def _update(table, user_id: str, item_id: str, fields: dict, label: str):
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    fields["updated_at"] = datetime.utcnow().isoformat()
    updated = dynamo.update_owned_item(table, user_id, item_id, fields)
    if not updated:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return updated


@router.get("/net-worth", response_model=NetWorth)
def get_net_worth(user_id: str = Depends(get_current_user_id)):
    assets, liabilities = dynamo.get_patrimony(user_id)
    return FinanceAnalyzer.calculate_net_worth(assets, liabilities)


# Assets

@router.get("/assets")
def list_assets(user_id: str = Depends(get_current_user_id)):
    return {"assets": dynamo.list_assets(user_id)}


@router.post("/assets", status_code=status.HTTP_201_CREATED)
def create_asset(asset: AssetCreate, user_id: str = Depends(get_current_user_id)):
    data = asset.model_dump(mode="json")
    if data.get("current_value") is None:
        data["current_value"] = data["value"]
    item = AssetInDB(user_id=user_id, **data).model_dump(mode="json")
    if not dynamo.put_owned_item(dynamo.assets_table, item):
        raise HTTPException(status_code=500, detail="Failed to save asset")
    return item


@router.put("/assets/{asset_id}")
def update_asset(asset_id: str, update: AssetUpdate, user_id: str = Depends(get_current_user_id)):
    return _update(dynamo.assets_table, user_id, asset_id, update.model_dump(mode="json", exclude_unset=True), "Asset")


@router.delete("/assets/{asset_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_asset(asset_id: str, user_id: str = Depends(get_current_user_id)):
    if not dynamo.delete_owned_item(dynamo.assets_table, user_id, asset_id):
        raise HTTPException(status_code=404, detail="Asset not found")
    return None


# Liabilities

@router.get("/liabilities")
def list_liabilities(user_id: str = Depends(get_current_user_id)):
    return {"liabilities": dynamo.list_liabilities(user_id)}


@router.post("/liabilities", status_code=status.HTTP_201_CREATED)
def create_liability(liability: LiabilityCreate, user_id: str = Depends(get_current_user_id)):
    if liability.remaining_amount > liability.total_amount:
        raise HTTPException(status_code=400, detail="Remaining amount cannot exceed the total amount")
    item = LiabilityInDB(user_id=user_id, **liability.model_dump()).model_dump(mode="json")
    if not dynamo.put_owned_item(dynamo.liabilities_table, item):
        raise HTTPException(status_code=500, detail="Failed to save liability")
    return item


@router.put("/liabilities/{liability_id}")
def update_liability(liability_id: str, update: LiabilityUpdate, user_id: str = Depends(get_current_user_id)):
    return _update(
        dynamo.liabilities_table,
        user_id,
        liability_id,
        update.model_dump(mode="json", exclude_unset=True),
        "Liability",
    )


@router.delete("/liabilities/{liability_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_liability(liability_id: str, user_id: str = Depends(get_current_user_id)):
    if not dynamo.delete_owned_item(dynamo.liabilities_table, user_id, liability_id):
        raise HTTPException(status_code=404, detail="Liability not found")
    return None
