import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.core.security import get_current_user_id
from app.db import dynamo
from app.models.transaction import (
    BulkCategorizeRequest,
    BulkDeleteRequest,
    TransactionCreate,
    TransactionInDB,
    TransactionPublic,
    TransactionType,
    TransactionUpdate,
)
from app.utils.analyzer import FinanceAnalyzer
from app.utils.pdf_report import transactions_csv

router = APIRouter()
logger = logging.getLogger(__name__)
finance_analyzer = FinanceAnalyzer()


def _filters(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[str] = None,
    family_member_id: Optional[str] = None,
    type: Optional[TransactionType] = None,
) -> dict:
    return {
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "category": category,
        "family_member_id": family_member_id,
        "tx_type": type,
    }


@router.post("/", response_model=TransactionPublic, status_code=status.HTTP_201_CREATED)
def create_transaction(transaction: TransactionCreate, user_id: str = Depends(get_current_user_id)):
    transaction_db = TransactionInDB(user_id=user_id, **transaction.model_dump())
    item = transaction_db.model_dump(mode="json")
    if not dynamo.put_transaction(item):
        raise HTTPException(status_code=500, detail="Failed to save transaction")
    return TransactionPublic(**item)


@router.get("/")
def list_transactions(
    filters: dict = Depends(_filters),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    user_id: str = Depends(get_current_user_id),
):
    transactions = dynamo.list_transactions(user_id, limit=limit, **filters)
    return {
        "transactions": transactions,
        "summary": finance_analyzer.totals(transactions),
    }


@router.get("/summary")
def dashboard_summary(user_id: str = Depends(get_current_user_id)):
    """Current vs last month totals, top categories and net worth for the dashboard"""
    today = date.today()
    year, month = finance_analyzer.previous_month(today.year, today.month)
    transactions = dynamo.list_transactions(user_id, start_date=date(year, month, 1).isoformat())
    assets, liabilities = dynamo.get_patrimony(user_id)
    net_worth = finance_analyzer.calculate_net_worth(assets, liabilities)
    return finance_analyzer.dashboard_summary(transactions, net_worth, today)


@router.get("/export")
def export_transactions(filters: dict = Depends(_filters), user_id: str = Depends(get_current_user_id)):
    transactions = dynamo.list_transactions(user_id, **filters)
    filename = f"transactions_{date.today().isoformat()}.csv"
    return Response(
        content=transactions_csv(transactions),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/bulk-delete")
def bulk_delete(request: BulkDeleteRequest, user_id: str = Depends(get_current_user_id)):
    deleted = [tx_id for tx_id in request.ids if dynamo.delete_transaction(user_id, tx_id)]
    logger.info(f"Bulk deleted {len(deleted)} of {len(request.ids)} transactions for user {user_id}")
    return {"deleted": len(deleted), "ids": deleted}


@router.post("/bulk-categorize")
def bulk_categorize(request: BulkCategorizeRequest, user_id: str = Depends(get_current_user_id)):
    now = datetime.utcnow().isoformat()
    updated = [
        tx_id
        for tx_id in request.ids
        if dynamo.update_transaction(user_id, tx_id, {"category": request.category, "updated_at": now})
    ]
    return {"updated": len(updated), "ids": updated, "category": request.category}


@router.get("/{transaction_id}", response_model=TransactionPublic)
def get_transaction(transaction_id: str, user_id: str = Depends(get_current_user_id)):
    transaction = dynamo.get_transaction(user_id, transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionPublic(**transaction)


@router.put("/{transaction_id}", response_model=TransactionPublic)
def update_transaction(
    transaction_id: str,
    transaction_update: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
):
    mutable_fields = transaction_update.model_dump(mode="json", exclude_unset=True)
    if not mutable_fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    mutable_fields["updated_at"] = datetime.utcnow().isoformat()

    updated = dynamo.update_transaction(user_id, transaction_id, mutable_fields)
    if not updated:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionPublic(**updated)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(transaction_id: str, user_id: str = Depends(get_current_user_id)):
    deleted = dynamo.delete_transaction(user_id, transaction_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return None
