import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from app.core.security import get_current_user_id
from app.db import dynamo
from app.utils import curator
from app.utils.subscription import require_plan

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/")
def list_pending_suggestions(user_id: str = Depends(get_current_user_id)):
    return {"suggestions": dynamo.list_suggestions(user_id, status="pending")}


@router.post("/curate")
def curate(user_id: str = Depends(require_plan("premium"))):
    """Run the data curator over the caller's most recent transactions"""
    try:
        return curator.curate_user(user_id)
    except Exception as e:
        logger.error(f"Error in data curator: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})


def _pending_suggestion(user_id: str, suggestion_id: str) -> dict:
    suggestion = dynamo.get_suggestion(user_id, suggestion_id)
    if not suggestion:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    if suggestion.get("status") != "pending":
        raise HTTPException(status_code=400, detail="Suggestion was already reviewed")
    return suggestion


@router.post("/{suggestion_id}/accept")
def accept_suggestion(suggestion_id: str, user_id: str = Depends(get_current_user_id)):
    suggestion = _pending_suggestion(user_id, suggestion_id)
    if not curator.apply_suggestion(user_id, suggestion):
        raise HTTPException(status_code=404, detail="Transaction not found")

    updated = dynamo.update_suggestion(
        user_id, suggestion_id, {"status": "accepted", "reviewed_at": datetime.utcnow().isoformat()}
    )
    return {"success": True, "suggestion": updated}


@router.post("/{suggestion_id}/reject")
def reject_suggestion(suggestion_id: str, user_id: str = Depends(get_current_user_id)):
    _pending_suggestion(user_id, suggestion_id)
    updated = dynamo.update_suggestion(
        user_id, suggestion_id, {"status": "rejected", "reviewed_at": datetime.utcnow().isoformat()}
    )
    return {"success": True, "suggestion": updated}
