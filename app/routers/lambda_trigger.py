"""
Curation Trigger Router
Endpoints for manually running the data curator Lambda function
"""
import json
import logging
from typing import Optional

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.core.config import settings
from app.utils.lambda_scheduler import lambda_client, trigger_curation
from app.utils.scheduler import get_scheduler_status
from app.utils.subscription import require_plan

router = APIRouter()
logger = logging.getLogger(__name__)


class CurationTriggerResponse(BaseModel):
    success: bool
    result: Optional[str] = None
    message: Optional[str] = None


def _summary_message(raw_result: Optional[str]) -> str:
    """Turn the Lambda's {statusCode, body} reply into a short message."""
    message = "Data curation triggered successfully"
    if not raw_result:
        return message
    try:
        body = json.loads(json.loads(raw_result)["body"])
    except (ValueError, KeyError, TypeError):
        return message
    if body.get("users_processed") is not None:
        return (
            f"Curated {body['users_processed']} user(s): "
            f"{body.get('applied', 0)} applied, {body.get('pending', 0)} waiting for review."
        )
    return body.get("message", message)


@router.post("/trigger", response_model=CurationTriggerResponse)
def trigger_curation_manually(user_id: str = Depends(require_plan("premium"))):
    """Run the data curator Lambda for the caller right away"""
    result = trigger_curation([user_id])
    if not result.get("success"):
        raise HTTPException(
            status_code=result.get("status_code", 500),
            detail=result.get("error", "Failed to invoke Lambda function"),
        )
    return CurationTriggerResponse(
        success=True,
        message=_summary_message(result.get("result")),
        result=result.get("result"),
    )


@router.get("/status")
def curation_status():
    """Check that the curator Lambda is reachable, plus the scheduler status"""
    try:
        response = lambda_client.get_function(FunctionName=settings.CURATOR_LAMBDA_NAME)
    except ClientError as e:
        logger.error(f"Lambda status check failed: {e}")
        raise HTTPException(status_code=500, detail=f"Error checking Lambda status: {e}")

    return {
        "function_name": settings.CURATOR_LAMBDA_NAME,
        "status": response["Configuration"].get("State"),
        "last_modified": response["Configuration"].get("LastModified"),
        "runtime": response["Configuration"].get("Runtime"),
        "scheduler": get_scheduler_status(),
    }
