import logging
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from app.models.ai import ReportRequest
from app.utils import ai_client
from app.utils.reports import REPORT_FOCUS, generate_report
from app.utils.subscription import require_plan

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/types")
def list_report_types() -> Dict:
    return {"report_types": [{"type": name, "focus": focus} for name, focus in REPORT_FOCUS.items()]}


@router.post("/")
def create_report(request: ReportRequest, user_id: str = Depends(require_plan("premium"))):
    """
    Generate an AI-written report for the requested period. With export_pdf
    the PDF and a CSV of the period's transactions are uploaded to S3.
    """
    if request.period and request.period.start > request.period.end:
        raise HTTPException(status_code=400, detail="Period start must be before its end")

    try:
        return generate_report(user_id, request)
    except ai_client.AIServiceError as e:
        logger.error(f"Error in report generator: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})
