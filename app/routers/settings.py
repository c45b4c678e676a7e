"""
Settings Router
Per-user daily data curation schedule
"""
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.core.security import get_current_user_id
from app.db import dynamo
from app.utils import scheduler as scheduler_service

router = APIRouter()
logger = logging.getLogger(__name__)


class CurationScheduleUpdate(BaseModel):
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
    enabled: Optional[bool] = None


def _next_run(user_id: str) -> Optional[str]:
    scheduler = scheduler_service.scheduler
    if scheduler and scheduler.running:
        job = scheduler.get_job(f"{scheduler_service.JOB_PREFIX}{user_id}")
        if job and job.next_run_time:
            return job.next_run_time.isoformat()
    return None


def _current_settings(user_id: str) -> dict:
    db_settings = dynamo.get_curation_settings(user_id)
    if db_settings is None:
        raise HTTPException(status_code=404, detail="User not found")
    return db_settings


@router.get("/curation")
def get_curation_settings(user_id: str = Depends(get_current_user_id)) -> Dict:
    """Current daily curation schedule and the scheduler service status"""
    schedule = _current_settings(user_id)
    status_info = scheduler_service.get_scheduler_status()
    return {
        "service_running": status_info["running"],
        "enabled": schedule["enabled"],
        "schedule": {**schedule, "next_run": _next_run(user_id)},
    }


@router.put("/curation")
def update_curation_settings(update: CurationScheduleUpdate, user_id: str = Depends(get_current_user_id)) -> Dict:
    current = _current_settings(user_id)
    enabled = current["enabled"] if update.enabled is None else update.enabled

    if not dynamo.save_curation_settings(user_id, update.hour, update.minute, enabled=enabled):
        raise HTTPException(status_code=500, detail="Failed to save curation schedule")

    scheduler_service.schedule_user_curation(user_id, enabled)
    logger.info(f"Curation schedule for user {user_id}: {update.hour:02d}:{update.minute:02d} enabled={enabled}")

    return {
        "success": True,
        "message": (
            f"Daily curation will run at {update.hour:02d}:{update.minute:02d} UTC."
            if enabled
            else "Daily curation is disabled for your account."
        ),
        "schedule": {
            "hour": update.hour,
            "minute": update.minute,
            "enabled": enabled,
            "next_run": _next_run(user_id),
        },
    }
