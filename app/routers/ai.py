"""
AI Router
Assistant chat for transaction entry, dashboard insights and voice commands.
Errors come back as a JSON envelope with status 500 so the client can show
the friendly message as-is.
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.models.ai import AITransactionRequest, VoiceCommandRequest
from app.utils.ai_processor import ERROR_RESPONSE, process_transaction_message
from app.utils.insights import generate_insights
from app.utils.subscription import require_plan
from app.utils.voice_commands import route_voice_command

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/transactions")
def ai_transactions(request: AITransactionRequest, user_id: str = Depends(require_plan("premium"))):
    try:
        return process_transaction_message(
            user_id,
            request.input,
            input_type=request.type,
            conversation_history=[m.model_dump() for m in request.conversation_history],
            confirm_suggestion=request.confirm_suggestion,
            suggestion=request.suggestion.model_dump() if request.suggestion else None,
        )
    except Exception as e:
        logger.error(f"Error in AI transaction processor: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e), "response": ERROR_RESPONSE},
        )


@router.get("/insights")
def ai_insights(user_id: str = Depends(require_plan("premium"))):
    try:
        return generate_insights(user_id)
    except Exception as e:
        logger.error(f"Error in dashboard insights: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e), "insights": []})


@router.post("/voice-command")
def voice_command(request: VoiceCommandRequest, user_id: str = Depends(require_plan("premium"))):
    try:
        return route_voice_command(user_id, request.command, request.current_page)
    except Exception as e:
        logger.error(f"Error in voice command router: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"action": "error", "response": str(e)})
