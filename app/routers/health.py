"""
Health Check Router
Liveness endpoint plus a connectivity report for the AWS services
"""
import logging
from datetime import datetime

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter

from app.core.config import settings
from app.db import dynamo
from app.utils.lambda_scheduler import lambda_client
from app.utils.pdf_report import s3

router = APIRouter()
logger = logging.getLogger(__name__)

TABLES = {
    "users": dynamo.users_table,
    "subscriptions": dynamo.subscriptions_table,
    "transactions": dynamo.transactions_table,
    "categories": dynamo.categories_table,
    "family_members": dynamo.family_members_table,
    "assets": dynamo.assets_table,
    "liabilities": dynamo.liabilities_table,
    "transaction_patterns": dynamo.patterns_table,
    "transaction_suggestions": dynamo.suggestions_table,
    "audit_logs": dynamo.audit_logs_table,
}


def _error_text(e: Exception) -> str:
    if isinstance(e, ClientError):
        return f"{e.response.get('Error', {}).get('Code', 'Unknown')}: {e}"
    return str(e)


@router.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/status")
def aws_services_status():
    """
    Check connectivity of:
    - DynamoDB (every table)
    - S3 (report artifacts bucket)
    - Lambda (data curator function)
    """
    status = {"timestamp": datetime.utcnow().isoformat(), "services": {}}

    tables = {}
    for name, table in TABLES.items():
        try:
            table.scan(Limit=1)
            tables[name] = {"name": table.name, "status": "accessible"}
        except (ClientError, BotoCoreError) as e:
            logger.error(f"DynamoDB check failed for {table.name}: {e}")
            tables[name] = {"name": table.name, "status": "error", "error": _error_text(e)}
    status["services"]["dynamodb"] = {
        "connected": all(t["status"] == "accessible" for t in tables.values()),
        "region": settings.DYNAMO_REGION,
        "tables": tables,
    }

    s3_status = {"connected": False, "bucket": settings.S3_BUCKET_NAME, "region": settings.S3_REGION, "error": None}
    try:
        s3.head_bucket(Bucket=settings.S3_BUCKET_NAME)
        s3_status["connected"] = True
    except (ClientError, BotoCoreError) as e:
        logger.error(f"S3 check failed: {e}")
        s3_status["error"] = _error_text(e)
    status["services"]["s3"] = s3_status

    lambda_status = {"connected": False, "function_name": settings.CURATOR_LAMBDA_NAME, "error": None}
    try:
        response = lambda_client.get_function(FunctionName=settings.CURATOR_LAMBDA_NAME)
        lambda_status["connected"] = True
        lambda_status["status"] = response["Configuration"].get("State")
        lambda_status["runtime"] = response["Configuration"].get("Runtime")
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Lambda check failed: {e}")
        lambda_status["error"] = _error_text(e)
    status["services"]["lambda"] = lambda_status

    all_connected = all(service["connected"] for service in status["services"].values())
    status["overall_status"] = "healthy" if all_connected else "degraded"
    return status
