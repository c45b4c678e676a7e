"""
Lambda Scheduler Service
Handles scheduled and manual triggering of the data curator Lambda function
"""
import json
import logging
from datetime import datetime
from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.db import dynamo

logger = logging.getLogger(__name__)

# Initialize Lambda client
lambda_client = boto3.client("lambda", region_name=settings.AWS_REGION)


def invoke_lambda_function(payload: Optional[dict] = None) -> dict:
    """
    Invoke the data curator Lambda function synchronously.

    Returns {"success", "result" | "error", "status_code"}.
    """
    payload = payload or {}

    try:
        logger.info(f"Invoking Lambda function: {settings.CURATOR_LAMBDA_NAME}")
        response = lambda_client.invoke(
            FunctionName=settings.CURATOR_LAMBDA_NAME,
            InvocationType="RequestResponse",
            Payload=json.dumps(payload).encode("utf-8"),
        )
        response_payload = response["Payload"].read().decode("utf-8")

        if response.get("FunctionError"):
            logger.error(f"Lambda function error: {response_payload}")
            return {
                "success": False,
                "error": response_payload,
                "status_code": response.get("StatusCode", 500),
            }

        logger.info("Lambda function executed successfully")
        return {
            "success": True,
            "result": response_payload,
            "status_code": response.get("StatusCode", 200),
        }

    except (ClientError, BotoCoreError) as e:
        error_msg = f"AWS Lambda error: {e}"
        logger.error(error_msg)
        return {"success": False, "error": error_msg}


def trigger_curation(user_ids: Optional[List[str]] = None) -> dict:
    """
    Run the curator for the given users, or for every user with daily
    curation enabled when none are given.
    """
    if user_ids is None:
        user_ids = dynamo.get_all_users_with_curation_enabled()
        if not user_ids:
            logger.info("No users have daily curation enabled. Skipping.")
            return {
                "success": True,
                "message": "No users have daily curation enabled",
                "users_processed": 0,
            }

    logger.info(f"Triggering data curation at {datetime.utcnow()} for {len(user_ids)} users")
    payload = {
        "user_ids": user_ids,
        "triggered_at": datetime.utcnow().isoformat(),
    }
    return invoke_lambda_function(payload)
