import json
import logging
from datetime import datetime

from app.db import dynamo
from app.utils.curator import curate_user

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)


def lambda_handler(event, context):
    """
    Batch data curation.
    Runs the curator for the user_ids in the event, or for every user when none are given.
    """
    try:
        user_ids = None
        if event and isinstance(event, dict):
            user_ids = event.get("user_ids")

        if user_ids:
            logger.info(f"Curating {len(user_ids)} requested users")
        else:
            user_ids = [user["user_id"] for user in dynamo.list_users()]
            logger.info(f"Curating all {len(user_ids)} users")

        if not user_ids:
            return {
                "statusCode": 200,
                "body": json.dumps({
                    "status": "success",
                    "message": "No users found",
                    "users_processed": 0,
                }),
            }

        processed_count = 0
        applied = 0
        pending = 0
        results = []

        for user_id in user_ids:
            try:
                result = curate_user(user_id)
            except Exception as e:
                # One user's failure must not stop the batch
                logger.error(f"Error curating user {user_id}: {e}")
                results.append({"user_id": user_id, "error": str(e)})
                continue

            processed_count += 1
            applied += result.get("applied", 0)
            pending += result.get("pending", 0)
            results.append({
                "user_id": user_id,
                "applied": result.get("applied", 0),
                "pending": result.get("pending", 0),
            })

        logger.info(f"Curation finished: {processed_count} users, {applied} applied, {pending} pending")

        return {
            "statusCode": 200,
            "body": json.dumps({
                "status": "success",
                "processed_at": datetime.utcnow().isoformat(),
                "users_processed": processed_count,
                "total_users": len(user_ids),
                "applied": applied,
                "pending": pending,
                "results": results,
            }, default=str),
        }

    except Exception as e:
        logger.error(f"Lambda handler error: {e}")
        return {
            "statusCode": 500,
            "body": json.dumps({
                "status": "error",
                "message": str(e),
            }),
        }
