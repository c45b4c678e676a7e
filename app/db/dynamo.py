import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)

# Get table references
users_table = dynamodb.Table(settings.DYNAMO_USERS_TABLE)
subscriptions_table = dynamodb.Table(settings.DYNAMO_SUBSCRIPTIONS_TABLE)
transactions_table = dynamodb.Table(settings.DYNAMO_TRANSACTIONS_TABLE)
categories_table = dynamodb.Table(settings.DYNAMO_CATEGORIES_TABLE)
family_members_table = dynamodb.Table(settings.DYNAMO_FAMILY_MEMBERS_TABLE)
assets_table = dynamodb.Table(settings.DYNAMO_ASSETS_TABLE)
liabilities_table = dynamodb.Table(settings.DYNAMO_LIABILITIES_TABLE)
patterns_table = dynamodb.Table(settings.DYNAMO_PATTERNS_TABLE)
suggestions_table = dynamodb.Table(settings.DYNAMO_SUGGESTIONS_TABLE)
audit_logs_table = dynamodb.Table(settings.DYNAMO_AUDIT_LOGS_TABLE)


def _error_message(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Message", str(e))


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


def _query_all(table, **kwargs) -> List[Dict[str, Any]]:
    """Run a query and follow LastEvaluatedKey until every page is read."""
    items: List[Dict[str, Any]] = []
    while True:
        response = table.query(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


def _scan_all(table, **kwargs) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    while True:
        response = table.scan(**kwargs)
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        kwargs["ExclusiveStartKey"] = last_key


# ---------------------------------------------------------------------------
# Users (profiles)
# ---------------------------------------------------------------------------

def get_user_by_email(email: str):
    """Query the Users table by email (assumes a GSI exists on email)."""
    try:
        response = users_table.query(
            IndexName="email-index",
            KeyConditionExpression=Key("email").eq(email),
        )
        return _from_dynamo(response["Items"][0]) if response["Items"] else None
    except ClientError as e:
        logger.error(f"get_user_by_email failed: {_error_message(e)}")
        return None


def get_user_by_phone(phone_number: str):
    """Query the Users table by phone number (GSI phone-index, digits only)."""
    try:
        response = users_table.query(
            IndexName="phone-index",
            KeyConditionExpression=Key("phone_number").eq(phone_number),
        )
        return _from_dynamo(response["Items"][0]) if response["Items"] else None
    except ClientError as e:
        logger.error(f"get_user_by_phone failed: {_error_message(e)}")
        return None


def get_user_by_id(user_id: str):
    """Get user by user_id from the Users table."""
    try:
        response = users_table.get_item(Key={"user_id": user_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_user_by_id failed: {_error_message(e)}")
        return None


def put_user(user_item: dict):
    """Insert a new user into the Users table."""
    # GSI key attributes cannot be NULL, so unset optionals are dropped
    item = {k: v for k, v in user_item.items() if v is not None}
    try:
        users_table.put_item(Item=_convert_for_dynamo(item))
        return True
    except ClientError as e:
        logger.error(f"put_user failed: {_error_message(e)}")
        return False


def update_user(user_id: str, updates: dict, removes: Sequence[str] = ()):
    """Apply partial updates to a user profile and drop the attributes in removes.
    Returns the updated item or None."""
    return _update_item(users_table, {"user_id": user_id}, updates, "user_id", removes)


def list_users() -> List[Dict[str, Any]]:
    try:
        return [_from_dynamo(item) for item in _scan_all(users_table)]
    except ClientError as e:
        logger.error(f"list_users failed: {_error_message(e)}")
        return []


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

def get_subscription(user_id: str):
    try:
        response = subscriptions_table.get_item(Key={"user_id": user_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_subscription failed: {_error_message(e)}")
        return None


def put_subscription(subscription_item: dict):
    try:
        subscriptions_table.put_item(Item=_convert_for_dynamo(subscription_item))
        return True
    except ClientError as e:
        logger.error(f"put_subscription failed: {_error_message(e)}")
        return False


def list_subscriptions() -> List[Dict[str, Any]]:
    try:
        return [_from_dynamo(item) for item in _scan_all(subscriptions_table)]
    except ClientError as e:
        logger.error(f"list_subscriptions failed: {_error_message(e)}")
        return []


# ---------------------------------------------------------------------------
# User-owned rows, keyed (user_id, id)
# ---------------------------------------------------------------------------

def put_owned_item(table, item: dict) -> bool:
    """Insert or replace a row in one of the (user_id, id) keyed tables."""
    try:
        table.put_item(Item=_convert_for_dynamo(item))
        return True
    except ClientError as e:
        logger.error(f"put_item on {table.name} failed: {_error_message(e)}")
        return False


def get_owned_item(table, user_id: str, item_id: str):
    try:
        response = table.get_item(Key={"user_id": user_id, "id": item_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except ClientError as e:
        logger.error(f"get_item on {table.name} failed: {_error_message(e)}")
        return None


def list_owned_items(table, user_id: str, filter_expression=None) -> List[Dict[str, Any]]:
    kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}
    if filter_expression is not None:
        kwargs["FilterExpression"] = filter_expression
    try:
        return [_from_dynamo(item) for item in _query_all(table, **kwargs)]
    except ClientError as e:
        logger.error(f"query on {table.name} failed: {_error_message(e)}")
        return []


def update_owned_item(table, user_id: str, item_id: str, updates: dict):
    """Apply partial updates to an existing row. Returns the updated item or None."""
    return _update_item(table, {"user_id": user_id, "id": item_id}, updates, "id")


def delete_owned_item(table, user_id: str, item_id: str) -> bool:
    """Delete a specific row; False when it did not exist."""
    try:
        response = table.delete_item(
            Key={"user_id": user_id, "id": item_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in response
    except ClientError as e:
        logger.error(f"delete_item on {table.name} failed: {_error_message(e)}")
        return False


def put_owned_items(table, items: List[dict]) -> bool:
    if not items:
        return True
    try:
        with table.batch_writer() as batch:
            for item in items:
                batch.put_item(Item=_convert_for_dynamo(item))
        return True
    except ClientError as e:
        logger.error(f"batch write on {table.name} failed: {_error_message(e)}")
        return False


def _update_item(table, key: dict, updates: dict, exists_attr: str, removes: Sequence[str] = ()):
    if not updates and not removes:
        return None

    update_expression_parts = []
    expression_attribute_values = {}
    expression_attribute_names = {"#key": exists_attr}

    for idx, (name, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        value_placeholder = f":v{idx}"
        update_expression_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_names[placeholder] = name
        expression_attribute_values[value_placeholder] = value

    remove_parts = []
    for idx, name in enumerate(removes):
        placeholder = f"#r{idx}"
        remove_parts.append(placeholder)
        expression_attribute_names[placeholder] = name

    clauses = []
    if update_expression_parts:
        clauses.append("SET " + ", ".join(update_expression_parts))
    if remove_parts:
        clauses.append("REMOVE " + ", ".join(remove_parts))

    kwargs = {
        "Key": key,
        "UpdateExpression": " ".join(clauses),
        "ConditionExpression": "attribute_exists(#key)",
        "ExpressionAttributeNames": expression_attribute_names,
        "ReturnValues": "ALL_NEW",
    }
    # DynamoDB rejects an empty value map
    if expression_attribute_values:
        kwargs["ExpressionAttributeValues"] = _convert_for_dynamo(expression_attribute_values)

    try:
        response = table.update_item(**kwargs)
        attributes = response.get("Attributes")
        return _from_dynamo(attributes) if attributes else None
    except ClientError as e:
        if _error_code(e) == "ConditionalCheckFailedException":
            return None
        logger.error(f"update_item on {table.name} failed: {_error_message(e)}")
        return None


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def put_transaction(transaction_item: dict) -> bool:
    return put_owned_item(transactions_table, transaction_item)


def get_transaction(user_id: str, transaction_id: str):
    return get_owned_item(transactions_table, user_id, transaction_id)


def update_transaction(user_id: str, transaction_id: str, updates: dict):
    return update_owned_item(transactions_table, user_id, transaction_id, updates)


def delete_transaction(user_id: str, transaction_id: str) -> bool:
    return delete_owned_item(transactions_table, user_id, transaction_id)


def list_transactions(
    user_id: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    category: Optional[str] = None,
    family_member_id: Optional[str] = None,
    tx_type: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    List a user's transactions, newest first.
    Dates are ISO 'YYYY-MM-DD' strings and both bounds are inclusive.
    """
    conditions = []
    if start_date:
        conditions.append(Attr("date").gte(start_date))
    if end_date:
        conditions.append(Attr("date").lte(end_date))
    if category:
        conditions.append(Attr("category").eq(category))
    if family_member_id:
        conditions.append(Attr("family_member_id").eq(family_member_id))
    if tx_type:
        conditions.append(Attr("type").eq(tx_type))

    filter_expression = None
    for condition in conditions:
        filter_expression = condition if filter_expression is None else filter_expression & condition

    items = list_owned_items(transactions_table, user_id, filter_expression)
    items.sort(key=lambda t: (t.get("date", ""), t.get("created_at", "")), reverse=True)
    if limit is not None:
        return items[:limit]
    return items


# ---------------------------------------------------------------------------
# Categories, family members, patrimony
# ---------------------------------------------------------------------------

def list_categories(user_id: str) -> List[Dict[str, Any]]:
    return list_owned_items(categories_table, user_id)


def list_family_members(user_id: str) -> List[Dict[str, Any]]:
    return list_owned_items(family_members_table, user_id)


def list_assets(user_id: str) -> List[Dict[str, Any]]:
    return list_owned_items(assets_table, user_id)


def list_liabilities(user_id: str) -> List[Dict[str, Any]]:
    return list_owned_items(liabilities_table, user_id)


def get_patrimony(user_id: str) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    return list_assets(user_id), list_liabilities(user_id)


# ---------------------------------------------------------------------------
# Learned patterns and curation suggestions
# ---------------------------------------------------------------------------

def list_patterns(user_id: str) -> List[Dict[str, Any]]:
    return list_owned_items(patterns_table, user_id)


def upsert_pattern(user_id: str, pattern_type: str, pattern_key: str, pattern_value: Any,
                   confidence_score: float) -> bool:
    """One row per (type, normalized key): learning the same key again overwrites it."""
    normalized = pattern_key.lower().strip()
    item = {
        "user_id": user_id,
        "id": f"{pattern_type}:{normalized}",
        "pattern_type": pattern_type,
        "pattern_key": pattern_key,
        "pattern_value": pattern_value,
        "confidence_score": confidence_score,
        "updated_at": datetime.utcnow().isoformat(),
    }
    return put_owned_item(patterns_table, item)


def put_suggestions(suggestions: List[dict]) -> bool:
    return put_owned_items(suggestions_table, suggestions)


def list_suggestions(user_id: str, status: Optional[str] = "pending") -> List[Dict[str, Any]]:
    filter_expression = Attr("status").eq(status) if status else None
    items = list_owned_items(suggestions_table, user_id, filter_expression)
    items.sort(key=lambda s: s.get("created_at", ""), reverse=True)
    return items


def get_suggestion(user_id: str, suggestion_id: str):
    return get_owned_item(suggestions_table, user_id, suggestion_id)


def update_suggestion(user_id: str, suggestion_id: str, updates: dict):
    return update_owned_item(suggestions_table, user_id, suggestion_id, updates)


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

def put_audit_log(user_id: str, action: str, details: Optional[dict] = None) -> bool:
    now = datetime.utcnow().isoformat()
    item = {
        "user_id": user_id,
        "id": f"{now}_{uuid4().hex[:8]}",
        "action": action,
        "details": details or {},
        "created_at": now,
    }
    return put_owned_item(audit_logs_table, item)


def list_audit_logs(limit: int = 100) -> List[Dict[str, Any]]:
    try:
        items = [_from_dynamo(item) for item in _scan_all(audit_logs_table)]
    except ClientError as e:
        logger.error(f"list_audit_logs failed: {_error_message(e)}")
        return []
    items.sort(key=lambda log: log.get("created_at", ""), reverse=True)
    return items[:limit]


# ---------------------------------------------------------------------------
# Curation scheduler settings (stored on the user's profile)
# ---------------------------------------------------------------------------

def get_curation_settings(user_id: str):
    """
    Get a user's daily curation schedule.
    Returns dict with hour, minute, enabled, or None if the user does not exist.
    """
    user = get_user_by_id(user_id)
    if not user:
        return None
    return {
        "hour": user.get("curation_hour", 3),
        "minute": user.get("curation_minute", 0),
        "enabled": user.get("curation_enabled", False),
    }


def save_curation_settings(user_id: str, hour: int, minute: int, enabled: Optional[bool] = None) -> bool:
    updates = {
        "curation_hour": hour,
        "curation_minute": minute,
        "updated_at": datetime.utcnow().isoformat(),
    }
    if enabled is not None:
        updates["curation_enabled"] = enabled
    return update_user(user_id, updates) is not None


def get_all_users_with_curation_enabled() -> List[str]:
    try:
        items = _scan_all(
            users_table,
            FilterExpression=Attr("curation_enabled").eq(True),
            ProjectionExpression="user_id",
        )
        return [item["user_id"] for item in items]
    except ClientError as e:
        logger.error(f"get_all_users_with_curation_enabled failed: {_error_message(e)}")
        return []


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
