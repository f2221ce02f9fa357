"""
DynamoDB access layer.

One table per entity, partitioned by ``user_id`` (categories by ``owner_id``).
Every function returns plain dicts with native numeric types; any AWS failure
is logged and re-raised as ``DataAccessError``. Nothing here retries beyond
what botocore already does.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.errors import DataAccessError
from app.models.category import DEFAULT_OWNER_ID, category_to_record, default_categories
from app.utils.date_ranges import to_iso

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource(
    "dynamodb",
    region_name=settings.DYNAMO_REGION,
    endpoint_url=settings.DYNAMO_ENDPOINT_URL or None,
)

# Get table references
users_table = dynamodb.Table(settings.DYNAMO_USERS_TABLE)
transactions_table = dynamodb.Table(settings.DYNAMO_TRANSACTIONS_TABLE)
budgets_table = dynamodb.Table(settings.DYNAMO_BUDGETS_TABLE)
goals_table = dynamodb.Table(settings.DYNAMO_GOALS_TABLE)
categories_table = dynamodb.Table(settings.DYNAMO_CATEGORIES_TABLE)
recurring_table = dynamodb.Table(settings.DYNAMO_RECURRING_TABLE)
notifications_table = dynamodb.Table(settings.DYNAMO_NOTIFICATIONS_TABLE)
preferences_table = dynamodb.Table(settings.DYNAMO_PREFERENCES_TABLE)

AWS_ERRORS = (ClientError, BotoCoreError)


def _raise(operation: str, error: Exception):
    if isinstance(error, ClientError):
        detail = error.response.get("Error", {}).get("Message", str(error))
    else:
        detail = str(error)
    logger.error(f"{operation} failed: {detail}")
    raise DataAccessError(f"Data store error during {operation}") from error


# ---------- Generic helpers ----------

def _query_all(table, operation: str, **kwargs) -> List[Dict[str, Any]]:
    """Run a query, following LastEvaluatedKey until the partition is exhausted."""
    items: List[Dict[str, Any]] = []
    try:
        while True:
            response = table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
    except AWS_ERRORS as e:
        _raise(operation, e)
    return [_from_dynamo(item) for item in items]


def _get(table, key: Dict[str, str], operation: str) -> Optional[Dict[str, Any]]:
    try:
        response = table.get_item(Key=key)
    except AWS_ERRORS as e:
        _raise(operation, e)
    item = response.get("Item")
    return _from_dynamo(item) if item else None


def _put(table, item: Dict[str, Any], operation: str) -> Dict[str, Any]:
    try:
        table.put_item(Item=_convert_for_dynamo(item))
    except AWS_ERRORS as e:
        _raise(operation, e)
    return item


def _update(table, key: Dict[str, str], updates: Dict[str, Any], operation: str) -> Optional[Dict[str, Any]]:
    """
    Apply partial updates to an existing item. Returns the updated item, or
    None when no item exists under ``key``.
    """
    if not updates:
        return _get(table, key, operation)

    update_expression_parts = []
    expression_attribute_values = {}
    expression_attribute_names = {}

    for idx, (field, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        value_placeholder = f":v{idx}"
        update_expression_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_names[placeholder] = field
        expression_attribute_values[value_placeholder] = value

    key_name = next(iter(key))
    expression_attribute_names["#pk"] = key_name

    try:
        response = table.update_item(
            Key=key,
            UpdateExpression="SET " + ", ".join(update_expression_parts),
            ConditionExpression="attribute_exists(#pk)",
            ExpressionAttributeNames=expression_attribute_names,
            ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
            return None
        _raise(operation, e)
    except BotoCoreError as e:
        _raise(operation, e)
    attributes = response.get("Attributes")
    return _from_dynamo(attributes) if attributes else None


def _delete(table, key: Dict[str, str], operation: str) -> bool:
    try:
        response = table.delete_item(Key=key, ReturnValues="ALL_OLD")
    except AWS_ERRORS as e:
        _raise(operation, e)
    return "Attributes" in response


# ---------- Users ----------

def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    """Query the Users table by email (assumes a GSI named email-index)."""
    items = _query_all(
        users_table,
        "get_user_by_email",
        IndexName="email-index",
        KeyConditionExpression=Key("email").eq(email),
    )
    return items[0] if items else None


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    return _get(users_table, {"user_id": user_id}, "get_user_by_id")


def put_user(user_item: Dict[str, Any]) -> Dict[str, Any]:
    return _put(users_table, user_item, "put_user")


def update_user(user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _update(users_table, {"user_id": user_id}, updates, "update_user")


def list_user_ids() -> List[str]:
    """Scan the Users table for every user id (used by the scheduler sweep)."""
    user_ids: List[str] = []
    kwargs: Dict[str, Any] = {"ProjectionExpression": "user_id"}
    try:
        while True:
            response = users_table.scan(**kwargs)
            user_ids.extend(item["user_id"] for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
    except AWS_ERRORS as e:
        _raise("list_user_ids", e)
    return user_ids


# ---------- Transactions ----------

def put_transaction(item: Dict[str, Any]) -> Dict[str, Any]:
    return _put(transactions_table, item, "put_transaction")


def get_transaction(user_id: str, transaction_id: str) -> Optional[Dict[str, Any]]:
    return _get(transactions_table, {"user_id": user_id, "transaction_id": transaction_id}, "get_transaction")


def find_transactions(
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    type: Optional[str] = None,
    category: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Transactions for a user, oldest first. ``start``/``end`` are inclusive and
    map onto the date-prefixed sort key.
    """
    condition = Key("user_id").eq(user_id)
    if start and end:
        condition &= Key("transaction_id").between(to_iso(start), to_iso(end) + "#~")
    elif start:
        condition &= Key("transaction_id").gte(to_iso(start))
    elif end:
        condition &= Key("transaction_id").lte(to_iso(end) + "#~")

    kwargs: Dict[str, Any] = {"KeyConditionExpression": condition}
    filters = None
    if type:
        filters = Attr("type").eq(type)
    if category:
        category_filter = Attr("category").eq(category)
        filters = category_filter if filters is None else filters & category_filter
    if filters is not None:
        kwargs["FilterExpression"] = filters

    return _query_all(transactions_table, "find_transactions", **kwargs)


def count_transactions(user_id: str, category: Optional[str] = None) -> int:
    kwargs: Dict[str, Any] = {
        "KeyConditionExpression": Key("user_id").eq(user_id),
        "Select": "COUNT",
    }
    if category:
        kwargs["FilterExpression"] = Attr("category").eq(category)
    total = 0
    try:
        while True:
            response = transactions_table.query(**kwargs)
            total += response.get("Count", 0)
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
    except AWS_ERRORS as e:
        _raise("count_transactions", e)
    return total


def update_transaction(user_id: str, transaction_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _update(
        transactions_table,
        {"user_id": user_id, "transaction_id": transaction_id},
        updates,
        "update_transaction",
    )


def delete_transaction(user_id: str, transaction_id: str) -> bool:
    return _delete(transactions_table, {"user_id": user_id, "transaction_id": transaction_id}, "delete_transaction")


# ---------- Budgets ----------

def put_budget(item: Dict[str, Any]) -> Dict[str, Any]:
    return _put(budgets_table, item, "put_budget")


def get_budget(user_id: str, budget_id: str) -> Optional[Dict[str, Any]]:
    return _get(budgets_table, {"user_id": user_id, "budget_id": budget_id}, "get_budget")


def list_budgets(user_id: str, active_only: bool = False) -> List[Dict[str, Any]]:
    kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}
    if active_only:
        kwargs["FilterExpression"] = Attr("is_active").eq(True)
    return _query_all(budgets_table, "list_budgets", **kwargs)


def update_budget(user_id: str, budget_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _update(budgets_table, {"user_id": user_id, "budget_id": budget_id}, updates, "update_budget")


def delete_budget(user_id: str, budget_id: str) -> bool:
    return _delete(budgets_table, {"user_id": user_id, "budget_id": budget_id}, "delete_budget")


# ---------- Goals ----------

def put_goal(item: Dict[str, Any]) -> Dict[str, Any]:
    return _put(goals_table, item, "put_goal")


def get_goal(user_id: str, goal_id: str) -> Optional[Dict[str, Any]]:
    return _get(goals_table, {"user_id": user_id, "goal_id": goal_id}, "get_goal")


def list_goals(user_id: str) -> List[Dict[str, Any]]:
    return _query_all(goals_table, "list_goals", KeyConditionExpression=Key("user_id").eq(user_id))


def update_goal(user_id: str, goal_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _update(goals_table, {"user_id": user_id, "goal_id": goal_id}, updates, "update_goal")


def delete_goal(user_id: str, goal_id: str) -> bool:
    return _delete(goals_table, {"user_id": user_id, "goal_id": goal_id}, "delete_goal")


# ---------- Categories ----------

def put_category(item: Dict[str, Any]) -> Dict[str, Any]:
    return _put(categories_table, item, "put_category")


def get_category(owner_id: str, category_id: str) -> Optional[Dict[str, Any]]:
    return _get(categories_table, {"owner_id": owner_id, "category_id": category_id}, "get_category")


def list_categories(owner_id: str) -> List[Dict[str, Any]]:
    return _query_all(categories_table, "list_categories", KeyConditionExpression=Key("owner_id").eq(owner_id))


def update_category(owner_id: str, category_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _update(categories_table, {"owner_id": owner_id, "category_id": category_id}, updates, "update_category")


def delete_category(owner_id: str, category_id: str) -> bool:
    return _delete(categories_table, {"owner_id": owner_id, "category_id": category_id}, "delete_category")


def seed_default_categories() -> int:
    """Write the shared default categories once. Returns how many were written."""
    if list_categories(DEFAULT_OWNER_ID):
        logger.info("Default categories already exist")
        return 0
    categories = default_categories()
    try:
        with categories_table.batch_writer() as batch:
            for category in categories:
                batch.put_item(Item=_convert_for_dynamo(category_to_record(category)))
    except AWS_ERRORS as e:
        _raise("seed_default_categories", e)
    logger.info(f"Seeded {len(categories)} default categories")
    return len(categories)


# ---------- Recurring transactions ----------

def put_recurring(item: Dict[str, Any]) -> Dict[str, Any]:
    return _put(recurring_table, item, "put_recurring")


def get_recurring(user_id: str, recurring_id: str) -> Optional[Dict[str, Any]]:
    return _get(recurring_table, {"user_id": user_id, "recurring_id": recurring_id}, "get_recurring")


def list_recurring(user_id: str) -> List[Dict[str, Any]]:
    return _query_all(recurring_table, "list_recurring", KeyConditionExpression=Key("user_id").eq(user_id))


def update_recurring(user_id: str, recurring_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _update(recurring_table, {"user_id": user_id, "recurring_id": recurring_id}, updates, "update_recurring")


def delete_recurring(user_id: str, recurring_id: str) -> bool:
    return _delete(recurring_table, {"user_id": user_id, "recurring_id": recurring_id}, "delete_recurring")


# ---------- Notifications ----------

def put_notification(item: Dict[str, Any]) -> Dict[str, Any]:
    return _put(notifications_table, item, "put_notification")


def get_notification(user_id: str, notification_id: str) -> Optional[Dict[str, Any]]:
    return _get(notifications_table, {"user_id": user_id, "notification_id": notification_id}, "get_notification")


def list_notifications(user_id: str, since: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Notifications oldest first; ``since`` bounds the created-at sort key."""
    condition = Key("user_id").eq(user_id)
    if since:
        condition &= Key("notification_id").gte(to_iso(since))
    return _query_all(notifications_table, "list_notifications", KeyConditionExpression=condition)


def update_notification(user_id: str, notification_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _update(
        notifications_table,
        {"user_id": user_id, "notification_id": notification_id},
        updates,
        "update_notification",
    )


def delete_notification(user_id: str, notification_id: str) -> bool:
    return _delete(notifications_table, {"user_id": user_id, "notification_id": notification_id}, "delete_notification")


# ---------- Preferences ----------

def get_preferences(user_id: str) -> Optional[Dict[str, Any]]:
    return _get(preferences_table, {"user_id": user_id}, "get_preferences")


def put_preferences(item: Dict[str, Any]) -> Dict[str, Any]:
    """One item per user; a put replaces the whole document."""
    return _put(preferences_table, item, "put_preferences")


def delete_preferences(user_id: str) -> bool:
    return _delete(preferences_table, {"user_id": user_id}, "delete_preferences")


# ---------- Type conversion ----------

def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, datetime):
        return to_iso(obj)
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
