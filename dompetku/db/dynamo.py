import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from dompetku.core.config import settings
from dompetku.core.errors import StoreError
from dompetku.models.transaction import TransactionFields, TransactionInDB

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource(
    "dynamodb",
    region_name=settings.DYNAMO_REGION,
    endpoint_url=settings.DYNAMO_ENDPOINT_URL,
)

# Get table references
users_table = dynamodb.Table(settings.DYNAMO_USERS_TABLE)
transactions_table = dynamodb.Table(settings.DYNAMO_TRANSACTIONS_TABLE)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _store_error(operation: str, exc: Exception) -> StoreError:
    if isinstance(exc, ClientError):
        message = exc.response.get("Error", {}).get("Message") or str(exc)
    else:
        message = str(exc)
    logger.error(f"{operation} failed: {message}")
    return StoreError(message)


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


# --------------------------------------------------------------------------
# Users
# --------------------------------------------------------------------------

def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    """Query the Users table by email (requires the ``email-index`` GSI)."""
    try:
        response = users_table.query(
            IndexName="email-index",
            KeyConditionExpression=Key("email").eq(email.lower()),
        )
    except (ClientError, BotoCoreError) as e:
        raise _store_error("get_user_by_email", e)
    items = response.get("Items", [])
    return _from_dynamo(items[0]) if items else None


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    try:
        response = users_table.get_item(Key={"user_id": user_id})
    except (ClientError, BotoCoreError) as e:
        raise _store_error("get_user_by_id", e)
    item = response.get("Item")
    return _from_dynamo(item) if item else None


def put_user(user_item: Dict[str, Any]) -> None:
    """Insert a new user; never overwrites an existing user_id."""
    user_item = dict(user_item, email=user_item["email"].lower())
    try:
        users_table.put_item(
            Item=_convert_for_dynamo(user_item),
            ConditionExpression="attribute_not_exists(user_id)",
        )
    except (ClientError, BotoCoreError) as e:
        raise _store_error("put_user", e)


def update_user(user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Apply partial updates to a user. Keys mapped to ``None`` are removed.
    Returns the updated item, or None when the user does not exist.
    """
    if not updates:
        return get_user_by_id(user_id)

    expression, names, values = _update_expression(updates)
    kwargs = {
        "Key": {"user_id": user_id},
        "UpdateExpression": expression,
        "ExpressionAttributeNames": names,
        "ConditionExpression": "attribute_exists(user_id)",
        "ReturnValues": "ALL_NEW",
    }
    if values:
        kwargs["ExpressionAttributeValues"] = _convert_for_dynamo(values)

    try:
        response = users_table.update_item(**kwargs)
    except ClientError as e:
        if _is_conditional_failure(e):
            return None
        raise _store_error("update_user", e)
    except BotoCoreError as e:
        raise _store_error("update_user", e)
    attributes = response.get("Attributes")
    return _from_dynamo(attributes) if attributes else None


# --------------------------------------------------------------------------
# Transactions
# --------------------------------------------------------------------------

def list_transactions(user_id: str) -> List[Dict[str, Any]]:
    """All transactions of one owner, newest date first."""
    items: List[Dict[str, Any]] = []
    kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}
    try:
        while True:
            response = transactions_table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
    except (ClientError, BotoCoreError) as e:
        raise _store_error("list_transactions", e)

    transactions = [_from_dynamo(item) for item in items]
    transactions.sort(key=lambda tx: (tx.get("date", ""), tx.get("created_at", "")), reverse=True)
    return transactions


def create_transaction(user_id: str, fields: TransactionFields) -> Dict[str, Any]:
    """Insert a transaction for ``user_id`` under a fresh identifier."""
    transaction = TransactionInDB(user_id=user_id, **fields.model_dump())
    item = transaction.to_item()
    try:
        transactions_table.put_item(
            Item=_convert_for_dynamo(item),
            ConditionExpression="attribute_not_exists(transaction_id)",
        )
    except (ClientError, BotoCoreError) as e:
        raise _store_error("create_transaction", e)
    return item


def update_transaction(transaction_id: str, user_id: str, fields: TransactionFields) -> Optional[Dict[str, Any]]:
    """
    Replace the mutable fields of one of ``user_id``'s transactions.
    The id, owner and creation time are never written. Returns None when the
    owner has no such transaction.
    """
    updates = TransactionInDB(
        user_id=user_id,
        transaction_id=transaction_id,
        **fields.model_dump(),
    ).mutable_item()
    expression, names, values = _update_expression(updates)

    try:
        response = transactions_table.update_item(
            Key={"user_id": user_id, "transaction_id": transaction_id},
            UpdateExpression=expression,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=_convert_for_dynamo(values),
            ConditionExpression="attribute_exists(transaction_id)",
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if _is_conditional_failure(e):
            return None
        raise _store_error("update_transaction", e)
    except BotoCoreError as e:
        raise _store_error("update_transaction", e)
    attributes = response.get("Attributes")
    return _from_dynamo(attributes) if attributes else None


def delete_transaction(transaction_id: str, user_id: str) -> bool:
    """Delete exactly the row keyed by (user_id, transaction_id)."""
    try:
        response = transactions_table.delete_item(
            Key={"user_id": user_id, "transaction_id": transaction_id},
            ReturnValues="ALL_OLD",
        )
    except (ClientError, BotoCoreError) as e:
        raise _store_error("delete_transaction", e)
    return "Attributes" in response


def ping_table(table) -> None:
    try:
        table.scan(Limit=1)
    except (ClientError, BotoCoreError) as e:
        raise _store_error(f"ping {table.name}", e)


# --------------------------------------------------------------------------
# Helpers
# --------------------------------------------------------------------------

def _update_expression(updates: Dict[str, Any]):
    set_parts = []
    remove_parts = []
    expression_attribute_names = {}
    expression_attribute_values = {}

    for idx, (key, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        expression_attribute_names[placeholder] = key
        if value is None:
            remove_parts.append(placeholder)
            continue
        value_placeholder = f":v{idx}"
        set_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_values[value_placeholder] = value

    clauses = []
    if set_parts:
        clauses.append("SET " + ", ".join(set_parts))
    if remove_parts:
        clauses.append("REMOVE " + ", ".join(remove_parts))
    return " ".join(clauses), expression_attribute_names, expression_attribute_values


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
