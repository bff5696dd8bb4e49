import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.errors import StorageError
from app.db.base import BUCKET_DATE, BUCKET_MONTH, Storage

logger = logging.getLogger(__name__)

# GSI name per aggregation bucket
BUCKET_INDEXES = {
    BUCKET_DATE: ("local_date-index", "local_date"),
    BUCKET_MONTH: ("local_month-index", "local_month"),
}
CATEGORY_INDEX = "category-index"

_INT_FIELDS = {"user_id"}


class DynamoStorage(Storage):
    """Storage backed by two DynamoDB tables: append-only expenses and per-user state."""

    def __init__(self, expenses_table, user_state_table):
        self.expenses_table = expenses_table
        self.user_state_table = user_state_table

    @classmethod
    def from_settings(cls) -> "DynamoStorage":
        dynamodb = _dynamodb_resource()
        return cls(
            expenses_table=dynamodb.Table(settings.DYNAMO_EXPENSES_TABLE),
            user_state_table=dynamodb.Table(settings.DYNAMO_USER_STATE_TABLE),
        )

    def insert_expense(
        self,
        user_id: int,
        category: str,
        amount: Decimal,
        recorded_at: datetime,
        local_date: str,
        local_month: str,
    ) -> str:
        expense_id = uuid4().hex
        item = {
            "expense_id": expense_id,
            "recorded_at_utc": recorded_at.isoformat(),
            "local_date": local_date,
            "local_month": local_month,
            "user_id": user_id,
            "category": category,
            "amount": amount,
        }
        try:
            self.expenses_table.put_item(
                Item=_convert_for_dynamo(item),
                ConditionExpression="attribute_not_exists(expense_id)",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"insert_expense failed: {_error_message(e)}")
            raise StorageError("Failed to save expense") from e
        return expense_id

    def sum_by_category(self, bucket_key: str, bucket_kind: str, categories: Sequence[str]) -> List[Dict]:
        """
        Query the bucket's GSI and sum amounts per category.
        Rows come back in the order of ``categories``.
        """
        if bucket_kind not in BUCKET_INDEXES:
            raise ValueError(f"Unknown bucket kind: {bucket_kind}")
        if not categories:
            return []

        index_name, key_name = BUCKET_INDEXES[bucket_kind]
        totals: Dict[str, Decimal] = OrderedDict()
        query_kwargs: Dict[str, Any] = {
            "IndexName": index_name,
            "KeyConditionExpression": Key(key_name).eq(bucket_key),
            "FilterExpression": Attr("category").is_in(list(categories)),
            "ProjectionExpression": "category, amount",
        }
        try:
            while True:
                response = self.expenses_table.query(**query_kwargs)
                for item in response.get("Items", []):
                    category = item["category"]
                    totals[category] = totals.get(category, Decimal("0")) + Decimal(str(item["amount"]))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                query_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error(f"sum_by_category failed for {bucket_kind}={bucket_key}: {_error_message(e)}")
            raise StorageError("Failed to read expenses") from e

        return [{"category": name, "total": totals[name]} for name in categories if name in totals]

    def get_user_state(self, user_id: int) -> Optional[Dict]:
        try:
            response = self.user_state_table.get_item(Key={"user_id": user_id})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"get_user_state failed: {_error_message(e)}")
            raise StorageError("Failed to read conversation state") from e
        item = response.get("Item")
        if not item:
            return None
        item = _from_dynamo(item)
        return {"step": item.get("step"), "category": item.get("category")}

    def set_user_state(self, user_id: int, step: str, category: Optional[str]) -> None:
        item = {"user_id": user_id, "step": step}
        if category is not None:
            item["category"] = category
        try:
            self.user_state_table.put_item(Item=_convert_for_dynamo(item))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"set_user_state failed: {_error_message(e)}")
            raise StorageError("Failed to save conversation state") from e

    def clear_user_state(self, user_id: int) -> None:
        try:
            self.user_state_table.delete_item(Key={"user_id": user_id})
        except (ClientError, BotoCoreError) as e:
            logger.error(f"clear_user_state failed: {_error_message(e)}")
            raise StorageError("Failed to clear conversation state") from e


def create_tables(dynamodb=None) -> List[str]:
    """
    Create the expenses and user-state tables if they do not exist yet.
    Returns the names of the tables that were created.
    """
    dynamodb = dynamodb or _dynamodb_resource()
    existing = {table.name for table in dynamodb.tables.all()}
    created = []

    if settings.DYNAMO_EXPENSES_TABLE not in existing:
        dynamodb.create_table(
            TableName=settings.DYNAMO_EXPENSES_TABLE,
            KeySchema=[{"AttributeName": "expense_id", "KeyType": "HASH"}],
            AttributeDefinitions=[
                {"AttributeName": "expense_id", "AttributeType": "S"},
                {"AttributeName": "local_date", "AttributeType": "S"},
                {"AttributeName": "local_month", "AttributeType": "S"},
                {"AttributeName": "category", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                _gsi(BUCKET_INDEXES[BUCKET_DATE][0], "local_date"),
                _gsi(BUCKET_INDEXES[BUCKET_MONTH][0], "local_month"),
                _gsi(CATEGORY_INDEX, "category"),
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        created.append(settings.DYNAMO_EXPENSES_TABLE)
        logger.info(f"Created table {settings.DYNAMO_EXPENSES_TABLE}")

    if settings.DYNAMO_USER_STATE_TABLE not in existing:
        dynamodb.create_table(
            TableName=settings.DYNAMO_USER_STATE_TABLE,
            KeySchema=[{"AttributeName": "user_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "user_id", "AttributeType": "N"}],
            BillingMode="PAY_PER_REQUEST",
        )
        created.append(settings.DYNAMO_USER_STATE_TABLE)
        logger.info(f"Created table {settings.DYNAMO_USER_STATE_TABLE}")

    return created


def _gsi(name: str, attribute: str) -> Dict:
    return {
        "IndexName": name,
        "KeySchema": [{"AttributeName": attribute, "KeyType": "HASH"}],
        "Projection": {"ProjectionType": "ALL"},
    }


def _dynamodb_resource():
    kwargs = {"region_name": settings.DYNAMO_REGION}
    if settings.DYNAMO_ENDPOINT_URL:
        kwargs["endpoint_url"] = settings.DYNAMO_ENDPOINT_URL
    return boto3.resource("dynamodb", **kwargs)


def _error_message(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Message", str(error))
    return str(error)


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


def _from_dynamo(obj: Any, key: Optional[str] = None):
    """
    Recursively convert DynamoDB Decimals back; integer id fields become int,
    amounts stay Decimal.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v, k) for k, v in obj.items()}
    if isinstance(obj, Decimal) and key in _INT_FIELDS:
        return int(obj)
    return obj
