import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from finance_tracker.core.config import Settings, settings as default_settings
from finance_tracker.core.errors import DuplicateRecordError, StoreError
from finance_tracker.db.base import Record, RecordStore
from finance_tracker.models.salary import period_key

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"
TRANSACTION_CANCELED = "TransactionCanceledException"
EMAIL_GUARD_PREFIX = "EMAIL#"


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _error_message(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Message", str(exc))


class DynamoStore(RecordStore):
    """
    Record store backed by three DynamoDB tables:

    - users:    PK ``user_id``, GSI ``email-index`` on ``email``; each user has a
      companion ``EMAIL#<email>`` item (no ``email`` attribute, so it stays out
      of the index) that reserves the address
    - expenses: PK ``user_id``, SK ``expense_id``
    - salaries: PK ``user_id``, SK ``period`` (``YYYY-MM``), which makes the
      one-salary-per-month rule a conditional write
    """

    def __init__(
        self,
        resource,
        users_table: str,
        expenses_table: str,
        salaries_table: str,
    ) -> None:
        self._resource = resource
        self.users_table = resource.Table(users_table)
        self.expenses_table = resource.Table(expenses_table)
        self.salaries_table = resource.Table(salaries_table)

    @classmethod
    def from_settings(cls, cfg: Settings = default_settings) -> "DynamoStore":
        resource = boto3.resource(
            "dynamodb",
            region_name=cfg.DYNAMO_REGION,
            endpoint_url=cfg.DYNAMO_ENDPOINT_URL,
        )
        logger.info(f"DynamoDB store opened (region={cfg.DYNAMO_REGION}, endpoint={cfg.DYNAMO_ENDPOINT_URL or 'aws'})")
        return cls(
            resource,
            users_table=cfg.DYNAMO_USERS_TABLE,
            expenses_table=cfg.DYNAMO_EXPENSES_TABLE,
            salaries_table=cfg.DYNAMO_SALARIES_TABLE,
        )

    def close(self) -> None:
        self._resource.meta.client.close()
        logger.info("DynamoDB store closed")

    # Users

    def get_user_by_email(self, email: str) -> Optional[Record]:
        """Query the Users table by email through the email-index GSI."""
        items = self._query_all(
            self.users_table,
            "get_user_by_email",
            IndexName="email-index",
            KeyConditionExpression=Key("email").eq(email),
        )
        return items[0] if items else None

    def get_user_by_id(self, user_id: str) -> Optional[Record]:
        return self._get_item(self.users_table, "get_user_by_id", {"user_id": user_id})

    def put_user(self, user_item: Record) -> None:
        # User and email reservation are written atomically: one account per address
        guard_item = {
            "user_id": EMAIL_GUARD_PREFIX + user_item["email"],
            "owner_id": user_item["user_id"],
        }
        try:
            self.users_table.meta.client.transact_write_items(
                TransactItems=[
                    {
                        "Put": {
                            "TableName": self.users_table.name,
                            "Item": _convert_for_dynamo(user_item),
                            "ConditionExpression": "attribute_not_exists(user_id)",
                        }
                    },
                    {
                        "Put": {
                            "TableName": self.users_table.name,
                            "Item": guard_item,
                            "ConditionExpression": "attribute_not_exists(user_id)",
                        }
                    },
                ]
            )
        except ClientError as e:
            if _error_code(e) == TRANSACTION_CANCELED:
                raise DuplicateRecordError("User already exists", key=user_item["email"])
            raise self._failure("put_user", e)

    def update_user_preferences(self, user_id: str, preferences: Record) -> Optional[Record]:
        return self._update_item(
            self.users_table,
            "update_user_preferences",
            key={"user_id": user_id},
            updates={"preferences": preferences},
        )

    # Expenses

    def put_expense(self, expense_item: Record) -> None:
        """Insert or overwrite an expense."""
        try:
            self.expenses_table.put_item(Item=_convert_for_dynamo(expense_item))
        except ClientError as e:
            raise self._failure("put_expense", e)

    def get_expense(self, user_id: str, expense_id: str) -> Optional[Record]:
        return self._get_item(
            self.expenses_table, "get_expense", {"user_id": user_id, "expense_id": expense_id}
        )

    def list_expenses(
        self,
        user_id: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Record]:
        # ISO dates compare correctly as strings
        conditions = []
        if start and end:
            conditions.append(Attr("date").between(start, end))
        elif start:
            conditions.append(Attr("date").gte(start))
        elif end:
            conditions.append(Attr("date").lte(end))
        if category:
            conditions.append(Attr("category").eq(category))

        kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}
        if conditions:
            filter_expression = conditions[0]
            for condition in conditions[1:]:
                filter_expression = filter_expression & condition
            kwargs["FilterExpression"] = filter_expression

        return self._query_all(self.expenses_table, "list_expenses", **kwargs)

    def update_expense(self, user_id: str, expense_id: str, updates: Record) -> Optional[Record]:
        return self._update_item(
            self.expenses_table,
            "update_expense",
            key={"user_id": user_id, "expense_id": expense_id},
            updates=updates,
        )

    def delete_expense(self, user_id: str, expense_id: str) -> bool:
        return self._delete_item(
            self.expenses_table, "delete_expense", {"user_id": user_id, "expense_id": expense_id}
        )

    # Salaries

    def create_salary(self, salary_item: Record) -> None:
        item = dict(salary_item, period=period_key(salary_item["year"], salary_item["month"]))
        self._put_new_salary(item, "create_salary")

    def list_salaries(self, user_id: str) -> List[Record]:
        items = self._query_all(
            self.salaries_table,
            "list_salaries",
            KeyConditionExpression=Key("user_id").eq(user_id),
            ScanIndexForward=False,
        )
        return [_strip_period(item) for item in items]

    def get_salary(self, user_id: str, salary_id: str) -> Optional[Record]:
        # A user holds at most one record per month, so a filtered query stays small
        items = self._query_all(
            self.salaries_table,
            "get_salary",
            KeyConditionExpression=Key("user_id").eq(user_id),
            FilterExpression=Attr("salary_id").eq(salary_id),
        )
        return _strip_period(items[0]) if items else None

    def get_salary_for_period(self, user_id: str, year: int, month: int) -> Optional[Record]:
        item = self._get_item(
            self.salaries_table,
            "get_salary_for_period",
            {"user_id": user_id, "period": period_key(year, month)},
        )
        return _strip_period(item) if item else None

    def replace_salary(self, salary_item: Record, previous_period: str) -> Record:
        new_period = period_key(salary_item["year"], salary_item["month"])
        item = dict(salary_item, period=new_period)

        if new_period == previous_period:
            try:
                self.salaries_table.put_item(Item=_convert_for_dynamo(item))
            except ClientError as e:
                raise self._failure("replace_salary", e)
            return _strip_period(item)

        # Claim the new period first so a conflict leaves the old record intact
        self._put_new_salary(item, "replace_salary")
        try:
            self.salaries_table.delete_item(
                Key={"user_id": salary_item["user_id"], "period": previous_period}
            )
        except ClientError as e:
            raise self._failure("replace_salary", e)
        return _strip_period(item)

    def delete_salary(self, user_id: str, salary_id: str) -> bool:
        existing = self.get_salary(user_id, salary_id)
        if not existing:
            return False
        return self._delete_item(
            self.salaries_table,
            "delete_salary",
            {"user_id": user_id, "period": period_key(existing["year"], existing["month"])},
        )

    # Health

    def table_status(self) -> Dict[str, Record]:
        status = {}
        for name, table in (
            ("users", self.users_table),
            ("expenses", self.expenses_table),
            ("salaries", self.salaries_table),
        ):
            try:
                table.scan(Limit=1)
                status[name] = {"name": table.name, "status": "accessible"}
            except ClientError as e:
                logger.error(f"Table check failed for {table.name}: {_error_message(e)}")
                status[name] = {"name": table.name, "status": "error", "error": _error_message(e)}
        return status

    # Helpers

    def _put_new_salary(self, item: Record, operation: str) -> None:
        try:
            self.salaries_table.put_item(
                Item=_convert_for_dynamo(item),
                ConditionExpression="attribute_not_exists(#p)",
                ExpressionAttributeNames={"#p": "period"},
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                raise DuplicateRecordError(
                    "Salary record for this month already exists", key=item["period"]
                )
            raise self._failure(operation, e)

    def _get_item(self, table, operation: str, key: Record) -> Optional[Record]:
        try:
            response = table.get_item(Key=key)
        except ClientError as e:
            raise self._failure(operation, e)
        item = response.get("Item")
        return _from_dynamo(item) if item else None

    def _query_all(self, table, operation: str, **kwargs) -> List[Record]:
        """Run a query, following LastEvaluatedKey until every page is read."""
        items: List[Record] = []
        try:
            while True:
                response = table.query(**kwargs)
                items.extend(_from_dynamo(item) for item in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return items
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            raise self._failure(operation, e)

    def _update_item(self, table, operation: str, key: Record, updates: Record) -> Optional[Record]:
        """
        Apply partial updates to an existing item. Returns the updated item, or
        None if no item has that key (DynamoDB would otherwise upsert).
        """
        if not updates:
            return None

        update_expression_parts = []
        expression_attribute_values = {}
        expression_attribute_names = {}

        for idx, (name, value) in enumerate(updates.items()):
            placeholder = f"#f{idx}"
            value_placeholder = f":v{idx}"
            update_expression_parts.append(f"{placeholder} = {value_placeholder}")
            expression_attribute_names[placeholder] = name
            expression_attribute_values[value_placeholder] = value

        condition_parts = []
        for idx, key_name in enumerate(key):
            placeholder = f"#k{idx}"
            expression_attribute_names[placeholder] = key_name
            condition_parts.append(f"attribute_exists({placeholder})")

        try:
            response = table.update_item(
                Key=key,
                UpdateExpression="SET " + ", ".join(update_expression_parts),
                ConditionExpression=" AND ".join(condition_parts),
                ExpressionAttributeNames=expression_attribute_names,
                ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if _error_code(e) == CONDITIONAL_CHECK_FAILED:
                return None
            raise self._failure(operation, e)
        attributes = response.get("Attributes")
        return _from_dynamo(attributes) if attributes else None

    def _delete_item(self, table, operation: str, key: Record) -> bool:
        try:
            response = table.delete_item(Key=key, ReturnValues="ALL_OLD")
        except ClientError as e:
            raise self._failure(operation, e)
        return "Attributes" in response

    @staticmethod
    def _failure(operation: str, exc: ClientError) -> StoreError:
        message = _error_message(exc)
        logger.error(f"{operation} failed: {message}")
        return StoreError(f"{operation} failed: {message}")


def _strip_period(item: Record) -> Record:
    return {k: v for k, v in item.items() if k != "period"}


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, bool):
        return obj
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
