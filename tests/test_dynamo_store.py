from decimal import Decimal

import boto3
import pytest
from botocore.stub import ANY, Stubber

from finance_tracker.core.errors import DuplicateRecordError, StoreError
from finance_tracker.db.dynamo import DynamoStore, _convert_for_dynamo, _from_dynamo

SALARY = {
    "user_id": "u1",
    "salary_id": "s1",
    "basic_salary": 1000.5,
    "allowances": {"housing": 0.0, "transport": 0.0, "food": 0.0, "other": 0.0},
    "deductions": {"tax": 0.0, "insurance": 0.0, "pension": 0.0, "other": 0.0},
    "month": 6,
    "year": 2024,
    "pay_date": "2024-06-28",
    "gross_salary": 1000.5,
    "net_salary": 1000.5,
}


@pytest.fixture
def dynamo_store():
    resource = boto3.resource(
        "dynamodb",
        region_name="eu-west-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    return DynamoStore(resource, users_table="users", expenses_table="expenses", salaries_table="salaries")


@pytest.fixture
def stubber(dynamo_store):
    with Stubber(dynamo_store.users_table.meta.client) as stub:
        yield stub
        stub.assert_no_pending_responses()


def conditional_failure(stub, operation):
    stub.add_client_error(
        operation,
        service_error_code="ConditionalCheckFailedException",
        service_message="The conditional request failed",
        http_status_code=400,
    )


def test_convert_for_dynamo():
    converted = _convert_for_dynamo({"amount": 12.5, "flag": True, "items": [1.25, "a"], "n": 3})
    assert converted == {"amount": Decimal("12.5"), "flag": True, "items": [Decimal("1.25"), "a"], "n": 3}


def test_from_dynamo():
    assert _from_dynamo({"a": Decimal("500"), "b": [Decimal("12.5")], "c": "x"}) == {"a": 500, "b": [12.5], "c": "x"}


def test_create_salary_writes_conditionally(dynamo_store, stubber):
    stubber.add_response(
        "put_item",
        {},
        expected_params={
            "TableName": "salaries",
            "Item": ANY,
            "ConditionExpression": "attribute_not_exists(#p)",
            "ExpressionAttributeNames": {"#p": "period"},
        },
    )
    dynamo_store.create_salary(SALARY)


def test_create_salary_duplicate(dynamo_store, stubber):
    conditional_failure(stubber, "put_item")
    with pytest.raises(DuplicateRecordError) as excinfo:
        dynamo_store.create_salary(SALARY)
    assert excinfo.value.key == "2024-06"


def test_replace_salary_moves_period(dynamo_store, stubber):
    stubber.add_response("put_item", {})
    stubber.add_response(
        "delete_item",
        {},
        expected_params={"TableName": "salaries", "Key": ANY},
    )
    saved = dynamo_store.replace_salary(SALARY, previous_period="2024-05")
    assert "period" not in saved


def test_replace_salary_conflict_keeps_old_record(dynamo_store, stubber):
    # No delete_item is queued: the old record must survive the conflict
    conditional_failure(stubber, "put_item")
    with pytest.raises(DuplicateRecordError):
        dynamo_store.replace_salary(SALARY, previous_period="2024-05")


def test_update_missing_expense_returns_none(dynamo_store, stubber):
    conditional_failure(stubber, "update_item")
    assert dynamo_store.update_expense("u1", "missing", {"amount": 5.0}) is None


def test_update_with_no_fields_skips_call(dynamo_store, stubber):
    assert dynamo_store.update_expense("u1", "e1", {}) is None


def test_list_expenses_follows_pages(dynamo_store, stubber):
    stubber.add_response(
        "query",
        {
            "Items": [{"user_id": {"S": "u1"}, "expense_id": {"S": "e1"}, "amount": {"N": "12.5"}}],
            "LastEvaluatedKey": {"user_id": {"S": "u1"}, "expense_id": {"S": "e1"}},
        },
    )
    stubber.add_response(
        "query",
        {"Items": [{"user_id": {"S": "u1"}, "expense_id": {"S": "e2"}, "amount": {"N": "500"}}]},
    )

    items = dynamo_store.list_expenses("u1", start="2024-01-01", end="2024-01-31", category="Food")

    assert [(i["expense_id"], i["amount"]) for i in items] == [("e1", 12.5), ("e2", 500)]


def test_client_errors_become_store_errors(dynamo_store, stubber):
    stubber.add_client_error(
        "get_item",
        service_error_code="ProvisionedThroughputExceededException",
        service_message="Slow down",
        http_status_code=400,
    )
    with pytest.raises(StoreError, match="Slow down"):
        dynamo_store.get_expense("u1", "e1")


def test_delete_reports_missing_item(dynamo_store, stubber):
    stubber.add_response("delete_item", {})
    assert dynamo_store.delete_expense("u1", "e1") is False


def test_table_status(dynamo_store, stubber):
    stubber.add_response("scan", {"Items": []})
    stubber.add_response("scan", {"Items": []})
    stubber.add_client_error("scan", service_error_code="ResourceNotFoundException", service_message="no table")

    status = dynamo_store.table_status()

    assert status["users"]["status"] == "accessible"
    assert status["expenses"]["status"] == "accessible"
    assert status["salaries"] == {"name": "salaries", "status": "error", "error": "no table"}


USER = {
    "user_id": "u1",
    "name": "Ana",
    "email": "ana@mail.com",
    "password_hash": "hash",
    "created_at": "2024-01-01T00:00:00",
    "preferences": {"language": "en", "dark_mode": False, "currency": "USD"},
}


def test_put_user_reserves_email(dynamo_store, stubber):
    stubber.add_response("transact_write_items", {})
    dynamo_store.put_user(USER)


def test_put_user_duplicate_email(dynamo_store, stubber):
    stubber.add_client_error(
        "transact_write_items",
        service_error_code="TransactionCanceledException",
        service_message="Transaction cancelled, please refer cancellation reasons for specific reasons [None, ConditionalCheckFailed]",
        http_status_code=400,
    )
    with pytest.raises(DuplicateRecordError) as excinfo:
        dynamo_store.put_user(USER)
    assert excinfo.value.key == "ana@mail.com"
