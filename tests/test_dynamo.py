import datetime as dt
from decimal import Decimal

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from pydantic import ValidationError as ModelValidationError

from dompetku.core.errors import StoreError
from dompetku.db import dynamo
from dompetku.models.transaction import TransactionCreate, TransactionUpdate


def _fields(type="expense", amount=10, description="Coffee", date=dt.date(2025, 3, 15)):
    return TransactionCreate(type=type, amount=amount, description=description, date=date)


def test_create_derives_month_and_identifier(transactions_table):
    item = dynamo.create_transaction("alice", _fields())

    assert item["month"] == "2025-03"
    assert item["date"] == "2025-03-15"
    assert item["user_id"] == "alice"
    assert item["transaction_id"]
    stored = transactions_table.items[("alice", item["transaction_id"])]
    assert stored["amount"] == Decimal("10")


def test_create_gives_fresh_identifiers(transactions_table):
    first = dynamo.create_transaction("alice", _fields())
    second = dynamo.create_transaction("alice", _fields())
    assert first["transaction_id"] != second["transaction_id"]


def test_model_rejects_negative_amount_and_blank_description():
    with pytest.raises(ModelValidationError):
        _fields(amount=-1)
    with pytest.raises(ModelValidationError):
        _fields(description="   ")
    with pytest.raises(ModelValidationError):
        _fields(type="transfer")


def test_list_is_owner_scoped_and_newest_first(transactions_table):
    dynamo.create_transaction("alice", _fields(date=dt.date(2025, 1, 2)))
    dynamo.create_transaction("alice", _fields(date=dt.date(2025, 3, 1)))
    dynamo.create_transaction("bob", _fields(date=dt.date(2025, 2, 1)))
    dynamo.create_transaction("alice", _fields(date=dt.date(2025, 2, 10)))

    rows = dynamo.list_transactions("alice")

    assert [row["date"] for row in rows] == ["2025-03-01", "2025-02-10", "2025-01-02"]
    assert {row["user_id"] for row in rows} == {"alice"}
    assert rows[0]["amount"] == 10


def test_list_follows_pagination(transactions_table):
    transactions_table.page_size = 2
    for day in range(1, 6):
        dynamo.create_transaction("alice", _fields(date=dt.date(2025, 4, day)))

    rows = dynamo.list_transactions("alice")

    assert len(rows) == 5
    assert transactions_table.calls.count("query") == 3


def test_update_replaces_mutable_fields_only(transactions_table):
    created = dynamo.create_transaction("alice", _fields())

    updated = dynamo.update_transaction(
        created["transaction_id"],
        "alice",
        TransactionUpdate(type="income", amount=99.5, description="Refund", date=dt.date(2025, 4, 1)),
    )

    assert updated["transaction_id"] == created["transaction_id"]
    assert updated["user_id"] == "alice"
    assert updated["created_at"] == created["created_at"]
    assert updated["type"] == "income"
    assert updated["amount"] == 99.5
    assert updated["month"] == "2025-04"


def test_update_cannot_touch_other_owner(transactions_table):
    created = dynamo.create_transaction("alice", _fields())

    result = dynamo.update_transaction(created["transaction_id"], "mallory", _fields(amount=1))

    assert result is None
    assert transactions_table.items[("alice", created["transaction_id"])]["amount"] == Decimal("10")
    assert ("mallory", created["transaction_id"]) not in transactions_table.items


def test_delete_removes_exactly_one_row(transactions_table):
    keep = dynamo.create_transaction("alice", _fields(description="Keep"))
    drop = dynamo.create_transaction("alice", _fields(description="Drop"))

    assert dynamo.delete_transaction(drop["transaction_id"], "alice") is True
    assert [row["description"] for row in dynamo.list_transactions("alice")] == ["Keep"]
    assert ("alice", keep["transaction_id"]) in transactions_table.items


def test_delete_of_other_owner_row_is_refused(transactions_table):
    created = dynamo.create_transaction("alice", _fields())

    assert dynamo.delete_transaction(created["transaction_id"], "mallory") is False
    assert ("alice", created["transaction_id"]) in transactions_table.items


def test_remote_rejection_becomes_store_error(transactions_table):
    transactions_table.fail_with = ClientError(
        {"Error": {"Code": "AccessDeniedException", "Message": "User is not authorized to perform: dynamodb:Query"}},
        "Query",
    )
    with pytest.raises(StoreError) as excinfo:
        dynamo.list_transactions("alice")
    assert excinfo.value.message == "User is not authorized to perform: dynamodb:Query"


def test_unreachable_store_becomes_store_error(transactions_table):
    transactions_table.fail_with = EndpointConnectionError(endpoint_url="https://dynamodb.local")
    with pytest.raises(StoreError, match="Could not connect"):
        dynamo.create_transaction("alice", _fields())


def test_update_user_removes_none_values(users_table):
    dynamo.put_user({"user_id": "u1", "email": "Alice@Example.com", "pending_email": "new@example.com"})

    updated = dynamo.update_user("u1", {"pending_email": None, "token_version": 2})

    assert "pending_email" not in updated
    assert updated["token_version"] == 2
    assert dynamo.get_user_by_email("alice@example.com")["user_id"] == "u1"


def test_update_missing_user_returns_none(users_table):
    assert dynamo.update_user("ghost", {"token_version": 1}) is None
