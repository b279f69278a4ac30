import copy
import re
from urllib.parse import parse_qs, urlparse

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from dompetku.core.config import settings
from dompetku.db import dynamo
from dompetku.main import app
from dompetku.utils import email_service


def conditional_failure(operation):
    return ClientError(
        {"Error": {"Code": "ConditionalCheckFailedException", "Message": "The conditional request failed"}},
        operation,
    )


class FakeTable:
    """In-memory stand-in for the boto3 Table calls the store makes."""

    def __init__(self, name, key_names, page_size=100):
        self.name = name
        self.key_names = key_names
        self.page_size = page_size
        self.items = {}
        self.calls = []
        self.fail_with = None

    def _record(self, operation):
        self.calls.append(operation)
        if self.fail_with is not None:
            raise self.fail_with

    def _key(self, key):
        return tuple(key[name] for name in self.key_names)

    @staticmethod
    def _condition_holds(condition, existing):
        if condition is None:
            return True
        if condition.startswith("attribute_not_exists"):
            return existing is None
        if condition.startswith("attribute_exists"):
            return existing is not None
        raise AssertionError(f"unsupported condition {condition}")

    def put_item(self, Item, ConditionExpression=None):
        self._record("put_item")
        key = self._key(Item)
        if not self._condition_holds(ConditionExpression, self.items.get(key)):
            raise conditional_failure("PutItem")
        self.items[key] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key):
        self._record("get_item")
        item = self.items.get(self._key(Key))
        return {"Item": copy.deepcopy(item)} if item else {}

    def query(self, KeyConditionExpression, IndexName=None, ExclusiveStartKey=None):
        self._record("query")
        attribute, value = KeyConditionExpression.get_expression()["values"]
        keys = sorted(key for key, item in self.items.items() if item.get(attribute.name) == value)
        if ExclusiveStartKey is not None:
            keys = [key for key in keys if key > self._key(ExclusiveStartKey)]
        page, rest = keys[: self.page_size], keys[self.page_size:]
        response = {"Items": [copy.deepcopy(self.items[key]) for key in page]}
        if rest:
            response["LastEvaluatedKey"] = dict(zip(self.key_names, page[-1]))
        return response

    def update_item(
        self,
        Key,
        UpdateExpression,
        ExpressionAttributeNames,
        ExpressionAttributeValues=None,
        ConditionExpression=None,
        ReturnValues=None,
    ):
        self._record("update_item")
        key = self._key(Key)
        existing = self.items.get(key)
        if not self._condition_holds(ConditionExpression, existing):
            raise conditional_failure("UpdateItem")

        item = copy.deepcopy(existing) if existing else dict(Key)
        values = ExpressionAttributeValues or {}
        set_part, _, remove_part = UpdateExpression.partition("REMOVE ")
        for assignment in filter(None, re.split(r",\s*", set_part.replace("SET ", "", 1).strip())):
            name, value = (part.strip() for part in assignment.split("="))
            item[ExpressionAttributeNames[name]] = copy.deepcopy(values[value])
        for name in filter(None, re.split(r",\s*", remove_part.strip())):
            item.pop(ExpressionAttributeNames[name], None)

        self.items[key] = item
        return {"Attributes": copy.deepcopy(item)} if ReturnValues == "ALL_NEW" else {}

    def delete_item(self, Key, ReturnValues=None):
        self._record("delete_item")
        old = self.items.pop(self._key(Key), None)
        if old is not None and ReturnValues == "ALL_OLD":
            return {"Attributes": old}
        return {}

    def scan(self, Limit=None):
        self._record("scan")
        return {"Items": [copy.deepcopy(item) for item in list(self.items.values())[:Limit]]}


@pytest.fixture
def users_table(monkeypatch):
    table = FakeTable("dompetku-users", ("user_id",))
    monkeypatch.setattr(dynamo, "users_table", table)
    return table


@pytest.fixture
def transactions_table(monkeypatch):
    table = FakeTable("dompetku-transactions", ("user_id", "transaction_id"))
    monkeypatch.setattr(dynamo, "transactions_table", table)
    return table


@pytest.fixture
def outbox(monkeypatch):
    """Captures outgoing mail instead of talking to SMTP."""
    sent = []

    def fake_send_email(to_email, subject, body_html, body_text=None):
        sent.append({"to": to_email, "subject": subject, "html": body_html, "text": body_text})
        return True

    monkeypatch.setattr(email_service, "send_email", fake_send_email)
    return sent


def token_from(mail):
    link = re.search(r"https?://\S+", mail["text"]).group(0)
    return parse_qs(urlparse(link).query)["token"][0]


@pytest.fixture
def api(users_table, transactions_table, outbox):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def no_confirmation(monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_EMAIL_CONFIRMATION", False)


def register_and_login(api, email, password="secret123"):
    """Register with confirmation switched off and return auth headers."""
    response = api.post("/api/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    token = response.json()["session"]["access_token"]
    return {"Authorization": f"Bearer {token}"}
