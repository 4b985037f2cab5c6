from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure `backend/` is on sys.path so `import abtercms.*` works in tests.
BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))


class FakeDynamoClient:
    """
    Minimal in-memory stand-in for the low-level boto3 DynamoDB client.

    Items are stored in AttributeValue shape keyed by the `pk` string. Scans walk keys
    in sorted order and, like DynamoDB, report a LastEvaluatedKey whenever a page is
    cut by Limit, even if nothing follows it.
    """

    def __init__(self, table_name: str = "websites"):
        self.table_name = table_name
        self.items: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        # Raised by the next call when set.
        self.fail_with: Exception | None = None

    def _enter(self, op: str, kwargs: dict[str, Any]) -> None:
        self.calls.append((op, kwargs))
        assert kwargs.get("TableName") == self.table_name
        if self.fail_with is not None:
            exc, self.fail_with = self.fail_with, None
            raise exc

    @staticmethod
    def _pk(key: dict[str, Any]) -> str:
        return key["pk"]["S"]

    def scan(self, **kwargs: Any) -> dict[str, Any]:
        self._enter("Scan", kwargs)
        limit = int(kwargs["Limit"])
        keys = sorted(self.items)
        start = kwargs.get("ExclusiveStartKey")
        if start:
            after = self._pk(start)
            keys = [k for k in keys if k > after]

        page = keys[:limit]
        out: dict[str, Any] = {
            "Items": [dict(self.items[k]) for k in page],
            "Count": len(page),
            "ScannedCount": len(page),
        }
        if len(page) == limit:
            out["LastEvaluatedKey"] = {"pk": {"S": page[-1]}}
        return out

    def get_item(self, **kwargs: Any) -> dict[str, Any]:
        self._enter("GetItem", kwargs)
        item = self.items.get(self._pk(kwargs["Key"]))
        return {"Item": dict(item)} if item else {}

    def put_item(self, **kwargs: Any) -> dict[str, Any]:
        self._enter("PutItem", kwargs)
        item = dict(kwargs["Item"])
        self.items[self._pk(item)] = item
        return {}

    def delete_item(self, **kwargs: Any) -> dict[str, Any]:
        self._enter("DeleteItem", kwargs)
        self.items.pop(self._pk(kwargs["Key"]), None)
        return {}


@pytest.fixture
def fake_client() -> FakeDynamoClient:
    return FakeDynamoClient()


@pytest.fixture
def websites_repo(fake_client):
    from abtercms.db.dynamodb import Repository
    from abtercms.models import Website

    return Repository(Website, client=fake_client, table_name=fake_client.table_name)


@pytest.fixture
def ctx():
    from abtercms.op_context import OpContext

    return OpContext.background()
