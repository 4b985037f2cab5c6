from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Generic, TypeVar

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from ...models import Item
from ...op_context import OpContext
from ...problem_details import new_problem, wrap_problem
from .call import ddb_call
from .client import DynamoConfig, dynamodb_client
from .errors import DdbMarshalError, DdbNotFound
from .pagination import PARTITION_KEY, Key, encode_cursor, is_valid_key, make_key

T = TypeVar("T", bound=Item)

PROBLEM_MARSHALING = "dynamodb marshaling issue"
PROBLEM_UNMARSHALING = "dynamodb unmarshalling issue"
PROBLEM_INVALID_KEY = "invalid key"

ERR_MARSHAL_ITEM = "failed to marshal item"
ERR_FETCHING_ITEMS = "failed to fetch items"
ERR_FETCHING_ITEM = "failed to fetch item"
ERR_CREATING_ITEM = "failed to create item"
ERR_UPDATING_ITEM = "failed to update item"
ERR_DELETING_ITEM = "failed to delete item"
ERR_UNMARSHAL_ITEMS = "failed to unmarshal items"
ERR_UNMARSHAL_ITEM = "failed to unmarshal item"
ERR_ITEM_NOT_FOUND = "item not found"
ERR_KEY_REQUIRED = "primary key is required"

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _serialize(data: dict[str, Any]) -> dict[str, Any]:
    # Low-level client expects AttributeValue shape; TypeSerializer produces {'S': '...'} etc.
    return {k: _serializer.serialize(v) for k, v in data.items()}


def _deserialize(data: dict[str, Any]) -> dict[str, Any]:
    return {k: _deserializer.deserialize(v) for k, v in data.items()}


@dataclass
class Page(Generic[T]):
    items: list[T]
    last_evaluated_key: Key = field(default_factory=dict)
    scanned_count: int = 0

    @property
    def next_cursor(self) -> str | None:
        return encode_cursor(self.last_evaluated_key)


class Repository(Generic[T]):
    """Generic CRUD and scan pagination over a single DynamoDB table.

    Items are pydantic models keyed by `pk`. Every failure is raised as a Problem:
    400 for items or keys that cannot be encoded, 404 from `get_required`, 500 for
    everything the backend (or an abandoned context) reports.
    """

    def __init__(self, model: type[T], *, client: Any, table_name: str):
        if not table_name:
            raise ValueError("table_name is required")
        self._model = model
        self._client = client
        self._table_name = str(table_name)

    @classmethod
    def from_config(cls, model: type[T], config: DynamoConfig) -> Repository[T]:
        return cls(model, client=dynamodb_client(config), table_name=config.table_name)

    @property
    def table_name(self) -> str:
        return self._table_name

    # --- marshaling ---

    def _require_key(self, key: Key | None, operation: str) -> Key:
        if not is_valid_key(key):
            raise new_problem(400, PROBLEM_INVALID_KEY + " for %s", operation, detail=ERR_KEY_REQUIRED)
        return dict(key or {})

    def _marshal(self, item: T, operation: str) -> dict[str, Any]:
        try:
            if not isinstance(item, self._model):
                raise TypeError(f"expected {self._model.__name__}, got {type(item).__name__}")
            # Floats must reach DynamoDB as Decimal.
            data = json.loads(item.model_dump_json(), parse_float=Decimal)
            if not data.get(PARTITION_KEY):
                raise ValueError(ERR_KEY_REQUIRED)
            return _serialize(data)
        except (TypeError, ValueError, ArithmeticError) as e:
            cause = DdbMarshalError(message=str(e), operation=operation, table_name=self._table_name)
            cause.__cause__ = e
            raise wrap_problem(cause, 400, PROBLEM_MARSHALING, detail=ERR_MARSHAL_ITEM) from cause

    def _unmarshal(self, data: dict[str, Any], *, operation: str, detail: str) -> T:
        try:
            return self._model.model_validate(_deserialize(data))
        except (TypeError, ValueError) as e:
            cause = DdbMarshalError(message=str(e), operation=operation, table_name=self._table_name)
            cause.__cause__ = e
            raise wrap_problem(cause, 500, PROBLEM_UNMARSHALING, detail=detail) from cause

    # --- operations ---

    def list(self, ctx: OpContext, limit: int, exclusive_start_key: Key | None = None) -> Page[T]:
        lim = int(limit)
        if lim < 1:
            raise new_problem(400, "invalid limit %d", lim, detail="limit must be at least 1")

        params: dict[str, Any] = {"TableName": self._table_name, "Limit": lim}
        # Only pass ExclusiveStartKey when present; empty means start of scan.
        if exclusive_start_key:
            params["ExclusiveStartKey"] = _serialize(self._require_key(exclusive_start_key, "Scan"))

        resp = ddb_call(
            "Scan",
            lambda: self._client.scan(**params),
            ctx=ctx,
            detail=ERR_FETCHING_ITEMS,
            table_name=self._table_name,
        )

        items = [
            self._unmarshal(it, operation="Scan", detail=ERR_UNMARSHAL_ITEMS)
            for it in (resp.get("Items") or [])
        ]
        lek = resp.get("LastEvaluatedKey")
        return Page(
            items=items,
            last_evaluated_key=_deserialize(lek) if lek else {},
            scanned_count=int(resp.get("ScannedCount") or 0),
        )

    def get(self, ctx: OpContext, key: Key) -> T | None:
        """Return the item at `key`, or None when nothing is stored there."""
        k = self._require_key(key, "GetItem")
        resp = ddb_call(
            "GetItem",
            lambda: self._client.get_item(TableName=self._table_name, Key=_serialize(k)),
            ctx=ctx,
            detail=ERR_FETCHING_ITEM,
            table_name=self._table_name,
            key=k,
        )
        data = resp.get("Item")
        if not data:
            return None
        return self._unmarshal(data, operation="GetItem", detail=ERR_UNMARSHAL_ITEM)

    def get_required(self, ctx: OpContext, key: Key) -> T:
        item = self.get(ctx, key)
        if item is None:
            cause = DdbNotFound(
                message=ERR_ITEM_NOT_FOUND,
                operation="GetItem",
                table_name=self._table_name,
                key=dict(key),
            )
            raise wrap_problem(cause, 404, ERR_ITEM_NOT_FOUND, detail=ERR_ITEM_NOT_FOUND) from cause
        return item

    def _put(self, ctx: OpContext, item: T, *, operation: str, detail: str) -> None:
        data = self._marshal(item, operation)
        ddb_call(
            "PutItem",
            lambda: self._client.put_item(TableName=self._table_name, Item=data),
            ctx=ctx,
            detail=detail,
            table_name=self._table_name,
            key=make_key(item.pk),
        )

    def create(self, ctx: OpContext, item: T) -> None:
        """Unconditional put; an item already stored at the same key is replaced."""
        self._put(ctx, item, operation="Create", detail=ERR_CREATING_ITEM)

    def update(self, ctx: OpContext, item: T) -> None:
        """Upsert: no existence check and no version check."""
        self._put(ctx, item, operation="Update", detail=ERR_UPDATING_ITEM)

    def delete(self, ctx: OpContext, key: Key) -> None:
        k = self._require_key(key, "DeleteItem")
        ddb_call(
            "DeleteItem",
            lambda: self._client.delete_item(TableName=self._table_name, Key=_serialize(k)),
            ctx=ctx,
            detail=ERR_DELETING_ITEM,
            table_name=self._table_name,
            key=k,
        )
