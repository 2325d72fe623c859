"""
DynamoDB implementation of the single-table key-value store.

Uses the low-level client so conditional writes and multi-item transactions
map one-to-one onto ``PutItem``/``UpdateItem``/``TransactWriteItems``.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from afterwave.clients.kv import (
    Condition,
    DeleteOp,
    Item,
    Key,
    MAX_TRANSACT_ITEMS,
    PutOp,
    UpdateOp,
    WriteOp,
)
from afterwave.core.config import AWSSettings
from afterwave.core.errors import PreconditionFailed, UnavailableError

logger = logging.getLogger(__name__)

_BATCH_GET_LIMIT = 100
_BATCH_GET_ROUNDS = 5

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, set):
        return {_plain(v) for v in value}
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def serialize_item(item: Item) -> Dict[str, Any]:
    return {k: _serializer.serialize(v) for k, v in item.items() if v is not None}


def deserialize_item(raw: Dict[str, Any]) -> Item:
    return {k: _plain(_deserializer.deserialize(v)) for k, v in raw.items()}


def _key(pk: str, sk: str) -> Dict[str, Any]:
    return {"pk": {"S": pk}, "sk": {"S": sk}}


class _Expression:
    """Accumulates placeholder names/values while an expression is built."""

    def __init__(self) -> None:
        self.names: Dict[str, str] = {}
        self.values: Dict[str, Any] = {}

    def name(self, attribute: str) -> str:
        placeholder = f"#n{len(self.names)}"
        self.names[placeholder] = attribute
        return placeholder

    def value(self, value: Any) -> str:
        placeholder = f":v{len(self.values)}"
        self.values[placeholder] = _serializer.serialize(value)
        return placeholder

    def condition(self, condition: Optional[Condition], *, require_item: bool = False) -> Optional[str]:
        clauses: List[str] = []
        if require_item:
            clauses.append("attribute_exists(pk)")
        if condition is not None:
            if condition.kind == "item_absent":
                clauses.append("attribute_not_exists(pk)")
            elif condition.kind == "item_exists":
                if not require_item:
                    clauses.append("attribute_exists(pk)")
            elif condition.kind == "attribute_absent":
                clauses.append(f"attribute_not_exists({self.name(condition.attribute)})")
            elif condition.kind == "attribute_at_least":
                clauses.append(
                    f"{self.name(condition.attribute)} >= {self.value(condition.value)}"
                )
            else:
                raise ValueError(f"Unknown condition kind: {condition.kind}")
        return " AND ".join(clauses) or None

    def apply(self, params: Dict[str, Any]) -> Dict[str, Any]:
        if self.names:
            params["ExpressionAttributeNames"] = self.names
        if self.values:
            params["ExpressionAttributeValues"] = self.values
        return params


def _put_params(table: str, op: PutOp) -> Dict[str, Any]:
    expr = _Expression()
    params: Dict[str, Any] = {"TableName": table, "Item": serialize_item(op.item)}
    condition = expr.condition(op.condition)
    if condition:
        params["ConditionExpression"] = condition
    return expr.apply(params)


def _delete_params(table: str, op: DeleteOp) -> Dict[str, Any]:
    expr = _Expression()
    params: Dict[str, Any] = {"TableName": table, "Key": _key(op.pk, op.sk)}
    condition = expr.condition(op.condition)
    if condition:
        params["ConditionExpression"] = condition
    return expr.apply(params)


def _update_params(table: str, op: UpdateOp) -> Dict[str, Any]:
    expr = _Expression()
    set_clauses: List[str] = []
    for attribute, value in op.set_fields.items():
        set_clauses.append(f"{expr.name(attribute)} = {expr.value(value)}")
    if op.increments:
        zero = expr.value(0)
        for attribute, delta in op.increments.items():
            name = expr.name(attribute)
            set_clauses.append(f"{name} = if_not_exists({name}, {zero}) + {expr.value(delta)}")
    sections: List[str] = []
    if set_clauses:
        sections.append("SET " + ", ".join(set_clauses))
    if op.remove_fields:
        sections.append("REMOVE " + ", ".join(expr.name(a) for a in op.remove_fields))
    if not sections:
        raise ValueError("UpdateOp must change at least one attribute")
    params: Dict[str, Any] = {
        "TableName": table,
        "Key": _key(op.pk, op.sk),
        "UpdateExpression": " ".join(sections),
    }
    condition = expr.condition(op.condition, require_item=not op.create)
    if condition:
        params["ConditionExpression"] = condition
    return expr.apply(params)


def _is_condition_failure(exc: ClientError) -> bool:
    error = exc.response.get("Error", {})
    code = error.get("Code", "")
    if code == "ConditionalCheckFailedException":
        return True
    if code == "TransactionCanceledException":
        reasons = exc.response.get("CancellationReasons") or []
        if any(reason.get("Code") == "ConditionalCheckFailed" for reason in reasons):
            return True
        # Older botocore releases only expose the reasons through the message.
        return "ConditionalCheckFailed" in error.get("Message", "")
    return False


class DynamoDBClient:
    """Single-table record store backed by DynamoDB."""

    def __init__(self, settings: AWSSettings, *, client: Any = None) -> None:
        self._table = settings.dynamodb_table_name
        self._client = client or boto3.client(
            "dynamodb",
            region_name=settings.region_name,
            endpoint_url=settings.dynamodb_endpoint,
            config=Config(
                connect_timeout=settings.connect_timeout_seconds,
                read_timeout=settings.read_timeout_seconds,
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )

    def _call(self, operation: str, **params: Any) -> Dict[str, Any]:
        try:
            return getattr(self._client, operation)(**params)
        except ClientError as exc:
            if _is_condition_failure(exc):
                raise PreconditionFailed(operation) from exc
            logger.error("DynamoDB %s failed: %s", operation, exc.response.get("Error", {}))
            raise UnavailableError() from exc
        except BotoCoreError as exc:
            logger.error("DynamoDB %s transport failure: %s", operation, exc)
            raise UnavailableError() from exc

    def get_item(self, pk: str, sk: str) -> Optional[Item]:
        """Retrieve an item by its full key; ``None`` when absent."""
        response = self._call(
            "get_item", TableName=self._table, Key=_key(pk, sk), ConsistentRead=True
        )
        raw = response.get("Item")
        return deserialize_item(raw) if raw else None

    def put_item(self, item: Item, condition: Optional[Condition] = None) -> None:
        """Write a full item, optionally guarded by a precondition."""
        self._call("put_item", **_put_params(self._table, PutOp(item, condition)))

    def update_item(self, op: UpdateOp) -> Item:
        """Apply a partial update and return the item as stored afterwards."""
        params = _update_params(self._table, op)
        response = self._call("update_item", ReturnValues="ALL_NEW", **params)
        return deserialize_item(response.get("Attributes", {}))

    def delete_item(
        self, pk: str, sk: str, condition: Optional[Condition] = None
    ) -> None:
        self._call("delete_item", **_delete_params(self._table, DeleteOp(pk, sk, condition)))

    def query(
        self,
        pk: str,
        *,
        sk_prefix: str = "",
        descending: bool = False,
        limit: Optional[int] = None,
        exclusive_start: Optional[Key] = None,
    ) -> Tuple[List[Item], Optional[Key]]:
        """Query one partition in sort-key order.

        With ``limit`` a single page is returned together with the key to resume
        from; without it every matching item is read.
        """
        params: Dict[str, Any] = {
            "TableName": self._table,
            "KeyConditionExpression": "pk = :pk",
            "ExpressionAttributeValues": {":pk": {"S": pk}},
            "ScanIndexForward": not descending,
            "ConsistentRead": True,
        }
        if sk_prefix:
            params["KeyConditionExpression"] += " AND begins_with(sk, :prefix)"
            params["ExpressionAttributeValues"][":prefix"] = {"S": sk_prefix}
        if exclusive_start is not None:
            params["ExclusiveStartKey"] = _key(*exclusive_start)

        items: List[Item] = []
        while True:
            if limit is not None:
                params["Limit"] = limit - len(items)
            response = self._call("query", **params)
            items.extend(deserialize_item(raw) for raw in response.get("Items", []))
            last = response.get("LastEvaluatedKey")
            if not last:
                return items, None
            if limit is not None and len(items) >= limit:
                return items, (last["pk"]["S"], last["sk"]["S"])
            params["ExclusiveStartKey"] = last

    def batch_get(self, keys: Sequence[Key]) -> List[Item]:
        """Fetch many items by key. Missing keys are skipped; order is unspecified."""
        unique = list(dict.fromkeys(keys))
        found: List[Item] = []
        for start in range(0, len(unique), _BATCH_GET_LIMIT):
            pending: Dict[str, Any] = {
                self._table: {
                    "Keys": [_key(pk, sk) for pk, sk in unique[start : start + _BATCH_GET_LIMIT]],
                    "ConsistentRead": True,
                }
            }
            for _ in range(_BATCH_GET_ROUNDS):
                response = self._call("batch_get_item", RequestItems=pending)
                found.extend(
                    deserialize_item(raw)
                    for raw in response.get("Responses", {}).get(self._table, [])
                )
                pending = response.get("UnprocessedKeys") or {}
                if not pending:
                    break
            if pending:
                logger.error("batch_get_item left unprocessed keys after retries")
                raise UnavailableError()
        return found

    def transact_write(self, ops: Sequence[WriteOp]) -> None:
        """Commit every operation atomically; any failed condition aborts all."""
        items: List[Dict[str, Any]] = []
        for op in ops:
            if isinstance(op, PutOp):
                items.append({"Put": _put_params(self._table, op)})
            elif isinstance(op, DeleteOp):
                items.append({"Delete": _delete_params(self._table, op)})
            elif isinstance(op, UpdateOp):
                items.append({"Update": _update_params(self._table, op)})
            else:
                raise TypeError(f"Unsupported write operation: {op!r}")
        if not items:
            return
        if len(items) > MAX_TRANSACT_ITEMS:
            raise ValueError(
                f"transaction has {len(items)} items, limit is {MAX_TRANSACT_ITEMS}"
            )
        self._call("transact_write_items", TransactItems=items)


__all__ = ["DynamoDBClient", "deserialize_item", "serialize_item"]
