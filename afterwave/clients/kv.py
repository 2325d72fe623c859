"""
Store-neutral primitives for the single-table key-value layout.

Every record is a flat dict addressed by ``pk`` and ``sk``. Writes carry an
optional structured ``Condition`` that both back-ends evaluate natively, so a
rejected precondition always surfaces as ``PreconditionFailed``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union

Item = Dict[str, Any]
Key = Tuple[str, str]

# TransactWriteItems accepts at most this many operations per request.
MAX_TRANSACT_ITEMS = 100


@dataclass(frozen=True, slots=True)
class Condition:
    """Precondition evaluated against the existing record before a write."""

    kind: str
    attribute: Optional[str] = None
    value: Any = None

    @classmethod
    def item_absent(cls) -> "Condition":
        return cls("item_absent")

    @classmethod
    def item_exists(cls) -> "Condition":
        return cls("item_exists")

    @classmethod
    def attribute_absent(cls, attribute: str) -> "Condition":
        return cls("attribute_absent", attribute)

    @classmethod
    def attribute_at_least(cls, attribute: str, value: int) -> "Condition":
        return cls("attribute_at_least", attribute, value)

    def holds(self, existing: Optional[Item]) -> bool:
        """Evaluate the condition in Python (used by the SQLite back-end)."""
        if self.kind == "item_absent":
            return existing is None
        if self.kind == "item_exists":
            return existing is not None
        if self.kind == "attribute_absent":
            return existing is None or existing.get(self.attribute) is None
        if self.kind == "attribute_at_least":
            if existing is None:
                return False
            current = existing.get(self.attribute)
            return isinstance(current, (int, float)) and current >= self.value
        raise ValueError(f"Unknown condition kind: {self.kind}")


@dataclass(slots=True)
class PutOp:
    item: Item
    condition: Optional[Condition] = None

    @property
    def key(self) -> Key:
        return self.item["pk"], self.item["sk"]


@dataclass(slots=True)
class DeleteOp:
    pk: str
    sk: str
    condition: Optional[Condition] = None

    @property
    def key(self) -> Key:
        return self.pk, self.sk


@dataclass(slots=True)
class UpdateOp:
    """Partial update: set fields and add to numeric counters on an existing row.

    Counters missing on the row start from zero. ``create`` permits the update
    to materialize a row that does not exist yet.
    """

    pk: str
    sk: str
    set_fields: Item = field(default_factory=dict)
    remove_fields: Sequence[str] = ()
    increments: Dict[str, int] = field(default_factory=dict)
    condition: Optional[Condition] = None
    create: bool = False

    @property
    def key(self) -> Key:
        return self.pk, self.sk


WriteOp = Union[PutOp, DeleteOp, UpdateOp]


class KeyValueStore(Protocol):
    """Interface implemented by ``DynamoDBClient`` and ``SQLiteStore``."""

    def get_item(self, pk: str, sk: str) -> Optional[Item]: ...

    def put_item(self, item: Item, condition: Optional[Condition] = None) -> None: ...

    def update_item(self, op: UpdateOp) -> Item: ...

    def delete_item(
        self, pk: str, sk: str, condition: Optional[Condition] = None
    ) -> None: ...

    def query(
        self,
        pk: str,
        *,
        sk_prefix: str = "",
        descending: bool = False,
        limit: Optional[int] = None,
        exclusive_start: Optional[Key] = None,
    ) -> Tuple[List[Item], Optional[Key]]: ...

    def batch_get(self, keys: Sequence[Key]) -> List[Item]: ...

    def transact_write(self, ops: Sequence[WriteOp]) -> None: ...


__all__ = [
    "Condition",
    "DeleteOp",
    "Item",
    "Key",
    "KeyValueStore",
    "MAX_TRANSACT_ITEMS",
    "PutOp",
    "UpdateOp",
    "WriteOp",
]
