"""
Shared building blocks for the entity stores.

Every entity that needs a second access path keeps a primary row plus one or
more mirror rows; ``MirroredStore`` writes and deletes such groups in a single
transaction so no reader ever sees one without the other.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from afterwave.clients.kv import (
    Condition,
    DeleteOp,
    Item,
    Key,
    KeyValueStore,
    PutOp,
    WriteOp,
)
from afterwave.core.errors import InvalidInputError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(moment: datetime) -> str:
    """Fixed-width UTC timestamp that sorts lexicographically."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def encode_cursor(key: Optional[Key]) -> Optional[str]:
    """Opaque pagination token wrapping the last evaluated key."""
    if key is None:
        return None
    payload = json.dumps({"p": key[0], "s": key[1]}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: Optional[str], *, pk: str) -> Optional[Key]:
    """Decode a cursor issued by ``encode_cursor`` for the same partition."""
    if not cursor:
        return None
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        key = (str(data["p"]), str(data["s"]))
    except (binascii.Error, ValueError, KeyError, TypeError) as exc:
        raise InvalidInputError("invalid cursor") from exc
    if key[0] != pk:
        raise InvalidInputError("invalid cursor")
    return key


class MirroredStore:
    """Base class for stores that keep primary and mirror rows in lock-step."""

    def __init__(self, db: KeyValueStore) -> None:
        self._db = db

    def write_mirrored(
        self,
        primary: Item,
        mirrors: Iterable[Item] = (),
        *,
        condition: Optional[Condition] = None,
        extra: Sequence[WriteOp] = (),
    ) -> None:
        """Put the primary row (guarded by ``condition``) and its mirrors atomically."""
        ops: List[WriteOp] = [PutOp(primary, condition)]
        ops.extend(PutOp(mirror) for mirror in mirrors)
        ops.extend(extra)
        self._db.transact_write(ops)

    def delete_mirrored(
        self,
        keys: Iterable[Tuple[str, str]],
        *,
        condition: Optional[Condition] = None,
        extra: Sequence[WriteOp] = (),
    ) -> None:
        """Delete a primary row and its mirrors atomically.

        ``condition`` applies to the first key, which is the primary row.
        """
        ops: List[WriteOp] = []
        for index, (pk, sk) in enumerate(keys):
            ops.append(DeleteOp(pk, sk, condition if index == 0 else None))
        ops.extend(extra)
        self._db.transact_write(ops)


__all__ = [
    "MirroredStore",
    "decode_cursor",
    "encode_cursor",
    "isoformat",
    "parse_timestamp",
    "utc_now",
]
