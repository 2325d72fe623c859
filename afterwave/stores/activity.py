"""Monthly active user records.

    MAU#<YYYY-MM> / <user_id>

``record_if_new`` is a conditional put, so the first activity of a user in a
month is counted exactly once regardless of how many sessions they open.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from afterwave.clients.kv import Condition, KeyValueStore
from afterwave.core.errors import PreconditionFailed
from afterwave.stores.base import isoformat, utc_now

MAU_PREFIX = "MAU#"


def period_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


class ActivityStore:
    def __init__(self, db: KeyValueStore) -> None:
        self._db = db

    def record_if_new(self, user_id: str, *, now: Optional[datetime] = None) -> bool:
        """Record activity for the current month; True only on the first call."""
        moment = now or utc_now()
        try:
            self._db.put_item(
                {
                    "pk": MAU_PREFIX + period_key(moment),
                    "sk": user_id,
                    "first_seen_at": isoformat(moment),
                },
                Condition.item_absent(),
            )
        except PreconditionFailed:
            return False
        return True

    def count(self, period: str) -> int:
        total = 0
        start = None
        while True:
            rows, start = self._db.query(MAU_PREFIX + period, exclusive_start=start)
            total += len(rows)
            if start is None:
                return total


__all__ = ["ActivityStore", "period_key"]
