"""
Persistence for sessions, refresh tokens, authorization codes and auth clients.

Layout (single table, no secondary indexes):

    AUTH#SESSION#<id>   / SESSION         session row
    AUTH#REFRESH#<id>   / REFRESH         refresh row
    AUTH#USER#<uid>     / SESSION#<id>    user -> session lookup
    AUTH#USER#<uid>     / REFRESH#<id>    user -> refresh lookup
    AUTH#CODE#<code>    / CODE            one-time authorization code
    AUTH#CLIENT         / CLIENT#<id>     per-client TTL policy

Expired rows are treated as absent on read; the ``ttl`` attribute lets the
table's TTL sweeper remove them eventually.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from afterwave.clients.kv import Condition, Item, KeyValueStore, PutOp, UpdateOp
from afterwave.core.errors import PreconditionFailed
from afterwave.models.auth import AuthCode, ClientTTLs, RefreshToken, Session
from afterwave.stores.base import MirroredStore, isoformat, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

SESSION_PREFIX = "AUTH#SESSION#"
REFRESH_PREFIX = "AUTH#REFRESH#"
USER_INDEX_PREFIX = "AUTH#USER#"
CODE_PREFIX = "AUTH#CODE#"
CLIENT_PK = "AUTH#CLIENT"
SESSION_SK = "SESSION"
REFRESH_SK = "REFRESH"
CODE_SK = "CODE"


def _expiry_fields(expires_at: datetime) -> Dict[str, object]:
    return {"expires_at": isoformat(expires_at), "ttl": int(expires_at.timestamp())}


def _expired(row: Item, now: datetime) -> bool:
    raw = row.get("expires_at")
    return not raw or parse_timestamp(raw) <= now


class CredentialStore(MirroredStore):
    """Session/refresh pairs, one-time codes and client policies."""

    def __init__(self, db: KeyValueStore) -> None:
        super().__init__(db)

    # Sessions -----------------------------------------------------------------

    def create_session(
        self, user_id: str, session_ttl: timedelta, refresh_ttl: timedelta
    ) -> Tuple[Session, RefreshToken]:
        now = utc_now()
        session = Session(
            session_id=str(uuid.uuid4()),
            user_id=user_id,
            refresh_id=str(uuid.uuid4()),
            expires_at=now + session_ttl,
        )
        refresh = RefreshToken(
            refresh_id=session.refresh_id,
            user_id=user_id,
            session_id=session.session_id,
            expires_at=now + refresh_ttl,
        )
        user_pk = USER_INDEX_PREFIX + user_id
        self.write_mirrored(
            {
                "pk": SESSION_PREFIX + session.session_id,
                "sk": SESSION_SK,
                "user_id": user_id,
                "refresh_id": refresh.refresh_id,
                "created_at": isoformat(now),
                **_expiry_fields(session.expires_at),
            },
            [
                {"pk": user_pk, "sk": f"SESSION#{session.session_id}"},
                {"pk": user_pk, "sk": f"REFRESH#{refresh.refresh_id}"},
            ],
            condition=Condition.item_absent(),
            extra=[
                PutOp(
                    {
                        "pk": REFRESH_PREFIX + refresh.refresh_id,
                        "sk": REFRESH_SK,
                        "user_id": user_id,
                        "session_id": session.session_id,
                        "created_at": isoformat(now),
                        **_expiry_fields(refresh.expires_at),
                    },
                    Condition.item_absent(),
                )
            ],
        )
        return session, refresh

    def get_session(self, session_id: str) -> Optional[Session]:
        row = self._db.get_item(SESSION_PREFIX + session_id, SESSION_SK)
        if row is None or _expired(row, utc_now()):
            return None
        return Session(
            session_id=session_id,
            user_id=row["user_id"],
            refresh_id=row.get("refresh_id", ""),
            expires_at=parse_timestamp(row["expires_at"]),
        )

    def get_refresh(self, refresh_id: str) -> Optional[RefreshToken]:
        row = self._db.get_item(REFRESH_PREFIX + refresh_id, REFRESH_SK)
        if row is None or _expired(row, utc_now()):
            return None
        return RefreshToken(
            refresh_id=refresh_id,
            user_id=row["user_id"],
            session_id=row.get("session_id", ""),
            expires_at=parse_timestamp(row["expires_at"]),
        )

    def _pair_keys(
        self,
        user_id: str,
        session_id: str,
        refresh_id: str,
        *,
        session_first: bool = False,
    ) -> List[Tuple[str, str]]:
        """Keys of a session/refresh pair, guarded row first."""
        user_pk = USER_INDEX_PREFIX + user_id
        refresh_keys = []
        session_keys = []
        if refresh_id:
            refresh_keys = [
                (REFRESH_PREFIX + refresh_id, REFRESH_SK),
                (user_pk, f"REFRESH#{refresh_id}"),
            ]
        if session_id:
            session_keys = [
                (SESSION_PREFIX + session_id, SESSION_SK),
                (user_pk, f"SESSION#{session_id}"),
            ]
        if session_first:
            return session_keys + refresh_keys
        return refresh_keys + session_keys

    def consume_refresh(self, refresh: RefreshToken) -> None:
        """Delete a refresh token and its session, failing if already consumed.

        Raises ``PreconditionFailed`` when a concurrent caller deleted the
        refresh row first.
        """
        self.delete_mirrored(
            self._pair_keys(refresh.user_id, refresh.session_id, refresh.refresh_id),
            condition=Condition.item_exists(),
        )

    def revoke_session(self, session_id: str) -> bool:
        """Delete a session and its linked refresh token. False when already gone."""
        row = self._db.get_item(SESSION_PREFIX + session_id, SESSION_SK)
        if row is None:
            return False
        keys = self._pair_keys(
            row["user_id"], session_id, row.get("refresh_id", ""), session_first=True
        )
        try:
            self.delete_mirrored(keys, condition=Condition.item_exists())
        except PreconditionFailed:
            return False
        return True

    def revoke_refresh(self, refresh_id: str) -> bool:
        row = self._db.get_item(REFRESH_PREFIX + refresh_id, REFRESH_SK)
        if row is None:
            return False
        try:
            self.delete_mirrored(
                self._pair_keys(row["user_id"], row.get("session_id", ""), refresh_id),
                condition=Condition.item_exists(),
            )
        except PreconditionFailed:
            return False
        return True

    def revoke_all_for_user(self, user_id: str) -> int:
        """Revoke every session/refresh pair listed in the user's index rows."""
        rows, _ = self._db.query(USER_INDEX_PREFIX + user_id)
        revoked = 0
        for row in rows:
            kind, _, credential_id = row["sk"].partition("#")
            if kind == "SESSION":
                revoked += int(self.revoke_session(credential_id))
            elif kind == "REFRESH":
                revoked += int(self.revoke_refresh(credential_id))
        # Index rows whose target vanished (e.g. swept by TTL) are removed last.
        leftovers, _ = self._db.query(USER_INDEX_PREFIX + user_id)
        for row in leftovers:
            self._db.delete_item(row["pk"], row["sk"])
        return revoked

    # Authorization codes -------------------------------------------------------

    def create_auth_code(self, code: AuthCode) -> None:
        self._db.put_item(
            {
                "pk": CODE_PREFIX + code.code,
                "sk": CODE_SK,
                "code_challenge": code.code_challenge,
                "code_challenge_method": code.code_challenge_method,
                "user_id": code.user_id,
                "client_id": code.client_id,
                **_expiry_fields(code.expires_at),
            },
            Condition.item_absent(),
        )

    def consume_auth_code(self, code: str) -> AuthCode:
        """Mark a code consumed exactly once and return it.

        Raises ``PreconditionFailed`` when the code does not exist or was
        already consumed, including by a concurrent request.
        """
        now = utc_now()
        row = self._db.update_item(
            UpdateOp(
                CODE_PREFIX + code,
                CODE_SK,
                set_fields={"consumed_at": isoformat(now)},
                condition=Condition.attribute_absent("consumed_at"),
            )
        )
        return AuthCode(
            code=code,
            code_challenge=row.get("code_challenge", ""),
            code_challenge_method=row.get("code_challenge_method", ""),
            user_id=row.get("user_id", ""),
            client_id=row.get("client_id", ""),
            expires_at=parse_timestamp(row["expires_at"]),
            consumed_at=now,
        )

    # Client policies ------------------------------------------------------------

    def get_client_ttls(self, client_id: str) -> Optional[ClientTTLs]:
        row = self._db.get_item(CLIENT_PK, f"CLIENT#{client_id}")
        if row is None:
            return None
        return ClientTTLs(
            client_id=client_id,
            session_ttl_seconds=int(row["session_ttl_seconds"]),
            refresh_ttl_seconds=int(row["refresh_ttl_seconds"]),
        )

    def ensure_clients(self, policies: Dict[str, Tuple[int, int]]) -> List[str]:
        """Register missing clients; existing registrations are left untouched."""
        created: List[str] = []
        for client_id, (session_ttl, refresh_ttl) in policies.items():
            try:
                self._db.put_item(
                    {
                        "pk": CLIENT_PK,
                        "sk": f"CLIENT#{client_id}",
                        "client_id": client_id,
                        "session_ttl_seconds": int(session_ttl),
                        "refresh_ttl_seconds": int(refresh_ttl),
                    },
                    Condition.item_absent(),
                )
            except PreconditionFailed:
                continue
            created.append(client_id)
        if created:
            logger.info("Registered auth clients: %s", ", ".join(created))
        return created


__all__ = ["CredentialStore"]
