"""
User persistence with lookup rows for email and identity-provider subject.

    USERS#user,<id[0]>          / USER#<id>          primary row
    USERS#email#<sha256[:2]>    / <email>            email -> user id
    USERS#cognito_sub#<sub[:2]> / <sub>              subject -> user id
    USERS#user,<id[0]>          / LINKED_SUB#<id>#<sub>  subjects linked to the user

Lookup partitions are sharded by a short prefix so no single partition takes
every login.
"""

from __future__ import annotations

import hashlib
from typing import List, Optional

from afterwave.clients.kv import Condition, Item, KeyValueStore, PutOp
from afterwave.models.users import User
from afterwave.stores.base import MirroredStore

USERS_PREFIX = "USERS#user,"
USER_SK_PREFIX = "USER#"
EMAIL_PK_PREFIX = "USERS#email#"
SUB_PK_PREFIX = "USERS#cognito_sub#"
LINKED_SUB_PREFIX = "LINKED_SUB#"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def user_pk(user_id: str) -> str:
    return USERS_PREFIX + (user_id[:1] or "_")


def email_pk(email: str) -> str:
    return EMAIL_PK_PREFIX + hashlib.sha256(email.encode("utf-8")).hexdigest()[:2]


def subject_pk(subject: str) -> str:
    return SUB_PK_PREFIX + subject[:2]


def _linked_sk_prefix(user_id: str) -> str:
    return f"{LINKED_SUB_PREFIX}{user_id}#"


def _to_user(row: Item, linked: Optional[List[str]] = None) -> User:
    return User(
        user_id=row["user_id"],
        email=row.get("email", ""),
        created_at=row.get("created_at", ""),
        cognito_sub=row.get("cognito_sub", ""),
        linked_subs=linked or [],
    )


class UserStore(MirroredStore):
    """Users resolvable by id, email or identity-provider subject."""

    def __init__(self, db: KeyValueStore) -> None:
        super().__init__(db)

    def put_user(self, user: User) -> None:
        """Create a user with its lookup rows.

        Raises ``PreconditionFailed`` when the id, email or subject is taken.
        """
        mirrors = [
            PutOp(
                {"pk": email_pk(user.email), "sk": user.email, "user_id": user.user_id},
                Condition.item_absent(),
            )
        ]
        if user.cognito_sub:
            mirrors.append(
                PutOp(
                    {
                        "pk": subject_pk(user.cognito_sub),
                        "sk": user.cognito_sub,
                        "user_id": user.user_id,
                    },
                    Condition.item_absent(),
                )
            )
        self.write_mirrored(
            {
                "pk": user_pk(user.user_id),
                "sk": USER_SK_PREFIX + user.user_id,
                "user_id": user.user_id,
                "email": user.email,
                "cognito_sub": user.cognito_sub or None,
                "created_at": user.created_at,
            },
            condition=Condition.item_absent(),
            extra=mirrors,
        )

    def get_by_id(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        row = self._db.get_item(user_pk(user_id), USER_SK_PREFIX + user_id)
        if row is None:
            return None
        return _to_user(row, self.list_linked_subjects(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        email = normalize_email(email)
        if not email:
            return None
        lookup = self._db.get_item(email_pk(email), email)
        if lookup is None:
            return None
        return self.get_by_id(lookup["user_id"])

    def get_by_subject(self, subject: str) -> Optional[User]:
        if not subject:
            return None
        lookup = self._db.get_item(subject_pk(subject), subject)
        if lookup is None:
            return None
        return self.get_by_id(lookup["user_id"])

    def subject_owner(self, subject: str) -> Optional[str]:
        lookup = self._db.get_item(subject_pk(subject), subject)
        return lookup["user_id"] if lookup else None

    def link_subject(self, user_id: str, subject: str) -> None:
        """Add a subject lookup row plus the user's link row.

        Raises ``PreconditionFailed`` when the subject already resolves to a user.
        """
        self.write_mirrored(
            {"pk": subject_pk(subject), "sk": subject, "user_id": user_id},
            [{"pk": user_pk(user_id), "sk": _linked_sk_prefix(user_id) + subject}],
            condition=Condition.item_absent(),
        )

    def list_linked_subjects(self, user_id: str) -> List[str]:
        prefix = _linked_sk_prefix(user_id)
        rows, _ = self._db.query(user_pk(user_id), sk_prefix=prefix)
        return [row["sk"][len(prefix) :] for row in rows]

    def delete_user(self, user_id: str) -> Optional[User]:
        """Delete every row belonging to the user; returns what was deleted."""
        user = self.get_by_id(user_id)
        if user is None:
            return None
        keys = [
            (user_pk(user_id), USER_SK_PREFIX + user_id),
            (email_pk(user.email), user.email),
        ]
        if user.cognito_sub:
            keys.append((subject_pk(user.cognito_sub), user.cognito_sub))
        for subject in user.linked_subs:
            if subject != user.cognito_sub:
                keys.append((subject_pk(subject), subject))
            keys.append((user_pk(user_id), _linked_sk_prefix(user_id) + subject))
        self.delete_mirrored(keys)
        return user


__all__ = ["UserStore", "normalize_email"]
