"""
Domain models for platform users.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(slots=True)
class User:
    user_id: str
    email: str
    created_at: str
    cognito_sub: str = ""
    linked_subs: List[str] = field(default_factory=list)


__all__ = ["User"]
