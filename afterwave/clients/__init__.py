"""Expose constructed client wrappers."""

from .cognito import CognitoClient
from .dynamodb import DynamoDBClient
from .feed_index import FeedDoc, FeedIndexClient, FeedIndexError, FeedRef
from .jwks import IDTokenValidator, IdentityClaims, JWKSCache
from .kv import Condition, DeleteOp, KeyValueStore, PutOp, UpdateOp
from .local_feed_index import SQLiteFeedIndex
from .sqlite_store import SQLiteStore

__all__ = [
    "CognitoClient",
    "Condition",
    "DeleteOp",
    "DynamoDBClient",
    "FeedDoc",
    "FeedIndexClient",
    "FeedIndexError",
    "FeedRef",
    "IDTokenValidator",
    "IdentityClaims",
    "JWKSCache",
    "KeyValueStore",
    "PutOp",
    "SQLiteFeedIndex",
    "SQLiteStore",
    "UpdateOp",
]
