"""OpenSearch client for the feed index.

The index holds post references only (handle, slug, timestamp, excerpt); full
post bodies stay in the primary store. Calls retry on transport failures and
surface any unexpected HTTP status immediately as ``FeedIndexError``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from afterwave.core.config import SearchSettings
from afterwave.core.errors import UnavailableError
from afterwave.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)

FEED_INDEX_MAPPING: Dict[str, Any] = {
    "mappings": {
        "properties": {
            "post_id": {"type": "keyword"},
            "artist_handle": {"type": "keyword"},
            "created_at": {"type": "date"},
            "body_excerpt": {"type": "text"},
            "explicit": {"type": "boolean"},
        }
    }
}

_REF_FIELDS = ["post_id", "artist_handle", "created_at", "explicit"]


class FeedIndexError(UnavailableError):
    """Raised when the search index cannot be reached or rejects a request."""


@dataclass(slots=True)
class FeedDoc:
    """Document written to the index for each post."""

    post_id: str
    artist_handle: str
    created_at: str
    body_excerpt: str = ""
    explicit: bool = False

    @property
    def doc_id(self) -> str:
        return feed_doc_id(self.artist_handle, self.post_id)


@dataclass(slots=True)
class FeedRef:
    """A search hit: enough to locate the post in the primary store."""

    post_id: str
    artist_handle: str
    created_at: str
    explicit: bool = False


def feed_doc_id(artist_handle: str, post_id: str) -> str:
    return f"{artist_handle}#{post_id}"


def build_feed_query(handles: Sequence[str], *, size: int, offset: int) -> Dict[str, Any]:
    """Terms filter on the handle set, newest first."""
    query: Dict[str, Any]
    if handles:
        query = {"terms": {"artist_handle": list(handles)}}
    else:
        query = {"match_none": {}}
    return {
        "query": query,
        "sort": [{"created_at": {"order": "desc"}}],
        "size": size,
        "from": offset,
        "_source": _REF_FIELDS,
    }


class FeedIndexClient:
    """Narrow index contract used by the feed: upsert, delete, search."""

    def __init__(
        self,
        settings: SearchSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not settings.endpoint:
            raise ValueError("OPENSEARCH_ENDPOINT must be configured for FeedIndexClient")
        self._base_url = settings.endpoint.rstrip("/")
        self._index = settings.feed_index
        self._timeout = settings.timeout_seconds
        self._retry = RetryConfig(
            attempts=settings.retry_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
        )
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    def _doc_path(self, doc_id: str) -> str:
        return f"/{self._index}/_doc/{quote(doc_id, safe='')}"

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with self._client() as client:
            try:
                return await request_with_retry(
                    client.request, method, path, retry_config=self._retry, **kwargs
                )
            except httpx.TransportError as exc:
                logger.warning("Feed index %s %s unreachable: %s", method, path, exc)
                raise FeedIndexError("search index unavailable") from exc

    @staticmethod
    def _expect(response: httpx.Response, *allowed: int) -> None:
        if response.status_code not in allowed:
            raise FeedIndexError(
                f"search index returned {response.status_code}: {response.text[:200]}"
            )

    async def index_post(self, doc: FeedDoc) -> None:
        """Upsert a post reference; searchable once the call returns."""
        if not doc.post_id or not doc.artist_handle:
            raise ValueError("post_id and artist_handle are required")
        response = await self._send(
            "PUT",
            self._doc_path(doc.doc_id),
            params={"refresh": "wait_for"},
            json=asdict(doc),
        )
        self._expect(response, HTTPStatus.OK, HTTPStatus.CREATED)

    async def delete_post(self, artist_handle: str, post_id: str) -> None:
        """Remove a post reference. A missing document counts as deleted."""
        response = await self._send(
            "DELETE",
            self._doc_path(feed_doc_id(artist_handle, post_id)),
            params={"refresh": "wait_for"},
        )
        self._expect(response, HTTPStatus.OK, HTTPStatus.NOT_FOUND)

    async def search(
        self, handles: Sequence[str], *, size: int, offset: int = 0
    ) -> List[FeedRef]:
        """Return references for the handle set sorted by ``created_at`` desc."""
        response = await self._send(
            "POST",
            f"/{self._index}/_search",
            json=build_feed_query(handles, size=size, offset=max(offset, 0)),
        )
        self._expect(response, HTTPStatus.OK)
        hits = response.json().get("hits", {}).get("hits", [])
        refs: List[FeedRef] = []
        for hit in hits:
            source = hit.get("_source") or {}
            if not source.get("post_id") or not source.get("artist_handle"):
                continue
            refs.append(
                FeedRef(
                    post_id=source["post_id"],
                    artist_handle=source["artist_handle"],
                    created_at=source.get("created_at", ""),
                    explicit=bool(source.get("explicit", False)),
                )
            )
        return refs

    async def ensure_index(self) -> bool:
        """Create the index with its mapping when missing. Returns True if created."""
        response = await self._send("HEAD", f"/{self._index}")
        if response.status_code == HTTPStatus.OK:
            return False
        response = await self._send("PUT", f"/{self._index}", json=FEED_INDEX_MAPPING)
        # 400 means a concurrent starter created it first.
        self._expect(response, HTTPStatus.OK, HTTPStatus.BAD_REQUEST)
        logger.info("Created feed index %s", self._index)
        return response.status_code == HTTPStatus.OK


__all__ = [
    "FEED_INDEX_MAPPING",
    "FeedDoc",
    "FeedIndexClient",
    "FeedIndexError",
    "FeedRef",
    "build_feed_query",
    "feed_doc_id",
]
