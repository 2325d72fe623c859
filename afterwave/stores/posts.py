"""
Feed post persistence.

    ARTISTS#<handle> / POST#<slug>                      primary row
    ARTISTS#<handle> / POST#BYTIME#<created_at>#<slug>  time-ordered mirror

The mirror carries only the key of its post; listings page over the mirror
rows and hydrate the primary rows with one batch read.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from afterwave.clients.kv import Condition, Item, KeyValueStore, UpdateOp
from afterwave.models.posts import Post, PostPage
from afterwave.stores.artists import artist_pk
from afterwave.stores.base import MirroredStore, decode_cursor, encode_cursor

POST_SK_PREFIX = "POST#"
BYTIME_SK_PREFIX = "POST#BYTIME#"

_UPDATABLE_FIELDS = ("body", "image_url", "youtube_url", "explicit", "updated_at")


def post_sk(slug: str) -> str:
    return POST_SK_PREFIX + slug


def bytime_sk(created_at: str, slug: str) -> str:
    return f"{BYTIME_SK_PREFIX}{created_at}#{slug}"


def _to_post(row: Item) -> Post:
    return Post(
        post_id=row["post_id"],
        artist_handle=row["artist_handle"],
        title=row.get("title", ""),
        body=row.get("body", ""),
        created_at=row.get("created_at", ""),
        created_by_user_id=row.get("created_by_user_id", ""),
        image_url=row.get("image_url", ""),
        youtube_url=row.get("youtube_url", ""),
        explicit=bool(row.get("explicit", False)),
        updated_at=row.get("updated_at", ""),
    )


class PostStore(MirroredStore):
    """Posts keyed by slug within an artist partition, plus the time mirror."""

    def __init__(self, db: KeyValueStore) -> None:
        super().__init__(db)

    def create(self, post: Post) -> None:
        """Insert a post and its time mirror. ``PreconditionFailed`` on slug clash."""
        pk = artist_pk(post.artist_handle)
        self.write_mirrored(
            {
                "pk": pk,
                "sk": post_sk(post.post_id),
                "post_id": post.post_id,
                "artist_handle": post.artist_handle,
                "title": post.title,
                "body": post.body,
                "image_url": post.image_url,
                "youtube_url": post.youtube_url,
                "explicit": post.explicit,
                "created_at": post.created_at,
                "created_by_user_id": post.created_by_user_id,
            },
            [
                {
                    "pk": pk,
                    "sk": bytime_sk(post.created_at, post.post_id),
                    "post_id": post.post_id,
                    "created_at": post.created_at,
                }
            ],
            condition=Condition.item_absent(),
        )

    def get(self, handle: str, slug: str) -> Optional[Post]:
        row = self._db.get_item(artist_pk(handle), post_sk(slug))
        return _to_post(row) if row else None

    def update(self, handle: str, slug: str, fields: Dict[str, object]) -> Post:
        """Set the given fields on an existing post. ``PreconditionFailed`` if absent."""
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        row = self._db.update_item(
            UpdateOp(artist_pk(handle), post_sk(slug), set_fields=dict(fields))
        )
        return _to_post(row)

    def delete(self, post: Post) -> None:
        """Remove a post and its mirror. ``PreconditionFailed`` if already gone."""
        pk = artist_pk(post.artist_handle)
        self.delete_mirrored(
            [(pk, post_sk(post.post_id)), (pk, bytime_sk(post.created_at, post.post_id))],
            condition=Condition.item_exists(),
        )

    def batch_get(self, handle: str, slugs: Sequence[str]) -> List[Post]:
        """Fetch posts of one artist, returned in the order of ``slugs``.

        Slugs without a stored post are omitted.
        """
        if not slugs:
            return []
        pk = artist_pk(handle)
        rows = self._db.batch_get([(pk, post_sk(slug)) for slug in slugs])
        by_slug = {row["post_id"]: _to_post(row) for row in rows}
        return [by_slug[slug] for slug in slugs if slug in by_slug]

    def list_page(self, handle: str, *, limit: int, cursor: Optional[str] = None) -> PostPage:
        """Newest-first page of posts with an opaque cursor for the next page."""
        pk = artist_pk(handle)
        refs, last_key = self._db.query(
            pk,
            sk_prefix=BYTIME_SK_PREFIX,
            descending=True,
            limit=limit,
            exclusive_start=decode_cursor(cursor, pk=pk),
        )
        posts = self.batch_get(handle, [ref["post_id"] for ref in refs])
        return PostPage(posts=posts, next_cursor=encode_cursor(last_key))


__all__ = ["PostStore", "bytime_sk", "post_sk"]
