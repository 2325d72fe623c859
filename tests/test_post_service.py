import pytest

from afterwave.clients import FeedDoc, FeedIndexError
from afterwave.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnavailableError,
)
from afterwave.services import ArtistService, PostService, slugify
from afterwave.services.posts import body_excerpt, drain_background_tasks
from afterwave.stores import ArtistStore, MemberStore, PostStore

pytestmark = pytest.mark.anyio


class RecordingIndex:
    """Feed index double that records calls and can be told to fail."""

    def __init__(self) -> None:
        self.docs: dict[str, FeedDoc] = {}
        self.deleted: list[tuple[str, str]] = []
        self.fail_index = False
        self.fail_delete = False

    async def index_post(self, doc: FeedDoc) -> None:
        if self.fail_index:
            raise FeedIndexError("search index unavailable")
        self.docs[doc.doc_id] = doc

    async def delete_post(self, artist_handle: str, post_id: str) -> None:
        if self.fail_delete:
            raise FeedIndexError("search index unavailable")
        self.deleted.append((artist_handle, post_id))
        self.docs.pop(f"{artist_handle}#{post_id}", None)

    async def search(self, handles, *, size, offset=0):
        return []

    async def ensure_index(self) -> bool:
        return False


@pytest.fixture()
def index() -> RecordingIndex:
    return RecordingIndex()


@pytest.fixture()
async def posts(db, index) -> PostService:
    artists = ArtistService(ArtistStore(db), MemberStore(db))
    await artists.create_artist("owner-1", "nightowls")
    await artists.add_member("nightowls", "owner-1", "writer-1", ["feed"])
    await artists.add_member("nightowls", "owner-1", "musician-1", ["music"])
    return PostService(PostStore(db), artists, index)


@pytest.mark.parametrize(
    ("title", "slug"),
    [
        ("Hello World", "hello-world"),
        ("  Tour -- Dates 2025!  ", "tour-dates-2025"),
        ("New_Album: Out NOW", "newalbum-out-now"),
        ("---", ""),
    ],
)
def test_slugify(title: str, slug: str) -> None:
    assert slugify(title) == slug


def test_body_excerpt_is_truncated() -> None:
    assert body_excerpt("x" * 500) == "x" * 200
    assert body_excerpt("short") == "short"


async def test_create_post_indexes_reference(posts: PostService, index: RecordingIndex) -> None:
    post = await posts.create_post("nightowls", "writer-1", title="Tour Dates", body="See you")

    assert post.post_id == "tour-dates"
    assert post.created_by_user_id == "writer-1"
    doc = index.docs["nightowls#tour-dates"]
    assert doc.body_excerpt == "See you"
    assert doc.created_at == post.created_at


async def test_duplicate_title_conflicts(posts: PostService) -> None:
    await posts.create_post("nightowls", "owner-1", title="Tour Dates")

    with pytest.raises(ConflictError):
        await posts.create_post("nightowls", "owner-1", title="tour dates!")


async def test_create_requires_feed_permission(posts: PostService) -> None:
    with pytest.raises(ForbiddenError):
        await posts.create_post("nightowls", "musician-1", title="Hello")
    with pytest.raises(NotFoundError):
        await posts.create_post("missing1", "owner-1", title="Hello")
    with pytest.raises(InvalidInputError):
        await posts.create_post("nightowls", "owner-1", title="!!!")


async def test_index_failure_rolls_back_create(posts: PostService, index: RecordingIndex) -> None:
    index.fail_index = True

    with pytest.raises(FeedIndexError):
        await posts.create_post("nightowls", "owner-1", title="Tour Dates")

    with pytest.raises(NotFoundError):
        await posts.get_post("nightowls", "tour-dates")
    index.fail_index = False
    await posts.create_post("nightowls", "owner-1", title="Tour Dates")


async def test_failed_rollback_keeps_index_error(
    posts: PostService, index: RecordingIndex, monkeypatch
) -> None:
    def broken_delete(post) -> None:
        raise UnavailableError()

    index.fail_index = True
    monkeypatch.setattr(posts._posts, "delete", broken_delete)

    with pytest.raises(FeedIndexError):
        await posts.create_post("nightowls", "owner-1", title="Tour Dates")


async def test_update_sets_provided_fields_and_reindexes(posts: PostService, index: RecordingIndex) -> None:
    await posts.create_post(
        "nightowls", "owner-1", title="Tour Dates", body="old", image_url="https://img/1.png"
    )

    updated = await posts.update_post(
        "nightowls", "tour-dates", "writer-1", body="new body", image_url="", explicit=True
    )
    await drain_background_tasks()

    assert updated.body == "new body"
    assert updated.image_url == ""
    assert updated.explicit is True
    assert updated.title == "Tour Dates"
    assert updated.updated_at
    assert index.docs["nightowls#tour-dates"].body_excerpt == "new body"


async def test_update_survives_index_failure(posts: PostService, index: RecordingIndex) -> None:
    await posts.create_post("nightowls", "owner-1", title="Tour Dates")
    index.fail_index = True

    updated = await posts.update_post("nightowls", "tour-dates", "owner-1", body="changed")
    await drain_background_tasks()

    assert updated.body == "changed"
    assert (await posts.get_post("nightowls", "tour-dates")).body == "changed"


async def test_delete_is_best_effort_on_index(posts: PostService, index: RecordingIndex) -> None:
    await posts.create_post("nightowls", "owner-1", title="Tour Dates")
    index.fail_delete = True

    await posts.delete_post("nightowls", "tour-dates", "writer-1")

    with pytest.raises(NotFoundError):
        await posts.get_post("nightowls", "tour-dates")
    with pytest.raises(NotFoundError):
        await posts.delete_post("nightowls", "tour-dates", "owner-1")


async def test_list_posts_pages_newest_first(posts: PostService) -> None:
    for title in ("First", "Second", "Third"):
        await posts.create_post("nightowls", "owner-1", title=title)

    page = await posts.list_posts("nightowls", limit=2)
    assert [p.post_id for p in page.posts] == ["third", "second"]
    assert page.has_more

    page = await posts.list_posts("nightowls", limit=2, cursor=page.next_cursor)
    assert [p.post_id for p in page.posts] == ["first"]
    assert not page.has_more


async def test_list_posts_rejects_foreign_cursor(posts: PostService, db) -> None:
    await ArtistService(ArtistStore(db), MemberStore(db)).create_artist("owner-2", "daybreak")
    for title in ("First", "Second"):
        await posts.create_post("nightowls", "owner-1", title=title)
    page = await posts.list_posts("nightowls", limit=1)

    with pytest.raises(InvalidInputError):
        await posts.list_posts("daybreak", limit=1, cursor=page.next_cursor)
    with pytest.raises(InvalidInputError):
        await posts.list_posts("nightowls", limit=1, cursor="not-a-cursor")
