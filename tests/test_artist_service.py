import pytest

from afterwave.core.errors import (
    CannotRemoveOwnerError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    OwnerRolesImmutableError,
)
from afterwave.services import ArtistService
from afterwave.services.artists import validate_handle
from afterwave.services.roles import PERM_ARTIST_DELETE, PERM_FEED_CREATE, PERM_MUSIC_MANAGE
from afterwave.stores import ArtistStore, MemberStore

pytestmark = pytest.mark.anyio


@pytest.fixture()
def artists(db) -> ArtistService:
    return ArtistService(ArtistStore(db), MemberStore(db))


@pytest.mark.parametrize("handle", ["abcd", "theband2024", "a" * 64, "  MixedCase  "])
def test_valid_handles(handle: str) -> None:
    assert validate_handle(handle) == handle.strip().lower()


@pytest.mark.parametrize("handle", ["abc", "a" * 65, "the-band", "the band", "bänd", ""])
def test_invalid_handles(handle: str) -> None:
    with pytest.raises(InvalidInputError):
        validate_handle(handle)


async def test_create_defaults_display_name_and_rejects_taken_handle(artists: ArtistService) -> None:
    artist = await artists.create_artist("owner-1", "nightowls")

    assert artist.display_name == "nightowls"
    assert artist.follower_count == 0
    with pytest.raises(ConflictError):
        await artists.create_artist("owner-2", "NightOwls")


async def test_owner_has_every_permission_including_delete(artists: ArtistService) -> None:
    await artists.create_artist("owner-1", "nightowls")

    assert await artists.has_permission("nightowls", "owner-1", PERM_ARTIST_DELETE)
    assert await artists.has_permission("nightowls", "owner-1", PERM_MUSIC_MANAGE)
    assert not await artists.has_permission("nightowls", "stranger", PERM_FEED_CREATE)
    assert not await artists.has_permission("missing1", "owner-1", PERM_FEED_CREATE)


async def test_member_roles_scope_permissions(artists: ArtistService) -> None:
    await artists.create_artist("owner-1", "nightowls")
    await artists.add_member("nightowls", "owner-1", "user-2", ["feed"])

    assert await artists.has_permission("nightowls", "user-2", PERM_FEED_CREATE)
    assert not await artists.has_permission("nightowls", "user-2", PERM_MUSIC_MANAGE)

    await artists.update_member_roles("nightowls", "owner-1", "user-2", ["music", "music"])
    assert not await artists.has_permission("nightowls", "user-2", PERM_FEED_CREATE)
    assert await artists.has_permission("nightowls", "user-2", PERM_MUSIC_MANAGE)


async def test_admin_cannot_delete_page(artists: ArtistService) -> None:
    await artists.create_artist("owner-1", "nightowls")
    await artists.add_member("nightowls", "owner-1", "admin-1", ["admin"])

    with pytest.raises(ForbiddenError):
        await artists.delete_artist("nightowls", "admin-1")


async def test_member_management_rules(artists: ArtistService) -> None:
    await artists.create_artist("owner-1", "nightowls")
    await artists.add_member("nightowls", "owner-1", "user-2", ["feed"])

    with pytest.raises(ConflictError):
        await artists.add_member("nightowls", "owner-1", "user-2", ["music"])
    with pytest.raises(InvalidInputError):
        await artists.add_member("nightowls", "owner-1", "user-3", ["owner"])
    with pytest.raises(InvalidInputError):
        await artists.add_member("nightowls", "owner-1", "user-3", [])
    with pytest.raises(OwnerRolesImmutableError):
        await artists.update_member_roles("nightowls", "owner-1", "owner-1", ["feed"])
    with pytest.raises(CannotRemoveOwnerError):
        await artists.remove_member("nightowls", "owner-1", "owner-1")
    with pytest.raises(NotFoundError):
        await artists.update_member_roles("nightowls", "owner-1", "user-9", ["feed"])
    with pytest.raises(ForbiddenError):
        await artists.add_member("nightowls", "user-2", "user-3", ["feed"])


async def test_list_members_puts_owner_first(artists: ArtistService) -> None:
    await artists.create_artist("owner-1", "nightowls")
    await artists.add_member("nightowls", "owner-1", "user-2", ["feed", "photos"])

    members = await artists.list_members("nightowls", "user-2")

    assert [(m.user_id, m.roles) for m in members] == [
        ("owner-1", ["owner"]),
        ("user-2", ["feed", "photos"]),
    ]


async def test_list_for_user_covers_owned_and_member_pages(artists: ArtistService) -> None:
    await artists.create_artist("owner-1", "nightowls", display_name="Night Owls")
    await artists.create_artist("owner-2", "daybreak")
    await artists.add_member("daybreak", "owner-2", "owner-1", ["gigs"])

    summaries = await artists.list_for_user("owner-1")

    assert [(s.handle, s.role, s.roles) for s in summaries] == [
        ("nightowls", "owner", ["owner"]),
        ("daybreak", "member", ["gigs"]),
    ]
    assert summaries[0].display_name == "Night Owls"


async def test_update_keeps_display_name_when_empty(artists: ArtistService) -> None:
    await artists.create_artist("owner-1", "nightowls", display_name="Night Owls", bio="hoot")

    artist = await artists.update_artist("nightowls", "owner-1", display_name="", bio="")
    assert artist.display_name == "Night Owls"
    assert artist.bio == ""

    artist = await artists.update_artist("nightowls", "owner-1", display_name="The Owls")
    assert artist.display_name == "The Owls"
    summaries = await artists.list_for_user("owner-1")
    assert summaries[0].display_name == "The Owls"


async def test_delete_removes_page_and_memberships(artists: ArtistService) -> None:
    await artists.create_artist("owner-1", "nightowls")
    await artists.add_member("nightowls", "owner-1", "user-2", ["feed"])

    await artists.delete_artist("nightowls", "owner-1")

    with pytest.raises(NotFoundError):
        await artists.get_artist("nightowls")
    assert await artists.list_for_user("user-2") == []
    assert await artists.list_for_user("owner-1") == []
    await artists.create_artist("owner-3", "nightowls")
