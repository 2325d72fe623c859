try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

from afterwave.main import app
from afterwave.services.pkce import generate_verifier, s256_challenge

pytestmark = pytest.mark.anyio

PASSWORD = "correct-horse-battery"


@pytest.fixture()
def overrides(db, feed_index, signer, identity):
    from afterwave import dependencies

    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_record_store: lambda: db,
            dependencies.get_feed_index: lambda: feed_index,
            dependencies.get_token_signer: lambda: signer,
            dependencies.get_identity_provider: lambda: identity,
            dependencies.get_id_token_validator: lambda: None,
        }
    )

    yield

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(overrides):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client


async def _authorize(client: httpx.AsyncClient, path: str, email: str, client_id: str = "web"):
    verifier = generate_verifier()
    response = await client.post(
        path,
        json={
            "email": email,
            "password": PASSWORD,
            "client_id": client_id,
            "code_challenge": s256_challenge(verifier),
            "code_challenge_method": "S256",
        },
    )
    return response, verifier


async def _exchange(client: httpx.AsyncClient, code: str, verifier: str, client_id: str = "web"):
    return await client.post(
        "/v1/auth/token",
        json={
            "grant_type": "authorization_code",
            "client_id": client_id,
            "code": code,
            "code_verifier": verifier,
        },
    )


async def _sign_up(client: httpx.AsyncClient, email: str) -> tuple[dict[str, str], dict]:
    response, verifier = await _authorize(client, "/v1/auth/signup", email)
    assert response.status_code == 201
    tokens = await _exchange(client, response.json()["authorization_code"], verifier)
    assert tokens.status_code == 200
    # Each test user authenticates with its own bearer token.
    client.cookies.clear()
    body = tokens.json()
    return {"Authorization": f"Bearer {body['session_token']}"}, body


async def _user_id(client: httpx.AsyncClient, headers: dict[str, str]) -> str:
    response = await client.get("/v1/users/me", headers=headers)
    assert response.status_code == 200
    return response.json()["user_id"]


async def test_health(client) -> None:
    response = await client.get("/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_signup_token_and_me(client) -> None:
    response, verifier = await _authorize(client, "/v1/auth/signup", "ada@example.com")
    assert response.status_code == 201
    code = response.json()["authorization_code"]
    assert response.json()["expires_in"] == 300

    tokens = await _exchange(client, code, verifier)
    assert tokens.status_code == 200
    cookies = " ".join(tokens.headers.get_list("set-cookie")).lower()
    assert "session_token=" in cookies and "refresh_token=" in cookies
    assert "httponly" in cookies and "samesite=strict" in cookies

    client.cookies.clear()
    me = await client.get(
        "/v1/users/me", headers={"Authorization": f"Bearer {tokens.json()['session_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["email"] == "ada@example.com"

    replay = await _exchange(client, code, verifier)
    assert replay.status_code == 401


async def test_login_after_signup(client) -> None:
    await _sign_up(client, "ada@example.com")

    response, verifier = await _authorize(client, "/v1/auth/login", "ADA@example.com", "ios")
    assert response.status_code == 200
    tokens = await _exchange(client, response.json()["authorization_code"], verifier, "ios")
    assert tokens.status_code == 200
    assert tokens.json()["expires_in"] == 30 * 24 * 3600


async def test_requests_without_credentials_are_rejected(client) -> None:
    response = await client.get("/v1/users/me")
    assert response.status_code == 401
    assert "detail" in response.json()

    response = await client.get("/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_unknown_client_and_malformed_bodies(client) -> None:
    response, _ = await _authorize(client, "/v1/auth/signup", "ada@example.com", "smart-fridge")
    assert response.status_code == 400

    response = await client.post("/v1/auth/signup", json={"email": "ada@example.com"})
    assert response.status_code == 400
    assert "detail" in response.json()


async def test_rejected_authorization_request_creates_no_account(client, identity) -> None:
    verifier = generate_verifier()
    body = {
        "email": "ada@example.com",
        "password": PASSWORD,
        "client_id": "web",
        "code_challenge": s256_challenge(verifier),
        "code_challenge_method": "plain",
    }

    response = await client.post("/v1/auth/signup", json=body)
    assert response.status_code == 400
    assert response.json() == {"detail": "code_challenge_method must be S256"}
    assert identity.users == {}

    response = await client.post("/v1/auth/login", json=body)
    assert response.status_code == 400

    body["code_challenge_method"] = "S256"
    response = await client.post("/v1/auth/signup", json=body)
    assert response.status_code == 201
    assert list(identity.users) == ["ada@example.com"]


async def test_federated_login_without_identity_provider(client) -> None:
    response = await client.post(
        "/v1/auth/federated",
        json={"id_token": "token", "client_id": "web", "code_challenge": "challenge"},
    )

    assert response.status_code == 501


async def test_refresh_rotation(client) -> None:
    _, first = await _sign_up(client, "ada@example.com")

    missing_header = await client.post("/v1/auth/refresh", json={"refresh_token": first["refresh_token"]})
    assert missing_header.status_code == 401

    rotated = await client.post(
        "/v1/auth/refresh",
        json={"refresh_token": first["refresh_token"]},
        headers={"X-Client-ID": "web"},
    )
    assert rotated.status_code == 200
    assert rotated.json()["refresh_token"] != first["refresh_token"]
    client.cookies.clear()

    reused = await client.post(
        "/v1/auth/refresh",
        json={"refresh_token": first["refresh_token"]},
        headers={"X-Client-ID": "web"},
    )
    assert reused.status_code == 401


async def test_logout_revokes_refresh_and_clears_cookies(client) -> None:
    headers, tokens = await _sign_up(client, "ada@example.com")

    response = await client.post("/v1/auth/logout", headers=headers)
    assert response.status_code == 204
    assert any("max-age=-1" in h.lower() for h in response.headers.get_list("set-cookie"))
    client.cookies.clear()

    refreshed = await client.post(
        "/v1/auth/refresh",
        json={"refresh_token": tokens["refresh_token"]},
        headers={"X-Client-ID": "web"},
    )
    assert refreshed.status_code == 401


async def test_artist_handles(client) -> None:
    headers, _ = await _sign_up(client, "owner@example.com")

    created = await client.post("/v1/artists", json={"handle": "abcd"}, headers=headers)
    assert created.status_code == 201
    assert created.json()["display_name"] == "abcd"

    too_short = await client.post("/v1/artists", json={"handle": "abc"}, headers=headers)
    assert too_short.status_code == 400

    taken = await client.post("/v1/artists", json={"handle": "abcd"}, headers=headers)
    assert taken.status_code == 409

    mine = await client.get("/v1/artists/me", headers=headers)
    assert mine.status_code == 200
    assert [(a["handle"], a["role"]) for a in mine.json()["artists"]] == [("abcd", "owner")]

    public = await client.get("/v1/artists/abcd")
    assert public.status_code == 200
    assert public.json()["follower_count"] == 0

    missing = await client.get("/v1/artists/zzzz")
    assert missing.status_code == 404


async def test_posts_follow_and_feed(client) -> None:
    owner, _ = await _sign_up(client, "owner@example.com")
    reader, _ = await _sign_up(client, "reader@example.com")
    await client.post("/v1/artists", json={"handle": "abcd"}, headers=owner)

    created = await client.post(
        "/v1/artists/abcd/posts", json={"title": "Hello World", "body": "First post"}, headers=owner
    )
    assert created.status_code == 201
    assert created.json()["post_id"] == "hello-world"

    duplicate = await client.post(
        "/v1/artists/abcd/posts", json={"title": "hello world"}, headers=owner
    )
    assert duplicate.status_code == 409

    forbidden = await client.post("/v1/artists/abcd/posts", json={"title": "Mine"}, headers=reader)
    assert forbidden.status_code == 403

    followed = await client.post("/v1/users/me/following/abcd", headers=reader)
    assert followed.status_code == 204
    again = await client.post("/v1/users/me/following/abcd", headers=reader)
    assert again.status_code == 204
    assert (await client.get("/v1/artists/abcd")).json()["follower_count"] == 1

    following = await client.get("/v1/users/me/following", headers=reader)
    assert following.json() == {"handles": ["abcd"]}
    followers = await client.get("/v1/artists/abcd/followers")
    assert followers.json() == {"user_ids": [await _user_id(client, reader)]}

    feed = await client.get("/v1/feed", headers=reader)
    assert feed.status_code == 200
    assert [p["post_id"] for p in feed.json()["posts"]] == ["hello-world"]
    assert feed.json()["has_more"] is False

    listing = await client.get("/v1/artists/abcd/posts", params={"limit": 1000})
    assert listing.status_code == 200
    assert len(listing.json()["posts"]) == 1

    deleted = await client.delete("/v1/artists/abcd/posts/hello-world", headers=owner)
    assert deleted.status_code == 204
    feed = await client.get("/v1/feed", headers=reader)
    assert feed.json()["posts"] == []

    unfollowed = await client.delete("/v1/users/me/following/abcd", headers=reader)
    assert unfollowed.status_code == 204
    assert (await client.get("/v1/artists/abcd")).json()["follower_count"] == 0


async def test_post_update_and_pagination(client) -> None:
    owner, _ = await _sign_up(client, "owner@example.com")
    await client.post("/v1/artists", json={"handle": "abcd"}, headers=owner)
    for title in ("One", "Two", "Three"):
        await client.post("/v1/artists/abcd/posts", json={"title": title}, headers=owner)

    patched = await client.patch(
        "/v1/artists/abcd/posts/two", json={"body": "updated", "explicit": True}, headers=owner
    )
    assert patched.status_code == 200
    assert patched.json()["body"] == "updated"
    assert patched.json()["explicit"] is True

    first = await client.get("/v1/artists/abcd/posts", params={"limit": 2})
    assert [p["post_id"] for p in first.json()["posts"]] == ["three", "two"]
    assert first.json()["has_more"] is True

    second = await client.get(
        "/v1/artists/abcd/posts", params={"limit": 2, "cursor": first.json()["next_cursor"]}
    )
    assert [p["post_id"] for p in second.json()["posts"]] == ["one"]
    assert second.json()["has_more"] is False

    bad_cursor = await client.get("/v1/artists/abcd/posts", params={"cursor": "garbage"})
    assert bad_cursor.status_code == 400


async def test_member_management(client) -> None:
    owner, _ = await _sign_up(client, "owner@example.com")
    writer, _ = await _sign_up(client, "writer@example.com")
    owner_id = await _user_id(client, owner)
    writer_id = await _user_id(client, writer)
    await client.post("/v1/artists", json={"handle": "abcd"}, headers=owner)

    added = await client.post(
        "/v1/artists/abcd/members", json={"user_id": writer_id, "roles": ["feed"]}, headers=owner
    )
    assert added.status_code == 204

    post = await client.post("/v1/artists/abcd/posts", json={"title": "By writer"}, headers=writer)
    assert post.status_code == 201

    members = await client.get("/v1/artists/abcd/members", headers=writer)
    assert [m["user_id"] for m in members.json()["members"]] == [owner_id, writer_id]

    changed = await client.patch(
        f"/v1/artists/abcd/members/{writer_id}", json={"roles": ["music"]}, headers=owner
    )
    assert changed.status_code == 204
    denied = await client.post("/v1/artists/abcd/posts", json={"title": "Again"}, headers=writer)
    assert denied.status_code == 403

    remove_owner = await client.delete(f"/v1/artists/abcd/members/{owner_id}", headers=owner)
    assert remove_owner.status_code == 400

    mine = await client.get("/v1/artists/me", headers=writer)
    assert [(a["handle"], a["roles"]) for a in mine.json()["artists"]] == [("abcd", ["music"])]

    removed = await client.delete(f"/v1/artists/abcd/members/{writer_id}", headers=owner)
    assert removed.status_code == 204
    assert (await client.get("/v1/artists/me", headers=writer)).json()["artists"] == []


async def test_artist_update_and_delete(client) -> None:
    owner, _ = await _sign_up(client, "owner@example.com")
    other, _ = await _sign_up(client, "other@example.com")
    await client.post("/v1/artists", json={"handle": "abcd", "display_name": "A B C D"}, headers=owner)

    patched = await client.patch("/v1/artists/abcd", json={"bio": "Live tonight"}, headers=owner)
    assert patched.status_code == 200
    assert patched.json()["display_name"] == "A B C D"
    assert patched.json()["bio"] == "Live tonight"

    forbidden = await client.delete("/v1/artists/abcd", headers=other)
    assert forbidden.status_code == 403

    deleted = await client.delete("/v1/artists/abcd", headers=owner)
    assert deleted.status_code == 204
    assert (await client.get("/v1/artists/abcd")).status_code == 404


async def test_delete_account(client) -> None:
    headers, _ = await _sign_up(client, "ada@example.com")

    response = await client.delete("/v1/account", headers=headers)
    assert response.status_code == 204

    login, _ = await _authorize(client, "/v1/auth/login", "ada@example.com")
    assert login.status_code == 401
