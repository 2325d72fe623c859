import pytest

from afterwave.clients import IdentityClaims
from afterwave.core.errors import (
    ConflictError,
    IdentityNotConfiguredError,
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
)
from afterwave.services import UserService
from afterwave.stores import CredentialStore, UserStore

pytestmark = pytest.mark.anyio


class StubValidator:
    def __init__(self, tokens: dict[str, IdentityClaims]) -> None:
        self.tokens = tokens

    async def validate(self, id_token: str) -> IdentityClaims:
        claims = self.tokens.get(id_token)
        if claims is None:
            raise UnauthenticatedError("invalid id token")
        return claims


@pytest.fixture()
def validator() -> StubValidator:
    return StubValidator(
        {
            "google-ada": IdentityClaims(subject="google-1", email="ada@example.com"),
            "google-new": IdentityClaims(subject="google-2", email="new@example.com"),
            "google-noemail": IdentityClaims(subject="google-3", email=""),
        }
    )


@pytest.fixture()
def users(db, auth_service, identity, validator) -> UserService:
    return UserService(UserStore(db), auth_service, identity=identity, id_token_validator=validator)


async def test_signup_then_login_resolves_same_user(users: UserService) -> None:
    user_id = await users.signup("Ada@Example.com ", "correct-horse")

    assert await users.login("ada@example.com", "correct-horse") == user_id
    user = await users.get_user(user_id)
    assert user.email == "ada@example.com"


async def test_duplicate_signup_is_generic_failure(users: UserService) -> None:
    await users.signup("ada@example.com", "correct-horse")

    with pytest.raises(InvalidInputError) as excinfo:
        await users.signup("ADA@example.com", "another-password")
    assert excinfo.value.message == "signup failed"


async def test_signup_validates_input(users: UserService) -> None:
    with pytest.raises(InvalidInputError):
        await users.signup("not-an-email", "correct-horse")
    with pytest.raises(InvalidInputError):
        await users.signup("ada@example.com", "short")


async def test_signup_without_identity_provider(db, auth_service) -> None:
    service = UserService(UserStore(db), auth_service)

    with pytest.raises(IdentityNotConfiguredError):
        await service.signup("ada@example.com", "correct-horse")


async def test_login_rejects_bad_password(users: UserService) -> None:
    await users.signup("ada@example.com", "correct-horse")

    with pytest.raises(UnauthenticatedError):
        await users.login("ada@example.com", "wrong-horse")


async def test_federated_sign_in_links_existing_email(users: UserService, db) -> None:
    user_id = await users.signup("ada@example.com", "correct-horse")

    assert await users.federated_sign_in("google-ada") == user_id
    assert await users.federated_sign_in("google-ada") == user_id
    assert "google-1" in UserStore(db).list_linked_subjects(user_id)


async def test_federated_sign_in_creates_new_user(users: UserService) -> None:
    user_id = await users.federated_sign_in("google-new")

    user = await users.get_user(user_id)
    assert user.email == "new@example.com"


async def test_federated_sign_in_requires_email(users: UserService) -> None:
    with pytest.raises(InvalidInputError):
        await users.federated_sign_in("google-noemail")


async def test_identity_cannot_link_to_two_accounts(users: UserService) -> None:
    first = await users.signup("ada@example.com", "correct-horse")
    second = await users.signup("bob@example.com", "correct-horse")
    await users.link_identity(first, "google-noemail")

    await users.link_identity(first, "google-noemail")
    with pytest.raises(ConflictError):
        await users.link_identity(second, "google-noemail")


async def test_delete_account_removes_user_and_sessions(users: UserService, auth_service, identity, db) -> None:
    user_id = await users.signup("ada@example.com", "correct-horse")
    pair = await auth_service.new_session(user_id, await auth_service.require_client("web"))

    await users.delete_account(user_id)

    with pytest.raises(NotFoundError):
        await users.get_user(user_id)
    assert CredentialStore(db).get_refresh(pair.refresh_token) is None
    assert identity.deleted == ["ada@example.com"]
    with pytest.raises(UnauthenticatedError):
        await users.login("ada@example.com", "correct-horse")
