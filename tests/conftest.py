"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from afterwave.clients import SQLiteFeedIndex, SQLiteStore
from afterwave.core.config import DEFAULT_CLIENT_POLICIES
from afterwave.core.errors import ConflictError, UnauthenticatedError
from afterwave.services import AuthService, SessionTokenSigner
from afterwave.stores import ActivityStore, CredentialStore


class FakeIdentityProvider:
    """In-memory stand-in for the Cognito user pool."""

    def __init__(self) -> None:
        self.users: dict[str, tuple[str, str]] = {}
        self.deleted: list[str] = []

    def sign_up(self, email: str, password: str) -> str:
        if email in self.users:
            raise ConflictError("account already exists")
        subject = f"sub-{len(self.users) + 1}"
        self.users[email] = (password, subject)
        return subject

    def initiate_auth(self, email: str, password: str) -> str:
        stored = self.users.get(email)
        if stored is None or stored[0] != password:
            raise UnauthenticatedError("invalid email or password")
        return stored[1]

    def admin_delete_user(self, email: str) -> None:
        self.users.pop(email, None)
        self.deleted.append(email)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture()
def db(tmp_path) -> SQLiteStore:
    store = SQLiteStore(str(tmp_path / "afterwave.db"))
    CredentialStore(store).ensure_clients(DEFAULT_CLIENT_POLICIES)
    return store


@pytest.fixture()
def feed_index(tmp_path) -> SQLiteFeedIndex:
    return SQLiteFeedIndex(str(tmp_path / "afterwave-feed.db"))


@pytest.fixture(scope="session")
def signer() -> SessionTokenSigner:
    return SessionTokenSigner.generate()


@pytest.fixture()
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def auth_service(db, signer) -> AuthService:
    return AuthService(CredentialStore(db), signer, activity=ActivityStore(db))
