from afterwave.core.config import DEFAULT_CLIENT_POLICIES, AppSettings, AuthSettings


def test_default_client_policies() -> None:
    settings = AuthSettings()

    assert settings.client_policies == DEFAULT_CLIENT_POLICIES
    assert settings.client_policies["web"] == (900, 604800)


def test_client_policies_from_environment_are_normalized(monkeypatch) -> None:
    monkeypatch.setenv("AUTH_CLIENT_POLICIES", '{" Kiosk ": [60, 120], "": [1, 2]}')

    settings = AuthSettings()

    assert settings.client_policies == {"kiosk": (60, 120)}


def test_storage_backend_from_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "sqlite")
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "local.db"))
    monkeypatch.setenv("COGNITO_USER_POOL_ID", "us-east-1_pool")
    monkeypatch.delenv("COGNITO_CLIENT_ID", raising=False)

    settings = AppSettings()

    assert settings.storage_backend == "sqlite"
    assert settings.sqlite_path.endswith("local.db")
    assert settings.cognito.enabled is False
