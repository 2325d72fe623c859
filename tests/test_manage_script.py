"""Tests for the maintenance command line tool."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from afterwave.clients import SQLiteFeedIndex
from afterwave.core.errors import UnavailableError
from afterwave.stores import ActivityStore, CredentialStore
from scripts import manage


@pytest.fixture
def wired_store(db, monkeypatch):
    monkeypatch.setattr(manage, "get_record_store", lambda: db)
    return db


def test_check_passes_with_valid_environment() -> None:
    assert manage.main(["check"]) == manage.EXIT_OK


def test_check_reports_invalid_settings(monkeypatch, capsys) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "postgres")

    assert manage.main(["check"]) == manage.EXIT_VALIDATION_ERROR
    assert "Settings validation failed" in capsys.readouterr().err


def test_seed_clients_is_idempotent(wired_store, monkeypatch, capsys) -> None:
    monkeypatch.setenv("AUTH_CLIENT_POLICIES", '{"kiosk": [60, 120]}')

    assert manage.main(["seed-clients"]) == manage.EXIT_OK
    assert "kiosk" in capsys.readouterr().out
    assert manage.main(["seed-clients"]) == manage.EXIT_OK
    assert "already registered" in capsys.readouterr().out

    ttls = CredentialStore(wired_store).get_client_ttls("kiosk")
    assert ttls is not None
    assert (ttls.session_ttl_seconds, ttls.refresh_ttl_seconds) == (60, 120)
    # Default clients were seeded by the fixture and stay untouched.
    assert CredentialStore(wired_store).get_client_ttls("web") is not None


def test_ensure_index_creates_then_reports_existing(tmp_path, monkeypatch, capsys) -> None:
    index = SQLiteFeedIndex(str(tmp_path / "feed.db"))
    monkeypatch.setattr(manage, "get_feed_index", lambda: index)

    assert manage.main(["ensure-index"]) == manage.EXIT_OK
    assert "Created feed index" in capsys.readouterr().out
    assert manage.main(["ensure-index"]) == manage.EXIT_OK
    assert "already exists" in capsys.readouterr().out


def test_ensure_index_failure_is_a_runtime_error(monkeypatch, capsys) -> None:
    class BrokenIndex:
        async def ensure_index(self) -> bool:
            raise UnavailableError("search unavailable")

    monkeypatch.setattr(manage, "get_feed_index", lambda: BrokenIndex())

    assert manage.main(["ensure-index"]) == manage.EXIT_RUNTIME_ERROR
    assert "search unavailable" in capsys.readouterr().err


def test_mau_counts_requested_month(wired_store, capsys) -> None:
    activity = ActivityStore(wired_store)
    september = datetime(2026, 9, 14, tzinfo=timezone.utc)
    activity.record_if_new("u-1", now=september)
    activity.record_if_new("u-2", now=september)
    activity.record_if_new("u-1", now=september)
    activity.record_if_new("u-3", now=datetime(2026, 10, 1, tzinfo=timezone.utc))

    assert manage.main(["mau", "--month", "2026-09"]) == manage.EXIT_OK
    assert capsys.readouterr().out.strip() == "2026-09\t2"


def test_mau_rejects_malformed_month(wired_store) -> None:
    with pytest.raises(SystemExit) as excinfo:
        manage.main(["mau", "--month", "2026-13"])
    assert excinfo.value.code == 2
