"""Tests for configuration loading."""

import pytest

from neighborly.core.config import Constants, Settings


@pytest.mark.unit
def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("STORE_TIMEOUT_SECONDS", raising=False)
    monkeypatch.delenv("SQLITE_DB_PATH", raising=False)

    settings = Settings(_env_file=None)

    assert settings.sqlite_db_path == "data/neighborly.db"
    assert settings.store_timeout_seconds == 10.0
    assert settings.enable_status_audit is True


@pytest.mark.unit
def test_environment_overrides(monkeypatch) -> None:
    """Settings are read case-insensitively from the environment."""
    monkeypatch.setenv("STORE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("enable_status_audit", "false")

    settings = Settings(_env_file=None)

    assert settings.store_timeout_seconds == 2.5
    assert settings.enable_status_audit is False


@pytest.mark.unit
def test_actor_header_name() -> None:
    assert Constants.ACTOR_HEADER == "X-Actor-Id"
