"""
Tests for application settings.
"""

import pytest
from pydantic import ValidationError

from sandtrack.core.config import Settings


def test_workflow_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.checkpoint_count == 12
    assert settings.checkpoint_interval_minutes == 10
    assert settings.delivery_eta_hours == 2
    assert settings.default_payment_terms_days == 30
    assert settings.strict_in_transit_guard is False
    assert settings.enforce_driver_hours_limit is False
    assert settings.release_resources_on_delivery is False


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_CHECKPOINT_COUNT", "6")
    monkeypatch.setenv("APP_ENFORCE_DRIVER_HOURS_LIMIT", "true")

    settings = Settings(_env_file=None)

    assert settings.checkpoint_count == 6
    assert settings.enforce_driver_hours_limit is True


def test_cors_origins_from_comma_separated_string() -> None:
    settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test,")

    assert settings.cors_origins == ["http://a.test", "http://b.test"]


@pytest.mark.parametrize(
    "url",
    ["postgresql://u:p@db/sand", "postgresql+asyncpg://u:p@db/sand", "sqlite+aiosqlite:///sand.db"],
)
def test_supported_database_urls(url: str) -> None:
    assert Settings(_env_file=None, database_url=url).database_url == url


def test_unsupported_database_url() -> None:
    with pytest.raises(ValidationError, match="Database URL must start with"):
        Settings(_env_file=None, database_url="mysql://u:p@db/sand")


@pytest.mark.parametrize("count", [1, 13])
def test_checkpoint_count_bounds(count: int) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, checkpoint_count=count)


def test_sqlite_detection() -> None:
    assert Settings(_env_file=None, database_url="sqlite+aiosqlite:///sand.db").is_sqlite
    assert not Settings(_env_file=None).is_sqlite
