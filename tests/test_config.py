"""Tests for environment-driven settings."""
import pytest
from pydantic import ValidationError

from menuscout.config import Settings


def test_database_url_is_required(monkeypatch):
    monkeypatch.delenv("MENUSCOUT_DATABASE_URL", raising=False)
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None)
    assert exc_info.value.errors()[0]["loc"] == ("database_url",)


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("MENUSCOUT_DATABASE_URL", "postgresql+psycopg://u:p@db/menus")
    monkeypatch.setenv("MENUSCOUT_HEADLESS", "false")
    monkeypatch.setenv("MENUSCOUT_WORKER_CONCURRENCY", "4")
    settings = Settings(_env_file=None)
    assert settings.database_url == "postgresql+psycopg://u:p@db/menus"
    assert settings.headless is False
    assert settings.worker_concurrency == 4


def test_url_patterns_follow_country(settings):
    kuwait = settings.model_copy(update={"country_slug": "kuwait"})
    assert kuwait.restaurant_path == "/kuwait/restaurant/"
    assert kuwait.area_path_pattern.startswith("/kuwait/restaurants/")
