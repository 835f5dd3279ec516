"""
Name: Settings Unit Tests

Responsibilities:
  - Verify defaults (queue name, port, unbounded requeue)
  - Verify env overrides and validation (fail-fast on bad values)
  - Verify derived helpers (database URL, CORS origins)
"""

import pytest
from pydantic import ValidationError

from asyncflow.crosscutting.config import Settings

pytestmark = pytest.mark.unit


def test_defaults(monkeypatch):
    for var in ("QUEUE_NAME", "PORT", "WORKER_MAX_DELIVERY_ATTEMPTS", "DATABASE_URL"):
        monkeypatch.delenv(var, raising=False)

    settings = Settings()

    assert settings.queue_name == "pedidos_video"
    assert settings.port == 3000
    assert settings.queue_prefetch == 1
    assert settings.worker_max_delivery_attempts == 0
    assert settings.worker_requeue_backoff_base_seconds == 0.0


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("QUEUE_NAME", "jobs")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("WORKER_MAX_DELIVERY_ATTEMPTS", "5")

    settings = Settings()

    assert settings.queue_name == "jobs"
    assert settings.port == 8080
    assert settings.worker_max_delivery_attempts == 5


@pytest.mark.parametrize(
    "overrides",
    [
        {"queue_prefetch": 0},
        {"queue_name": "   "},
        {"worker_max_delivery_attempts": -1},
        {"retry_max_attempts": 0},
        {"log_level": "LOUD"},
    ],
)
def test_invalid_values_fail_fast(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_database_url_built_from_parts():
    settings = Settings(
        database_url="",
        postgres_host="db",
        postgres_port=5433,
        postgres_db="jobs",
        postgres_user="svc",
        postgres_password="p@ss",
    )

    assert settings.get_database_url() == "postgresql://svc:p%40ss@db:5433/jobs"


def test_database_url_override_wins():
    settings = Settings(database_url=" postgresql://u:p@h/db ")

    assert settings.get_database_url() == "postgresql://u:p@h/db"


def test_allowed_origins_list():
    settings = Settings(allowed_origins="http://a, ,http://b")

    assert settings.get_allowed_origins_list() == ["http://a", "http://b"]
