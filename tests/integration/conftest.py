"""
Name: Integration Test Setup

Responsibilities:
  - Run Alembic migrations once per test session
  - Provide settings pointing at the real Postgres / Redis

Notes:
  - Only runs when RUN_INTEGRATION=1
  - Uses DATABASE_URL / REDIS_URL from environment
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config

from asyncflow.crosscutting.config import get_settings

if os.getenv("RUN_INTEGRATION") == "1":
    os.environ["APP_ENV"] = "integration"
    get_settings.cache_clear()


@pytest.fixture(scope="session", autouse=True)
def apply_migrations() -> None:
    """Run Alembic migrations for integration tests."""
    if os.getenv("RUN_INTEGRATION") != "1":
        return

    root_dir = Path(__file__).resolve().parents[2]
    config = Config(str(root_dir / "alembic.ini"))
    config.set_main_option("script_location", str(root_dir / "alembic"))

    command.upgrade(config, "head")
