"""
Name: Container Wiring Tests

Responsibilities:
  - Verify settings flow into queue / worker configuration
  - Verify open_resources opens and releases Redis + pool in order

Collaborators:
  - asyncflow.container
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from asyncflow import container
from asyncflow.crosscutting.config import Settings
from asyncflow.infrastructure.queue import RedisJobQueue
from asyncflow.infrastructure.repositories import PostgresJobStore
from asyncflow.infrastructure.services import SimulatedTranscoder

pytestmark = pytest.mark.unit


def test_build_worker_config_from_settings():
    settings = Settings(
        queue_heartbeat_ttl_seconds=30,
        worker_max_delivery_attempts=4,
        worker_requeue_backoff_base_seconds=0.5,
        queue_dead_letter_enabled=True,
    )

    config = container.build_worker_config(settings)

    assert config.heartbeat_interval_seconds == 10.0
    assert config.max_delivery_attempts == 4
    assert config.requeue_backoff_base_seconds == 0.5
    assert config.dead_letter_enabled is True


def test_build_queue_config_from_settings():
    config = container.build_queue_config(Settings(queue_name="jobs", queue_prefetch=2))

    assert config.queue_name == "jobs"
    assert config.prefetch == 2


def test_transcoder_uses_configured_delay():
    transcoder = container.get_transcoder(Settings(transcode_delay_seconds=1.5))

    assert isinstance(transcoder, SimulatedTranscoder)
    assert transcoder.delay_seconds == 1.5


@pytest.mark.asyncio
async def test_open_resources_opens_and_closes():
    redis = MagicMock()
    redis.ping = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()
    pool = MagicMock()

    with patch.object(container, "build_redis_client", return_value=redis), patch.object(
        container, "open_pool", AsyncMock(return_value=pool)
    ), patch.object(container, "close_pool", AsyncMock()) as close_pool:
        async with container.open_resources(Settings()) as resources:
            assert isinstance(resources.store, PostgresJobStore)
            assert isinstance(resources.queue, RedisJobQueue)
            assert resources.pool is pool

    close_pool.assert_awaited_once_with(pool)
    redis.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_open_resources_releases_redis_when_db_is_down():
    redis = MagicMock()
    redis.ping = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()

    with patch.object(container, "build_redis_client", return_value=redis), patch.object(
        container, "open_pool", AsyncMock(side_effect=RuntimeError("db down"))
    ), patch.object(container, "close_pool", AsyncMock()) as close_pool:
        with pytest.raises(RuntimeError):
            async with container.open_resources(Settings()):
                pass

    close_pool.assert_awaited_once_with(None)
    redis.aclose.assert_awaited_once()
