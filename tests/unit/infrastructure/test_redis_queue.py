"""
Name: Redis Queue Adapter Unit Tests

Responsibilities:
  - Verify the Redis command sequence for publish / get / ack / nack
  - Verify RedisError is translated into typed queue errors
  - Verify orphan recovery skips consumers with a live heartbeat
  - Verify a message moved by a failed get() goes back to ready
  - Verify configuration validation (fail-fast)

Collaborators:
  - asyncflow.infrastructure.queue.redis_queue
  - MagicMock / AsyncMock standing in for redis.asyncio.Redis
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from asyncflow.domain.messages import JobMessage
from asyncflow.domain.services import QueueDelivery
from asyncflow.infrastructure.queue import (
    PrefetchLimitExceeded,
    QueueConfigurationError,
    QueueConsumeError,
    QueuePublishError,
    RedisJobConsumer,
    RedisJobQueue,
    RedisQueueConfig,
    UnknownDeliveryError,
)
from asyncflow.infrastructure.queue.redis_queue import delivery_tag_for

pytestmark = pytest.mark.unit

BODY = b'{"id":"abc","videoName":"a.mp4","status":"PENDING"}'
READY = "asyncflow:queue:jobs:ready"
PROCESSING = "asyncflow:queue:jobs:processing:w1"


def _redis_with_pipeline():
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[1, 1])
    pipe_cm = MagicMock()
    pipe_cm.__aenter__ = AsyncMock(return_value=pipe)
    pipe_cm.__aexit__ = AsyncMock(return_value=False)

    redis = MagicMock()
    redis.pipeline = MagicMock(return_value=pipe_cm)
    redis.set = AsyncMock(return_value=True)
    redis.blmove = AsyncMock(return_value=BODY)
    redis.hincrby = AsyncMock(return_value=1)
    redis.lrange = AsyncMock(return_value=[])
    redis.lmove = AsyncMock(return_value=None)
    redis.delete = AsyncMock(return_value=1)
    return redis, pipe


def _consumer(redis, **config) -> RedisJobConsumer:
    return RedisJobConsumer(
        redis=redis,
        config=RedisQueueConfig(queue_name="jobs", **config),
        consumer_id="w1",
    )


# ============================================================================
# Producer side
# ============================================================================


@pytest.mark.asyncio
async def test_publish_lpushes_encoded_message():
    redis = MagicMock()
    redis.lpush = AsyncMock(return_value=1)
    queue = RedisJobQueue(redis=redis, config=RedisQueueConfig(queue_name="jobs"))

    await queue.publish(JobMessage(id="abc", video_name="a.mp4"))

    redis.lpush.assert_awaited_once_with(READY, BODY)


@pytest.mark.asyncio
async def test_publish_error_is_typed():
    redis = MagicMock()
    redis.lpush = AsyncMock(side_effect=RedisConnectionError("down"))
    queue = RedisJobQueue(redis=redis, config=RedisQueueConfig(queue_name="jobs"))

    with pytest.raises(QueuePublishError) as exc_info:
        await queue.publish(JobMessage(id="abc", video_name="a.mp4"))

    assert isinstance(exc_info.value.original_error, RedisConnectionError)


@pytest.mark.asyncio
async def test_ping_reports_false_on_redis_error():
    redis = MagicMock()
    redis.ping = AsyncMock(side_effect=RedisConnectionError("down"))
    queue = RedisJobQueue(redis=redis, config=RedisQueueConfig(queue_name="jobs"))

    assert await queue.ping() is False


@pytest.mark.asyncio
async def test_recover_orphans_skips_live_consumers():
    redis = MagicMock()

    async def _scan(match=None):
        for key in (b"asyncflow:queue:jobs:processing:dead", b"asyncflow:queue:jobs:processing:alive"):
            yield key

    redis.scan_iter = MagicMock(side_effect=_scan)
    redis.exists = AsyncMock(side_effect=lambda key: key.endswith(":alive"))
    redis.lmove = AsyncMock(side_effect=[BODY, BODY, None])
    queue = RedisJobQueue(redis=redis, config=RedisQueueConfig(queue_name="jobs"))

    recovered = await queue.recover_orphans()

    assert recovered == 2
    redis.lmove.assert_any_await(
        "asyncflow:queue:jobs:processing:dead", READY, src="RIGHT", dest="RIGHT"
    )
    assert all("alive" not in call.args[0] for call in redis.lmove.await_args_list)


# ============================================================================
# Consumer side
# ============================================================================


@pytest.mark.asyncio
async def test_get_moves_message_to_processing_list():
    redis, _ = _redis_with_pipeline()
    consumer = _consumer(redis)

    delivery = await consumer.get(5)

    redis.blmove.assert_awaited_once_with(READY, PROCESSING, 5, src="RIGHT", dest="LEFT")
    assert delivery.body == BODY
    assert delivery.delivery_tag == delivery_tag_for(BODY)
    assert delivery.delivery_count == 1
    assert consumer.in_flight == 1


@pytest.mark.asyncio
async def test_get_returns_none_on_empty_poll():
    redis, _ = _redis_with_pipeline()
    redis.blmove = AsyncMock(return_value=None)
    consumer = _consumer(redis)

    assert await consumer.get(1) is None
    assert consumer.in_flight == 0


@pytest.mark.asyncio
async def test_get_respects_prefetch():
    redis, _ = _redis_with_pipeline()
    consumer = _consumer(redis, prefetch=1)
    await consumer.get(1)

    with pytest.raises(PrefetchLimitExceeded):
        await consumer.get(1)

    assert redis.blmove.await_count == 1


@pytest.mark.asyncio
async def test_get_translates_redis_error():
    redis, _ = _redis_with_pipeline()
    redis.blmove = AsyncMock(side_effect=RedisConnectionError("down"))

    with pytest.raises(QueueConsumeError):
        await _consumer(redis).get(1)


@pytest.mark.asyncio
async def test_get_failure_after_move_returns_message_to_ready():
    redis, pipe = _redis_with_pipeline()
    redis.hincrby = AsyncMock(side_effect=RedisConnectionError("reset"))
    redis.lrange = AsyncMock(return_value=[BODY])
    consumer = _consumer(redis)

    with pytest.raises(QueueConsumeError):
        await consumer.get(1)

    redis.lrange.assert_awaited_once_with(PROCESSING, 0, -1)
    pipe.lrem.assert_called_once_with(PROCESSING, 1, BODY)
    pipe.rpush.assert_called_once_with(READY, BODY)
    assert consumer.in_flight == 0


@pytest.mark.asyncio
async def test_lost_blmove_reply_is_released_on_next_get_when_redis_returns():
    redis, pipe = _redis_with_pipeline()
    redis.blmove = AsyncMock(side_effect=[RedisConnectionError("reset"), None])
    redis.lrange = AsyncMock(side_effect=[RedisConnectionError("still down"), [BODY]])
    consumer = _consumer(redis)

    with pytest.raises(QueueConsumeError):
        await consumer.get(1)
    pipe.rpush.assert_not_called()

    assert await consumer.get(1) is None

    pipe.lrem.assert_called_once_with(PROCESSING, 1, BODY)
    pipe.rpush.assert_called_once_with(READY, BODY)
    assert redis.lrange.await_count == 2


@pytest.mark.asyncio
async def test_release_keeps_registered_deliveries_in_flight():
    other = b'{"id":"def","videoName":"b.mp4","status":"PENDING"}'
    redis, pipe = _redis_with_pipeline()
    redis.blmove = AsyncMock(side_effect=[BODY, other])
    redis.hincrby = AsyncMock(side_effect=[1, RedisConnectionError("reset")])
    redis.lrange = AsyncMock(return_value=[other, BODY])
    consumer = _consumer(redis, prefetch=2)
    first = await consumer.get(1)

    with pytest.raises(QueueConsumeError):
        await consumer.get(1)

    pipe.rpush.assert_called_once_with(READY, other)
    assert consumer.in_flight == 1
    await consumer.ack(first)


@pytest.mark.asyncio
async def test_empty_poll_does_not_scan_processing_list():
    redis, _ = _redis_with_pipeline()
    redis.blmove = AsyncMock(return_value=None)
    consumer = _consumer(redis)

    await consumer.get(1)
    await consumer.get(1)

    redis.lrange.assert_not_awaited()


@pytest.mark.asyncio
async def test_ack_removes_from_processing_and_forgets_count():
    redis, pipe = _redis_with_pipeline()
    consumer = _consumer(redis)
    delivery = await consumer.get(1)

    await consumer.ack(delivery)

    pipe.lrem.assert_called_once_with(PROCESSING, 1, BODY)
    pipe.hdel.assert_called_once_with("asyncflow:queue:jobs:deliveries", delivery.delivery_tag)
    pipe.execute.assert_awaited_once()
    assert consumer.in_flight == 0


@pytest.mark.asyncio
async def test_nack_requeue_pushes_to_consuming_end():
    redis, pipe = _redis_with_pipeline()
    consumer = _consumer(redis)
    delivery = await consumer.get(1)

    await consumer.nack(delivery, requeue=True)

    pipe.lrem.assert_called_once_with(PROCESSING, 1, BODY)
    pipe.rpush.assert_called_once_with(READY, BODY)
    pipe.hdel.assert_not_called()
    assert consumer.in_flight == 0


@pytest.mark.asyncio
async def test_nack_discard_dead_letters_when_enabled():
    redis, pipe = _redis_with_pipeline()
    consumer = _consumer(redis, dead_letter_enabled=True)
    delivery = await consumer.get(1)

    await consumer.nack(delivery, requeue=False)

    pipe.rpush.assert_not_called()
    pipe.lpush.assert_called_once_with("asyncflow:queue:jobs:dead", BODY)


@pytest.mark.asyncio
async def test_nack_discard_drops_by_default():
    redis, pipe = _redis_with_pipeline()
    consumer = _consumer(redis)
    delivery = await consumer.get(1)

    await consumer.nack(delivery, requeue=False)

    pipe.lpush.assert_not_called()
    pipe.rpush.assert_not_called()


@pytest.mark.asyncio
async def test_ack_failure_keeps_delivery_in_flight():
    redis, pipe = _redis_with_pipeline()
    pipe.execute = AsyncMock(side_effect=RedisConnectionError("down"))
    consumer = _consumer(redis)
    delivery = await consumer.get(1)

    with pytest.raises(QueueConsumeError):
        await consumer.ack(delivery)

    assert consumer.in_flight == 1


@pytest.mark.asyncio
async def test_ack_unknown_delivery_fails():
    redis, _ = _redis_with_pipeline()

    with pytest.raises(UnknownDeliveryError):
        await _consumer(redis).ack(QueueDelivery(body=BODY, delivery_tag="nope"))


@pytest.mark.asyncio
async def test_start_recovers_own_processing_list_and_heartbeats():
    redis, _ = _redis_with_pipeline()
    redis.lmove = AsyncMock(side_effect=[BODY, None])
    consumer = _consumer(redis, heartbeat_ttl_seconds=15)

    recovered = await consumer.start()

    assert recovered == 1
    redis.lmove.assert_any_await(PROCESSING, READY, src="RIGHT", dest="RIGHT")
    redis.set.assert_awaited_with("asyncflow:queue:jobs:consumer:w1", b"1", ex=15)


@pytest.mark.asyncio
async def test_close_deletes_heartbeat():
    redis, _ = _redis_with_pipeline()

    await _consumer(redis).close()

    redis.delete.assert_awaited_once_with("asyncflow:queue:jobs:consumer:w1")


# ============================================================================
# Configuration
# ============================================================================


@pytest.mark.parametrize(
    "config",
    [
        RedisQueueConfig(queue_name="  "),
        RedisQueueConfig(queue_name="jobs", prefetch=0),
        RedisQueueConfig(queue_name="jobs", heartbeat_ttl_seconds=0),
    ],
)
def test_invalid_config_fails_fast(config):
    with pytest.raises(QueueConfigurationError):
        RedisJobQueue(redis=MagicMock(), config=config)
