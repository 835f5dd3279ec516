"""
Name: Retry Policy Unit Tests

Responsibilities:
  - Verify transient vs permanent error classification
  - Verify tenacity decorator retries only transient errors
  - Verify the requeue backoff curve (0 keeps immediate requeue)
"""

import psycopg
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from asyncflow.infrastructure.services import (
    create_retry_decorator,
    is_transient_error,
    requeue_backoff_seconds,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "exc,expected",
    [
        (psycopg.OperationalError("conn reset"), True),
        (RedisConnectionError("down"), True),
        (TimeoutError(), True),
        (psycopg.IntegrityError("dup"), False),
        (ValueError("bad"), False),
    ],
)
def test_is_transient_error(exc, expected):
    assert is_transient_error(exc) is expected


def test_decorator_retries_transient_then_succeeds():
    calls = []

    @create_retry_decorator(max_attempts=3, base_delay=0, max_delay=0.01)
    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("blip")
        return "ok"

    assert flaky() == "ok"
    assert len(calls) == 3


def test_decorator_does_not_retry_permanent():
    calls = []

    @create_retry_decorator(max_attempts=3, base_delay=0, max_delay=0.01)
    def broken():
        calls.append(1)
        raise ValueError("nope")

    with pytest.raises(ValueError):
        broken()

    assert len(calls) == 1


def test_decorator_rejects_invalid_attempts():
    with pytest.raises(ValueError):
        create_retry_decorator(max_attempts=0, base_delay=0, max_delay=1)


@pytest.mark.parametrize(
    "count,expected",
    [(1, 0.5), (2, 1.0), (3, 2.0), (4, 4.0), (10, 5.0)],
)
def test_requeue_backoff_grows_and_caps(count, expected):
    assert requeue_backoff_seconds(count, base_delay=0.5, max_delay=5.0) == expected


def test_requeue_backoff_disabled_by_default():
    assert requeue_backoff_seconds(7, base_delay=0.0, max_delay=60.0) == 0.0
