"""
===============================================================================
TARJETA CRC — asyncflow/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Abrir y cerrar los recursos del proceso (cliente Redis + pool DB) como
    handles explícitos dentro de un scope `async with open_resources(...)`.
  - Componer dependencias (store, cola, consumidor, transcoder, use cases)
    siguiendo DIP.
  - Centralizar decisiones runtime basadas en Settings (config).

Colaboradores:
  - crosscutting.config.Settings
  - infrastructure.db.pool (open_pool / close_pool)
  - infrastructure.queue (RedisJobQueue / RedisJobConsumer)
  - infrastructure.repositories.PostgresJobStore
  - infrastructure.services (SimulatedTranscoder, retry)
  - application.usecases.*

Patrones aplicados:
  - Composition Root
  - Dependency Inversion (use cases dependen de puertos)
  - Resource scope (async context manager) en vez de singletons de módulo

Notas:
  - Este archivo NO contiene lógica de negocio.
  - Este archivo NO depende de FastAPI (api/main.py guarda Resources en app.state).
===============================================================================
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

from psycopg_pool import AsyncConnectionPool
from redis.asyncio import Redis

from .application.usecases import GetJobUseCase, ProcessJobUseCase, SubmitJobUseCase
from .crosscutting.config import Settings
from .crosscutting.logger import logger
from .domain.repositories import JobStatusStore
from .domain.services import JobQueue, Transcoder
from .infrastructure.db import close_pool, open_pool
from .infrastructure.queue import RedisJobConsumer, RedisJobQueue, RedisQueueConfig
from .infrastructure.repositories import PostgresJobStore
from .infrastructure.services import SimulatedTranscoder, create_retry_decorator
from .worker.consumer import JobWorker, WorkerConfig


@dataclass
class Resources:
    """Handles vivos del proceso. Sólo válidos dentro de open_resources()."""

    settings: Settings
    redis: Any
    pool: AsyncConnectionPool | None
    store: JobStatusStore
    queue: JobQueue


def build_queue_config(settings: Settings) -> RedisQueueConfig:
    return RedisQueueConfig(
        queue_name=settings.queue_name,
        prefetch=settings.queue_prefetch,
        dead_letter_enabled=settings.queue_dead_letter_enabled,
        heartbeat_ttl_seconds=settings.queue_heartbeat_ttl_seconds,
    )


def build_redis_client(settings: Settings) -> Redis:
    """
    Cliente Redis async.

    Nota:
      - socket_timeout debe superar el timeout de BLMOVE o el poll se corta
        con TimeoutError.
    """
    return Redis.from_url(
        settings.redis_url,
        socket_connect_timeout=2,
        socket_timeout=settings.worker_poll_timeout_seconds + 5,
        health_check_interval=30,
    )


@asynccontextmanager
async def open_resources(settings: Settings) -> AsyncIterator[Resources]:
    """
    Abre Redis + pool DB (fail-fast) y los libera al salir, en orden inverso.
    """
    redis = build_redis_client(settings)
    pool: AsyncConnectionPool | None = None
    try:
        await redis.ping()
        pool = await open_pool(
            settings.get_database_url(),
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            statement_timeout_ms=settings.db_statement_timeout_ms,
        )
        store = PostgresJobStore(pool, retrying=create_retry_decorator())
        queue = RedisJobQueue(redis=redis, config=build_queue_config(settings))
        logger.info(
            "Recursos abiertos",
            extra={"queue": settings.queue_name, "prefetch": settings.queue_prefetch},
        )
        yield Resources(settings=settings, redis=redis, pool=pool, store=store, queue=queue)
    finally:
        await close_pool(pool)
        await redis.aclose()
        logger.info("Recursos cerrados")


# =============================================================================
# Factories
# =============================================================================


def get_transcoder(settings: Settings) -> Transcoder:
    return SimulatedTranscoder(delay_seconds=settings.transcode_delay_seconds)


def get_submit_job_use_case(store: JobStatusStore, queue: JobQueue) -> SubmitJobUseCase:
    return SubmitJobUseCase(store=store, queue=queue)


def get_get_job_use_case(store: JobStatusStore) -> GetJobUseCase:
    return GetJobUseCase(store=store)


def get_process_job_use_case(
    settings: Settings, store: JobStatusStore, transcoder: Transcoder | None = None
) -> ProcessJobUseCase:
    return ProcessJobUseCase(
        store=store,
        transcoder=transcoder or get_transcoder(settings),
        mark_processing=settings.worker_mark_processing,
    )


def build_worker_config(settings: Settings) -> WorkerConfig:
    return WorkerConfig(
        poll_timeout_seconds=settings.worker_poll_timeout_seconds,
        poll_error_backoff_seconds=settings.worker_poll_error_backoff_seconds,
        heartbeat_interval_seconds=max(settings.queue_heartbeat_ttl_seconds / 3, 1.0),
        max_delivery_attempts=settings.worker_max_delivery_attempts,
        requeue_backoff_base_seconds=settings.worker_requeue_backoff_base_seconds,
        requeue_backoff_max_seconds=settings.worker_requeue_backoff_max_seconds,
        dead_letter_enabled=settings.queue_dead_letter_enabled,
    )


def build_consumer(resources: Resources) -> RedisJobConsumer:
    settings = resources.settings
    return RedisJobConsumer(
        redis=resources.redis,
        config=build_queue_config(settings),
        consumer_id=settings.worker_consumer_id or None,
    )


def build_worker(resources: Resources, consumer: RedisJobConsumer) -> JobWorker:
    settings = resources.settings
    return JobWorker(
        consumer=consumer,
        process_job=get_process_job_use_case(settings, resources.store),
        config=build_worker_config(settings),
    )
