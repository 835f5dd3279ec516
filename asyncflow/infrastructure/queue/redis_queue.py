"""
===============================================================================
ARCHIVO: infrastructure/queue/redis_queue.py
===============================================================================

CRC CARD (Class)
-------------------------------------------------------------------------------
Clases:
    RedisJobQueue (Adapter, lado productor)
    RedisJobConsumer (Adapter, lado consumidor)

Responsabilidades:
    - Implementar los puertos `JobQueue` / `JobConsumer` sobre listas de Redis
      (patrón "reliable queue"):
        ready  --BLMOVE-->  processing:<consumer>  --ack--> (borrado)
                                                   --nack(requeue)--> ready
    - Entrega at-least-once: el mensaje vive en la lista in-flight del
      consumidor hasta ack/nack; si el consumidor muere, se recupera.
    - Prefetch: el consumidor no pide más trabajo con `prefetch` mensajes
      sin resolver.
    - Heartbeat con TTL para detectar consumidores caídos.

Colaboradores:
    - redis.asyncio.Redis (inyectado desde el contenedor)
    - domain.messages.encode_job_message
    - errors.QueuePublishError / QueueConsumeError / PrefetchLimitExceeded
    - crosscutting.logger

Layout de claves (prefijo `asyncflow:queue:<nombre>`):
    :ready                  LIST  mensajes listos (LPUSH publica, consumo por RIGHT)
    :processing:<consumer>  LIST  mensajes en vuelo de ese consumidor
    :consumer:<consumer>    STR   heartbeat con TTL
    :deliveries             HASH  sha1(payload) -> cantidad de entregas
    :dead                   LIST  payloads descartados (si dead-letter está activo)
===============================================================================
"""

from __future__ import annotations

import hashlib
import os
import socket
from dataclasses import dataclass
from typing import Any, Optional

from redis.exceptions import RedisError

from ...crosscutting.logger import logger
from ...domain.messages import JobMessage, encode_job_message
from ...domain.services import QueueDelivery
from .errors import (
    PrefetchLimitExceeded,
    QueueConfigurationError,
    QueueConsumeError,
    QueuePublishError,
    UnknownDeliveryError,
)

DEFAULT_KEY_PREFIX = "asyncflow:queue"


@dataclass(frozen=True)
class RedisQueueConfig:
    """Configuración del adaptador Redis.

    queue_name:
        Nombre de la cola durable compartida por API y workers.
    prefetch:
        Máximo de deliveries sin resolver por consumidor.
    dead_letter_enabled:
        Si True, nack(requeue=False) guarda el payload en `:dead`.
    heartbeat_ttl_seconds:
        Ventana tras la cual un consumidor sin heartbeat se considera caído.
    """

    queue_name: str
    prefetch: int = 1
    dead_letter_enabled: bool = False
    heartbeat_ttl_seconds: int = 30
    key_prefix: str = DEFAULT_KEY_PREFIX


class QueueKeys:
    """Nombres de claves derivados de la config (una sola fuente)."""

    def __init__(self, config: RedisQueueConfig) -> None:
        self._base = f"{config.key_prefix}:{config.queue_name}"

    @property
    def ready(self) -> str:
        return f"{self._base}:ready"

    @property
    def deliveries(self) -> str:
        return f"{self._base}:deliveries"

    @property
    def dead(self) -> str:
        return f"{self._base}:dead"

    @property
    def processing_pattern(self) -> str:
        return f"{self._base}:processing:*"

    def processing(self, consumer_id: str) -> str:
        return f"{self._base}:processing:{consumer_id}"

    def heartbeat(self, consumer_id: str) -> str:
        return f"{self._base}:consumer:{consumer_id}"

    def consumer_from_processing(self, key: str) -> str:
        return key.rsplit(":", 1)[-1]


def delivery_tag_for(body: bytes) -> str:
    """Tag estable por payload (los ids de job son únicos => payload único)."""
    return hashlib.sha1(body).hexdigest()


def default_consumer_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class RedisJobQueue:
    """Adapter Redis del lado productor (JobSubmitter) + tareas de mantenimiento."""

    def __init__(self, *, redis: Any, config: RedisQueueConfig) -> None:
        """
        Diseño:
          - `redis` se inyecta desde el contenedor para compartir conexiones.
          - Validamos configuración temprano (fail-fast).
        """
        self._redis = redis
        self._config = _validate_config(config)
        self._keys = QueueKeys(self._config)

    @property
    def config(self) -> RedisQueueConfig:
        return self._config

    @property
    def keys(self) -> QueueKeys:
        return self._keys

    async def publish(self, message: JobMessage) -> None:
        """
        Publica el snapshot del job.

        La llamada retorna cuando Redis confirmó el LPUSH; la durabilidad ante
        reinicio del broker depende de su persistencia (AOF).
        """
        body = encode_job_message(message)
        try:
            await self._redis.lpush(self._keys.ready, body)
        except RedisError as exc:
            logger.exception(
                "Error al publicar job en la cola",
                extra={"job_id": message.id, "queue": self._config.queue_name},
            )
            raise QueuePublishError(
                "No se pudo publicar el job en la cola", original_error=exc
            ) from exc

        logger.info(
            "Job publicado",
            extra={"job_id": message.id, "queue": self._config.queue_name},
        )

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as exc:
            logger.warning("Redis no disponible", extra={"error": str(exc)})
            return False

    async def queue_depth(self) -> int:
        """Mensajes listos (no incluye los que están en vuelo)."""
        return int(await self._redis.llen(self._keys.ready))

    async def recover_orphans(self) -> int:
        """
        Devuelve a `ready` los mensajes de consumidores sin heartbeat.

        Es la mitad "crash" del at-least-once: un worker que murió con un
        mensaje en vuelo no lo pierde, otro worker lo recibe.
        """
        recovered = 0
        async for raw_key in self._redis.scan_iter(match=self._keys.processing_pattern):
            key = raw_key.decode() if isinstance(raw_key, bytes) else raw_key
            consumer_id = self._keys.consumer_from_processing(key)
            if await self._redis.exists(self._keys.heartbeat(consumer_id)):
                continue
            moved = await _drain_back(self._redis, key, self._keys.ready)
            if moved:
                logger.warning(
                    "Mensajes huérfanos re-encolados",
                    extra={"consumer": consumer_id, "count": moved},
                )
            recovered += moved
        return recovered


class RedisJobConsumer:
    """Adapter Redis del lado consumidor (un worker, prefetch acotado)."""

    def __init__(
        self,
        *,
        redis: Any,
        config: RedisQueueConfig,
        consumer_id: str | None = None,
    ) -> None:
        self._redis = redis
        self._config = _validate_config(config)
        self._keys = QueueKeys(self._config)
        self._consumer_id = (consumer_id or "").strip() or default_consumer_id()
        self._processing_key = self._keys.processing(self._consumer_id)
        self._in_flight: dict[str, bytes] = {}
        # True si un BLMOVE pudo dejar un mensaje en processing sin registrar.
        self._untracked = False

    @property
    def consumer_id(self) -> str:
        return self._consumer_id

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def start(self) -> int:
        """
        Registra el heartbeat y recupera lo que este mismo consumer_id dejó en
        vuelo en una ejecución anterior.
        """
        recovered = await self.recover()
        await self.heartbeat()
        logger.info(
            "Consumidor registrado",
            extra={
                "consumer": self._consumer_id,
                "queue": self._config.queue_name,
                "prefetch": self._config.prefetch,
                "recovered": recovered,
            },
        )
        return recovered

    async def heartbeat(self) -> None:
        await self._redis.set(
            self._keys.heartbeat(self._consumer_id),
            b"1",
            ex=self._config.heartbeat_ttl_seconds,
        )

    async def recover(self) -> int:
        """
        Devuelve a `ready` todo lo que esta lista in-flight contenga y olvida el
        estado local. Se usa al arrancar y tras perder la conexión durante un
        ack/nack.
        """
        try:
            moved = await _drain_back(self._redis, self._processing_key, self._keys.ready)
        except RedisError as exc:
            raise QueueConsumeError(
                "No se pudo recuperar la lista in-flight", original_error=exc
            ) from exc
        self._in_flight.clear()
        self._untracked = False
        return moved

    async def get(self, timeout: float) -> Optional[QueueDelivery]:
        """
        Pide una delivery bloqueando hasta `timeout` segundos.

        Retorna None si no hubo mensaje (poll vacío).
        """
        if len(self._in_flight) >= self._config.prefetch:
            raise PrefetchLimitExceeded(
                f"Consumidor con {len(self._in_flight)} deliveries sin resolver "
                f"(prefetch={self._config.prefetch})"
            )

        try:
            await self.heartbeat()
            if self._untracked:
                await self._release_untracked()

            # Desde aquí Redis puede haber movido un mensaje que todavía no
            # está registrado en `_in_flight`.
            self._untracked = True
            body = await self._redis.blmove(
                self._keys.ready,
                self._processing_key,
                timeout,
                src="RIGHT",
                dest="LEFT",
            )
            if body is None:
                self._untracked = False
                return None

            tag = delivery_tag_for(body)
            count = await self._redis.hincrby(self._keys.deliveries, tag, 1)
        except RedisError as exc:
            if self._untracked:
                await self._try_release_untracked()
            raise QueueConsumeError(
                "Error al consumir de la cola", original_error=exc
            ) from exc

        self._untracked = False
        self._in_flight[tag] = body
        return QueueDelivery(body=body, delivery_tag=tag, delivery_count=int(count))

    async def ack(self, delivery: QueueDelivery) -> None:
        """Retira el mensaje definitivamente."""
        body = self._require_in_flight(delivery)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.lrem(self._processing_key, 1, body)
                pipe.hdel(self._keys.deliveries, delivery.delivery_tag)
                await pipe.execute()
        except RedisError as exc:
            raise QueueConsumeError("Error en ack", original_error=exc) from exc
        self._in_flight.pop(delivery.delivery_tag, None)

    async def nack(self, delivery: QueueDelivery, *, requeue: bool = True) -> None:
        """
        requeue=True: vuelve al extremo de consumo de `ready` (redelivery inmediata).
        requeue=False: se descarta (o va a `:dead` si dead-letter está activo).
        """
        body = self._require_in_flight(delivery)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.lrem(self._processing_key, 1, body)
                if requeue:
                    pipe.rpush(self._keys.ready, body)
                else:
                    pipe.hdel(self._keys.deliveries, delivery.delivery_tag)
                    if self._config.dead_letter_enabled:
                        pipe.lpush(self._keys.dead, body)
                await pipe.execute()
        except RedisError as exc:
            raise QueueConsumeError("Error en nack", original_error=exc) from exc
        self._in_flight.pop(delivery.delivery_tag, None)

    async def close(self) -> None:
        """Baja el heartbeat (los mensajes en vuelo quedan para recover)."""
        try:
            await self._redis.delete(self._keys.heartbeat(self._consumer_id))
        except RedisError as exc:
            logger.warning(
                "No se pudo borrar el heartbeat del consumidor",
                extra={"consumer": self._consumer_id, "error": str(exc)},
            )

    async def _release_untracked(self) -> int:
        """
        Devuelve a `ready` los mensajes de la lista in-flight que este proceso
        no registró (BLMOVE ejecutado en el server con la respuesta perdida).
        Las deliveries registradas quedan intactas.
        """
        tracked = list(self._in_flight.values())
        released = 0
        for body in await self._redis.lrange(self._processing_key, 0, -1):
            if body in tracked:
                tracked.remove(body)
                continue
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.lrem(self._processing_key, 1, body)
                pipe.rpush(self._keys.ready, body)
                await pipe.execute()
            released += 1
        self._untracked = False
        if released:
            logger.warning(
                "Mensajes sin registrar devueltos a la cola",
                extra={"consumer": self._consumer_id, "count": released},
            )
        return released

    async def _try_release_untracked(self) -> None:
        # Si Redis sigue caído, el próximo get() reintenta antes del BLMOVE.
        try:
            await self._release_untracked()
        except RedisError as exc:
            logger.warning(
                "No se pudieron liberar mensajes sin registrar",
                extra={"consumer": self._consumer_id, "error": str(exc)},
            )

    def _require_in_flight(self, delivery: QueueDelivery) -> bytes:
        body = self._in_flight.get(delivery.delivery_tag)
        if body is None:
            raise UnknownDeliveryError(
                f"Delivery {delivery.delivery_tag} no está en vuelo en {self._consumer_id}"
            )
        return body


# -----------------------------------------------------------------------------
# Helpers privados (módulo)
# -----------------------------------------------------------------------------


async def _drain_back(redis: Any, source: str, ready: str) -> int:
    """Mueve todo `source` al extremo de consumo de `ready` (más viejo primero)."""
    moved = 0
    while await redis.lmove(source, ready, src="RIGHT", dest="RIGHT") is not None:
        moved += 1
    return moved


def _validate_config(config: RedisQueueConfig) -> RedisQueueConfig:
    """Valida y normaliza configuración (fail-fast)."""
    queue_name = (config.queue_name or "").strip()
    prefetch = int(config.prefetch)
    heartbeat_ttl = int(config.heartbeat_ttl_seconds)

    if not queue_name:
        raise QueueConfigurationError("queue_name no puede estar vacío")
    if prefetch < 1:
        raise QueueConfigurationError("prefetch debe ser >= 1")
    if heartbeat_ttl <= 0:
        raise QueueConfigurationError("heartbeat_ttl_seconds debe ser > 0")

    return RedisQueueConfig(
        queue_name=queue_name,
        prefetch=prefetch,
        dead_letter_enabled=bool(config.dead_letter_enabled),
        heartbeat_ttl_seconds=heartbeat_ttl,
        key_prefix=(config.key_prefix or DEFAULT_KEY_PREFIX).strip(),
    )
