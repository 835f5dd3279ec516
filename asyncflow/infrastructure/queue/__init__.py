"""
===============================================================================
SUBSISTEMA: Infraestructura / Queue
===============================================================================

CRC CARD (Package)
-------------------------------------------------------------------------------
Nombre:
    infrastructure.queue

Responsabilidades:
    - Exponer los adaptadores de cola usados por DI (Redis e in-memory).
    - Exponer el contrato de configuración (RedisQueueConfig).
    - Mantener un API de import estable para el resto del paquete.
===============================================================================
"""

from .errors import (
    PrefetchLimitExceeded,
    QueueConfigurationError,
    QueueConsumeError,
    QueueError,
    QueuePublishError,
    UnknownDeliveryError,
)
from .in_memory_queue import InMemoryJobConsumer, InMemoryJobQueue
from .redis_queue import RedisJobConsumer, RedisJobQueue, RedisQueueConfig

__all__ = [
    "InMemoryJobConsumer",
    "InMemoryJobQueue",
    "PrefetchLimitExceeded",
    "QueueConfigurationError",
    "QueueConsumeError",
    "QueueError",
    "QueuePublishError",
    "RedisJobConsumer",
    "RedisJobQueue",
    "RedisQueueConfig",
    "UnknownDeliveryError",
]
