"""
===============================================================================
SUBSISTEMA: Infraestructura / Queue
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Errores Tipados de Cola

Responsabilidades:
    - Definir excepciones explícitas para los adaptadores de cola.
    - Habilitar un manejo consistente (logs / métricas / mapping HTTP) sin
      depender de excepciones genéricas de redis.

Colaboradores:
    - redis_queue.RedisJobQueue / RedisJobConsumer
    - in_memory_queue.InMemoryJobQueue
    - api/exception_handlers (QueuePublishError -> 503)
===============================================================================
"""

from __future__ import annotations


class QueueError(Exception):
    """Error base del subsistema de colas."""

    code: str = "QUEUE_ERROR"

    def __init__(
        self, message: str, *, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class QueueConfigurationError(QueueError):
    """Se lanza cuando la cola está mal configurada (nombre vacío, prefetch < 1)."""

    code = "QUEUE_CONFIGURATION_ERROR"


class QueuePublishError(QueueError):
    """Se lanza cuando el broker no confirmó la publicación."""

    code = "QUEUE_PUBLISH_ERROR"


class QueueConsumeError(QueueError):
    """Falla de conectividad al pedir/resolver una delivery."""

    code = "QUEUE_CONSUME_ERROR"


class PrefetchLimitExceeded(QueueError):
    """El consumidor ya tiene `prefetch` deliveries sin ack/nack."""

    code = "QUEUE_PREFETCH_EXCEEDED"


class UnknownDeliveryError(QueueError):
    """ack/nack de una delivery que este consumidor no tiene en vuelo."""

    code = "QUEUE_UNKNOWN_DELIVERY"
