"""
============================================================
TARJETA CRC — infrastructure/queue/in_memory_queue.py
============================================================
Class: InMemoryJobQueue / InMemoryJobConsumer

Responsibilities:
  - Cola en memoria con la misma semántica que el adaptador Redis
    (tests / local dev sin broker):
      - entrega a un único consumidor por intento
      - prefetch por consumidor
      - ack / nack con requeue inmediato al frente de la cola
      - "crash" de un consumidor: sus mensajes en vuelo vuelven a la cola
  - Exponer snapshots (pending, dead_letters, published) para aserciones.

Collaborators:
  - domain.services.QueueDelivery
  - domain.messages.encode_job_message
  - errors.PrefetchLimitExceeded / UnknownDeliveryError

Constraints / Notes:
  - asyncio-only: un Condition despierta consumidores bloqueados en get().
  - Sin durabilidad: el proceso es el broker.
============================================================
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Dict, List, Optional
from uuid import uuid4

from ...domain.messages import JobMessage, encode_job_message
from ...domain.services import QueueDelivery
from .errors import PrefetchLimitExceeded, QueueConfigurationError, UnknownDeliveryError
from .redis_queue import delivery_tag_for


class InMemoryJobQueue:
    """Broker en memoria (un solo proceso, múltiples consumidores)."""

    def __init__(self, *, queue_name: str = "in-memory", dead_letter_enabled: bool = False) -> None:
        self.queue_name = queue_name
        self._dead_letter_enabled = dead_letter_enabled
        self._ready: Deque[bytes] = deque()
        self._dead: List[bytes] = []
        self._published: List[bytes] = []
        self._delivery_counts: Dict[str, int] = {}
        self._condition = asyncio.Condition()

    # =========================================================
    # Lado productor
    # =========================================================
    async def publish(self, message: JobMessage) -> None:
        body = encode_job_message(message)
        async with self._condition:
            self._ready.appendleft(body)
            self._published.append(body)
            self._condition.notify()

    async def ping(self) -> bool:
        return True

    async def queue_depth(self) -> int:
        return len(self._ready)

    # =========================================================
    # Lado consumidor
    # =========================================================
    def consumer(
        self, *, consumer_id: str | None = None, prefetch: int = 1
    ) -> "InMemoryJobConsumer":
        if prefetch < 1:
            raise QueueConfigurationError("prefetch debe ser >= 1")
        return InMemoryJobConsumer(
            self, consumer_id=consumer_id or uuid4().hex[:8], prefetch=prefetch
        )

    async def _take(self, timeout: float) -> Optional[bytes]:
        async with self._condition:
            if not self._ready:
                try:
                    await asyncio.wait_for(
                        self._condition.wait_for(lambda: bool(self._ready)),
                        timeout=timeout,
                    )
                except asyncio.TimeoutError:
                    return None
            return self._ready.pop()

    async def _return(self, bodies: List[bytes]) -> None:
        async with self._condition:
            for body in bodies:
                self._ready.append(body)
            self._condition.notify(len(bodies))

    def _count_delivery(self, tag: str) -> int:
        self._delivery_counts[tag] = self._delivery_counts.get(tag, 0) + 1
        return self._delivery_counts[tag]

    def _forget(self, tag: str) -> None:
        self._delivery_counts.pop(tag, None)

    def _dead_letter(self, body: bytes) -> None:
        if self._dead_letter_enabled:
            self._dead.append(body)

    # =========================================================
    # Snapshots (tests)
    # =========================================================
    @property
    def pending(self) -> List[bytes]:
        """Mensajes listos, en orden de consumo."""
        return list(reversed(self._ready))

    @property
    def published(self) -> List[bytes]:
        return list(self._published)

    @property
    def dead_letters(self) -> List[bytes]:
        return list(self._dead)


class InMemoryJobConsumer:
    """Consumidor de InMemoryJobQueue (respeta prefetch)."""

    def __init__(self, queue: InMemoryJobQueue, *, consumer_id: str, prefetch: int) -> None:
        self._queue = queue
        self._consumer_id = consumer_id
        self._prefetch = prefetch
        self._in_flight: Dict[str, bytes] = {}
        self.max_in_flight_observed = 0
        self.heartbeats = 0
        self.closed = False

    @property
    def consumer_id(self) -> str:
        return self._consumer_id

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def get(self, timeout: float) -> Optional[QueueDelivery]:
        if len(self._in_flight) >= self._prefetch:
            raise PrefetchLimitExceeded(
                f"Consumidor con {len(self._in_flight)} deliveries sin resolver "
                f"(prefetch={self._prefetch})"
            )
        body = await self._queue._take(timeout)
        if body is None:
            return None

        tag = delivery_tag_for(body)
        self._in_flight[tag] = body
        self.max_in_flight_observed = max(self.max_in_flight_observed, len(self._in_flight))
        return QueueDelivery(
            body=body, delivery_tag=tag, delivery_count=self._queue._count_delivery(tag)
        )

    async def ack(self, delivery: QueueDelivery) -> None:
        self._pop(delivery)
        self._queue._forget(delivery.delivery_tag)

    async def nack(self, delivery: QueueDelivery, *, requeue: bool = True) -> None:
        body = self._pop(delivery)
        if requeue:
            await self._queue._return([body])
            return
        self._queue._forget(delivery.delivery_tag)
        self._queue._dead_letter(body)

    async def start(self) -> int:
        return 0

    async def heartbeat(self) -> None:
        self.heartbeats += 1

    async def close(self) -> None:
        self.closed = True

    async def recover(self) -> int:
        """Simula la caída del consumidor: lo que tenía en vuelo vuelve a la cola."""
        bodies = list(self._in_flight.values())
        self._in_flight.clear()
        if bodies:
            await self._queue._return(bodies)
        return len(bodies)

    def _pop(self, delivery: QueueDelivery) -> bytes:
        body = self._in_flight.pop(delivery.delivery_tag, None)
        if body is None:
            raise UnknownDeliveryError(
                f"Delivery {delivery.delivery_tag} no está en vuelo en {self._consumer_id}"
            )
        return body
