"""
===============================================================================
TARJETA CRC — domain/services.py
===============================================================================

Módulo:
    Puertos de Servicios Externos (Protocols)

Responsabilidades:
    - Definir el contrato de la cola durable (publicar / consumir / ack / nack).
    - Definir el contrato del Transcoder (caja negra “process(job) -> outcome”).
    - Mantener el dominio independiente de Redis y del motor de conversión.

Colaboradores:
    - infrastructure/queue/*: implementaciones de cola.
    - infrastructure/services/*: implementaciones de Transcoder.
    - application/usecases + worker: consumen estos puertos.

Reglas:
    - SOLO interfaces y DTOs: nada de I/O.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from .entities import Job
from .messages import JobMessage


@dataclass(frozen=True)
class QueueDelivery:
    """
    Mensaje entregado a un consumidor y todavía no resuelto.

    - body: payload crudo tal cual se publicó (se re-publica idéntico en requeue)
    - delivery_tag: identificador opaco para ack/nack
    - delivery_count: 1 en la primera entrega, +1 por cada redelivery
    """

    body: bytes
    delivery_tag: str
    delivery_count: int = 1

    @property
    def redelivered(self) -> bool:
        return self.delivery_count > 1


class JobQueue(Protocol):
    """Lado productor: publica mensajes durables."""

    async def publish(self, message: JobMessage) -> None:
        """Retorna cuando el broker confirmó la recepción."""
        ...

    async def ping(self) -> bool: ...

    async def queue_depth(self) -> int:
        """Mensajes listos para consumir (sin contar los que están en vuelo)."""
        ...


class JobConsumer(Protocol):
    """
    Lado consumidor (un worker).

    Contrato:
      - get() devuelve None si no hubo mensaje dentro del timeout.
      - Nunca hay más de `prefetch` deliveries sin resolver.
      - nack(requeue=True) devuelve el mensaje a la cola sin demora.
    """

    @property
    def consumer_id(self) -> str: ...

    @property
    def in_flight(self) -> int: ...

    async def get(self, timeout: float) -> Optional[QueueDelivery]: ...

    async def ack(self, delivery: QueueDelivery) -> None: ...

    async def nack(self, delivery: QueueDelivery, *, requeue: bool = True) -> None: ...

    async def heartbeat(self) -> None:
        """Señal de vida: mientras se refresque, lo que está en vuelo no se recupera."""
        ...

    async def recover(self) -> int:
        """Devuelve a la cola todo lo que este consumidor tiene en vuelo."""
        ...

    async def close(self) -> None: ...


@dataclass(frozen=True)
class TranscodeOutcome:
    """Resultado del transcoder: ok o falla con detalle."""

    ok: bool
    detail: Optional[str] = None

    @classmethod
    def success(cls, detail: str | None = None) -> "TranscodeOutcome":
        return cls(ok=True, detail=detail)

    @classmethod
    def failure(cls, detail: str) -> "TranscodeOutcome":
        return cls(ok=False, detail=detail)


class Transcoder(Protocol):
    """Capacidad de conversión (reemplazable sin tocar cola ni estados)."""

    async def process(self, job: Job) -> TranscodeOutcome: ...
