"""
===============================================================================
TARJETA CRC — worker/consumer.py (Loop de consumo y protocolo de delivery)
===============================================================================

Responsabilidades:
  - Consumir deliveries de la cola de a una (prefetch=1, loop serial).
  - Aplicar la máquina de estados por delivery:
        RECEIVED -> PROCESSING -> ACKED | REQUEUED
        (+ DROPPED para payloads inválidos, DEAD_LETTERED si se agotó el límite)
  - Ack SÓLO después de que la escritura COMPLETED fue confirmada.
  - Ante falla del transcoder o del StatusStore: nack(requeue=True).
  - Mantener vivo el heartbeat del consumidor mientras se procesa.
  - Nunca morir por una excepción de un mensaje; reintentar ante la caída
    del broker con un backoff fijo.

Patrones aplicados:
  - Command handler: handle_delivery() resuelve una delivery completa.
  - Graceful shutdown: asyncio.Event chequeado entre deliveries.
  - Observabilidad: contexto (job_id / consumer) + métricas por outcome.

Colaboradores:
  - domain.services.JobConsumer (Redis o in-memory)
  - application.usecases.ProcessJobUseCase
  - domain.messages.decode_job_message
  - infrastructure.services.retry.requeue_backoff_seconds
  - crosscutting.metrics / context
===============================================================================
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..application.usecases import ProcessJobUseCase
from ..context import clear_context, set_delivery_context
from ..crosscutting.exceptions import DatabaseError, JobNotFoundError, ProcessingError
from ..crosscutting.logger import logger
from ..crosscutting.metrics import (
    observe_worker_duration,
    record_worker_malformed,
    record_worker_outcome,
    record_worker_requeued,
    set_worker_in_flight,
)
from ..domain.messages import JobMessage, MalformedMessageError, decode_job_message
from ..domain.services import JobConsumer, QueueDelivery
from ..infrastructure.queue.errors import PrefetchLimitExceeded, QueueError
from ..infrastructure.services.retry import requeue_backoff_seconds


class DeliveryOutcome(str, Enum):
    ACKED = "ACKED"
    REQUEUED = "REQUEUED"
    DROPPED = "DROPPED"
    DEAD_LETTERED = "DEAD_LETTERED"


@dataclass(frozen=True)
class WorkerConfig:
    """
    Knobs del loop.

    - max_delivery_attempts == 0: requeue sin límite (política base).
    - requeue_backoff_base_seconds == 0: requeue inmediato.
    """

    poll_timeout_seconds: float = 5.0
    poll_error_backoff_seconds: float = 2.0
    heartbeat_interval_seconds: float = 10.0
    max_delivery_attempts: int = 0
    requeue_backoff_base_seconds: float = 0.0
    requeue_backoff_max_seconds: float = 60.0
    dead_letter_enabled: bool = False


class JobWorker:
    """Un worker: una delivery a la vez."""

    def __init__(
        self,
        *,
        consumer: JobConsumer,
        process_job: ProcessJobUseCase,
        config: WorkerConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._consumer = consumer
        self._process_job = process_job
        self._config = config or WorkerConfig()
        self._sleep = sleep
        self._last_poll_at: float | None = None

    @property
    def consumer_id(self) -> str:
        return self._consumer.consumer_id

    @property
    def in_flight(self) -> int:
        return self._consumer.in_flight

    @property
    def last_poll_at(self) -> float | None:
        """time.monotonic() del último poll; None si todavía no consumió."""
        return self._last_poll_at

    # =========================================================
    # Loop
    # =========================================================
    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Consume hasta que `stop_event` se active. La delivery en curso se
        termina antes de salir.
        """
        heartbeat_task = asyncio.create_task(self._heartbeat_loop(stop_event))
        logger.info(
            "Worker loop iniciado",
            extra={
                "consumer": self.consumer_id,
                "max_delivery_attempts": self._config.max_delivery_attempts,
            },
        )
        try:
            while not stop_event.is_set():
                await self.run_once(stop_event)
        finally:
            heartbeat_task.cancel()
            try:
                await heartbeat_task
            except asyncio.CancelledError:
                pass
            await self._consumer.close()
            logger.info("Worker loop detenido", extra={"consumer": self.consumer_id})

    async def run_once(
        self, stop_event: asyncio.Event | None = None
    ) -> Optional[DeliveryOutcome]:
        """Un poll: None si no hubo delivery (timeout o error del broker)."""
        self._last_poll_at = time.monotonic()
        try:
            delivery = await self._consumer.get(self._config.poll_timeout_seconds)
        except PrefetchLimitExceeded as exc:
            # Quedó una delivery sin resolver (ack/nack falló): devolverla a la cola.
            logger.error(
                "Consumidor con deliveries sin resolver; recuperando",
                extra={"consumer": self.consumer_id, "error": str(exc)},
            )
            await self._recover()
            await self._wait(stop_event, self._config.poll_error_backoff_seconds)
            return None
        except QueueError as exc:
            logger.warning(
                "Broker no disponible; reintentando",
                extra={
                    "consumer": self.consumer_id,
                    "error": str(exc),
                    "backoff_seconds": self._config.poll_error_backoff_seconds,
                },
            )
            await self._wait(stop_event, self._config.poll_error_backoff_seconds)
            return None

        if delivery is None:
            logger.debug("Poll vacío", extra={"consumer": self.consumer_id})
            return None

        return await self.handle_delivery(delivery)

    # =========================================================
    # Protocolo por delivery
    # =========================================================
    async def handle_delivery(self, delivery: QueueDelivery) -> DeliveryOutcome:
        started = time.perf_counter()
        set_worker_in_flight(self._consumer.in_flight)
        try:
            try:
                message = decode_job_message(delivery.body)
            except MalformedMessageError as exc:
                logger.error(
                    "Mensaje inválido descartado",
                    extra={
                        "consumer": self.consumer_id,
                        "error": str(exc),
                        "body": delivery.body,
                    },
                )
                record_worker_malformed()
                outcome = await self._discard(delivery)
            else:
                set_delivery_context(job_id=message.id, consumer_id=self.consumer_id)
                outcome = await self._process(delivery, message)

            record_worker_outcome(outcome.value)
            logger.info(
                "Delivery resuelta",
                extra={
                    "consumer": self.consumer_id,
                    "outcome": outcome.value,
                    "delivery_count": delivery.delivery_count,
                },
            )
            return outcome
        finally:
            observe_worker_duration(time.perf_counter() - started)
            set_worker_in_flight(self._consumer.in_flight)
            clear_context()

    async def _process(self, delivery: QueueDelivery, message: JobMessage) -> DeliveryOutcome:
        logger.info(
            "Delivery recibida",
            extra={
                "consumer": self.consumer_id,
                "delivery_count": delivery.delivery_count,
                "redelivered": delivery.redelivered,
            },
        )
        try:
            await self._process_job.execute(message.id)
        except ProcessingError as exc:
            logger.warning("Falla del transcoder", extra={"error": str(exc)})
            return await self._handle_failure(delivery, message, exc, reason="processing")
        except DatabaseError as exc:
            logger.warning(
                "Falla del status store",
                extra={"error": str(exc), "error_code": exc.error_code},
            )
            return await self._handle_failure(delivery, message, exc, reason="persistence")
        except Exception as exc:
            logger.exception("Error inesperado procesando delivery")
            return await self._handle_failure(delivery, message, exc, reason="processing")

        # COMPLETED confirmado (o ya estaba terminal): recién ahora ack.
        return await self._ack(delivery)

    async def _handle_failure(
        self,
        delivery: QueueDelivery,
        message: JobMessage,
        exc: Exception,
        *,
        reason: str,
    ) -> DeliveryOutcome:
        limit = self._config.max_delivery_attempts
        if limit > 0 and delivery.delivery_count >= limit:
            return await self._give_up(delivery, message, exc)

        delay = requeue_backoff_seconds(
            delivery.delivery_count,
            base_delay=self._config.requeue_backoff_base_seconds,
            max_delay=self._config.requeue_backoff_max_seconds,
        )
        if delay > 0:
            logger.info(
                "Demorando requeue",
                extra={"delay_seconds": delay, "delivery_count": delivery.delivery_count},
            )
            await self._sleep(delay)

        record_worker_requeued(reason)
        return await self._requeue(delivery)

    async def _give_up(
        self, delivery: QueueDelivery, message: JobMessage, exc: Exception
    ) -> DeliveryOutcome:
        """Límite de entregas agotado: FAILED + descarte (o dead-letter)."""
        try:
            await self._process_job.mark_failed(message.id, str(exc))
        except JobNotFoundError:
            logger.error("Límite agotado para un job sin fila; descartando")
        except DatabaseError as db_exc:
            # Sin FAILED persistido no se descarta: el mensaje vuelve a la cola.
            logger.error(
                "No se pudo marcar FAILED; re-encolando",
                extra={"error": str(db_exc)},
            )
            record_worker_requeued("persistence")
            return await self._requeue(delivery)

        logger.warning(
            "Límite de entregas agotado",
            extra={
                "delivery_count": delivery.delivery_count,
                "max_delivery_attempts": self._config.max_delivery_attempts,
            },
        )
        return await self._discard(delivery)

    # =========================================================
    # Resolución (ack / nack)
    # =========================================================
    async def _ack(self, delivery: QueueDelivery) -> DeliveryOutcome:
        try:
            await self._consumer.ack(delivery)
        except QueueError as exc:
            logger.error("Ack falló; el mensaje será re-entregado", extra={"error": str(exc)})
            await self._recover()
            return DeliveryOutcome.REQUEUED
        return DeliveryOutcome.ACKED

    async def _requeue(self, delivery: QueueDelivery) -> DeliveryOutcome:
        try:
            await self._consumer.nack(delivery, requeue=True)
        except QueueError as exc:
            logger.error("Nack falló", extra={"error": str(exc)})
            await self._recover()
        return DeliveryOutcome.REQUEUED

    async def _discard(self, delivery: QueueDelivery) -> DeliveryOutcome:
        try:
            await self._consumer.nack(delivery, requeue=False)
        except QueueError as exc:
            logger.error("Nack (descarte) falló", extra={"error": str(exc)})
            await self._recover()
            return DeliveryOutcome.REQUEUED
        if self._config.dead_letter_enabled:
            return DeliveryOutcome.DEAD_LETTERED
        return DeliveryOutcome.DROPPED

    async def _recover(self) -> None:
        try:
            moved = await self._consumer.recover()
        except QueueError as exc:
            logger.error(
                "Recover del consumidor falló",
                extra={"consumer": self.consumer_id, "error": str(exc)},
            )
            return
        logger.info("Deliveries en vuelo devueltas a la cola", extra={"count": moved})

    # =========================================================
    # Helpers
    # =========================================================
    async def _heartbeat_loop(self, stop_event: asyncio.Event) -> None:
        interval = self._config.heartbeat_interval_seconds
        while not stop_event.is_set():
            await self._wait(stop_event, interval)
            if stop_event.is_set():
                return
            try:
                await self._consumer.heartbeat()
            except Exception as exc:
                logger.warning(
                    "Heartbeat falló",
                    extra={"consumer": self.consumer_id, "error": str(exc)},
                )

    @staticmethod
    async def _wait(stop_event: asyncio.Event | None, seconds: float) -> None:
        """Duerme `seconds` o hasta que se pida stop."""
        if stop_event is None:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
