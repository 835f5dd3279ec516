"""
===============================================================================
TARJETA CRC — worker/worker.py (Entrypoint del proceso Worker)
===============================================================================

Responsabilidades:
  - Levantar un JobWorker consumiendo la cola de conversiones.
  - Abrir recursos del proceso (Redis + pool de BD) vía open_resources.
  - Recuperar mensajes huérfanos de consumidores caídos antes de consumir.
  - Exponer HTTP liviano de health/ready/metrics para orquestadores.
  - Apagar de forma ordenada ante SIGINT/SIGTERM (termina la delivery en curso).

Patrones aplicados:
  - Process Bootstrap: inicializa recursos del proceso antes de trabajar.
  - Fail-fast: si Redis/BD no están disponibles al inicio, no arrancar “a medias”.
  - Best-effort health server: si el puerto está ocupado, log y continuar.

Colaboradores:
  - crosscutting.config.get_settings
  - container.open_resources / build_consumer / build_worker
  - worker_server.start_worker_http_server
===============================================================================
"""

from __future__ import annotations

import asyncio
import signal

from redis.exceptions import RedisError

from ..container import build_consumer, build_worker, open_resources
from ..crosscutting.config import Settings, get_settings
from ..crosscutting.logger import logger
from ..infrastructure.db import DatabaseConnectionError
from .worker_health import WorkerHealth
from .worker_server import start_worker_http_server, stop_worker_http_server


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: queda KeyboardInterrupt como fallback.
            pass


async def run_worker(
    settings: Settings,
    stop_event: asyncio.Event | None = None,
    health: WorkerHealth | None = None,
) -> None:
    stop_event = stop_event or asyncio.Event()

    async with open_resources(settings) as resources:
        orphans = await resources.queue.recover_orphans()
        consumer = build_consumer(resources)
        await consumer.start()
        worker = build_worker(resources, consumer)

        logger.info(
            "Worker arrancando",
            extra={
                "queue": settings.queue_name,
                "consumer": consumer.consumer_id,
                "prefetch": settings.queue_prefetch,
                "orphans_recovered": orphans,
                "http_port": settings.worker_http_port,
            },
        )
        if health is not None:
            health.attach(asyncio.get_running_loop(), resources, worker)
        try:
            await worker.run(stop_event)
        finally:
            if health is not None:
                health.detach()


async def _main_async() -> None:
    settings = get_settings()
    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    health = WorkerHealth()
    server = start_worker_http_server(settings.worker_http_port, health)
    try:
        await run_worker(settings, stop_event, health)
    finally:
        try:
            stop_worker_http_server(server)
        except OSError as exc:
            logger.warning("No se pudo cerrar el HTTP server", extra={"error": str(exc)})
        logger.info("Worker apagado")


def main() -> None:
    try:
        asyncio.run(_main_async())
    except KeyboardInterrupt:
        logger.info("Worker detenido por señal (KeyboardInterrupt)")
    except DatabaseConnectionError as exc:
        logger.error("DB no disponible para worker", extra={"error": str(exc)})
        raise SystemExit("DB no disponible.")
    except RedisError as exc:
        logger.error("Redis no disponible para worker", extra={"error": str(exc)})
        raise SystemExit("Redis no disponible.")


if __name__ == "__main__":
    main()
