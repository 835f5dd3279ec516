"""
===============================================================================
TARJETA CRC — worker/worker_health.py (Estado operativo del Worker)
===============================================================================

Responsabilidades:
  - Mantener una vista del worker vivo (consumer_id, deliveries en vuelo,
    antigüedad del último poll) para /healthz.
  - Readiness (/readyz): DB y Redis responden y se informa la profundidad de
    la cola, usando los recursos del propio proceso.
  - CLI de healthcheck para contenedores (exit code 0/1) con recursos propios.

Patrones aplicados:
  - Fail-safe diagnostics: nunca lanzar excepciones al caller; devolver estado.
  - Puente thread -> loop: el HTTP server corre en su thread; los checks se
    ejecutan en el event loop del worker con timeout corto.

Colaboradores:
  - container.Resources / open_resources
  - worker.consumer.JobWorker
  - crosscutting.config.get_settings
===============================================================================
"""

from __future__ import annotations

import asyncio
import json
import time
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Optional

from ..container import Resources, open_resources
from ..crosscutting.config import Settings, get_settings
from ..crosscutting.logger import logger
from .consumer import JobWorker

READINESS_TIMEOUT_SECONDS = 2.0


async def check_resources(resources: Resources) -> dict[str, Any]:
    """Ping a DB y Redis + profundidad de la cola. No lanza."""
    db_ok = await _safe_call(resources.store.ping, "db")
    redis_ok = await _safe_call(resources.queue.ping, "redis")
    depth: Optional[int] = None
    if redis_ok:
        try:
            depth = int(await resources.queue.queue_depth())
        except Exception as exc:
            logger.warning("Readiness worker: no se pudo leer la cola", extra={"error": str(exc)})

    return {
        "ok": bool(db_ok and redis_ok),
        "db": "connected" if db_ok else "disconnected",
        "redis": "connected" if redis_ok else "disconnected",
        "queue": resources.settings.queue_name,
        "queue_depth": depth,
    }


class WorkerHealth:
    """
    Estado compartido entre el loop del worker y el HTTP server (thread).

    Antes de attach() el worker está "starting": vivo pero no listo.
    """

    def __init__(self, *, clock=time.monotonic) -> None:
        self._clock = clock
        self._started_at = clock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._resources: Optional[Resources] = None
        self._worker: Optional[JobWorker] = None

    def attach(
        self,
        loop: asyncio.AbstractEventLoop,
        resources: Resources,
        worker: JobWorker,
    ) -> None:
        self._loop = loop
        self._resources = resources
        self._worker = worker

    def detach(self) -> None:
        self._loop = None
        self._resources = None
        self._worker = None

    def health_payload(self) -> dict[str, Any]:
        """Liveness: proceso vivo (no valida dependencias)."""
        now = self._clock()
        payload: dict[str, Any] = {
            "ok": True,
            "uptime_seconds": int(now - self._started_at),
            "state": "running" if self._worker is not None else "starting",
        }
        worker = self._worker
        if worker is not None:
            last_poll = worker.last_poll_at
            payload["consumer"] = worker.consumer_id
            payload["in_flight"] = worker.in_flight
            payload["last_poll_age_seconds"] = (
                None if last_poll is None else round(now - last_poll, 3)
            )
        return payload

    def readiness_payload(self) -> dict[str, Any]:
        """Readiness: ok si el worker arrancó y DB/Redis responden."""
        loop, resources, worker = self._loop, self._resources, self._worker
        if loop is None or resources is None or worker is None:
            return {"ok": False, "state": "starting"}

        future = asyncio.run_coroutine_threadsafe(check_resources(resources), loop)
        try:
            payload = future.result(timeout=READINESS_TIMEOUT_SECONDS)
        except FutureTimeoutError:
            future.cancel()
            logger.warning("Readiness worker: timeout de checks")
            return {"ok": False, "state": "running", "error": "timeout"}
        payload["state"] = "running"
        payload["consumer"] = worker.consumer_id
        payload["in_flight"] = worker.in_flight
        return payload


async def _safe_call(check, name: str) -> bool:
    try:
        return bool(await check())
    except Exception as exc:
        logger.warning(
            "Readiness worker: dependencia no disponible",
            extra={"dependency": name, "error": str(exc)},
        )
        return False


async def standalone_readiness(settings: Settings) -> dict[str, Any]:
    """Readiness con recursos propios (para el CLI, fuera del proceso worker)."""
    try:
        async with open_resources(settings) as resources:
            return await check_resources(resources)
    except Exception as exc:
        logger.warning("Healthcheck: no se pudieron abrir recursos", extra={"error": str(exc)})
        return {"ok": False, "error": str(exc), "queue": settings.queue_name}


def main() -> None:
    """
    CLI healthcheck:
      - imprime readiness payload
      - exit 0 si ok, 1 si no
    """
    payload = asyncio.run(standalone_readiness(get_settings()))
    print(json.dumps(payload))
    raise SystemExit(0 if payload.get("ok") else 1)


if __name__ == "__main__":
    main()
