"""
===============================================================================
TARJETA CRC — worker/worker_server.py (HTTP liviano para Worker)
===============================================================================

Responsabilidades:
  - Exponer endpoints operativos del worker:
      * GET /healthz  (liveness)
      * GET /readyz   (readiness: Redis + DB + profundidad de cola)
      * GET /metrics  (Prometheus)

Patrones aplicados:
  - Minimal HTTP Server: http.server (bajo overhead, sin FastAPI extra).
  - Best-effort: si el server no puede iniciar, no rompe el worker.

Colaboradores:
  - worker_health.WorkerHealth (estado vivo del worker)
  - crosscutting.metrics.get_metrics_response
===============================================================================
"""

from __future__ import annotations

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlparse

from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from .worker_health import WorkerHealth


class _WorkerHandler(BaseHTTPRequestHandler):
    """Handler HTTP minimalista para endpoints operativos del worker."""

    def do_GET(self) -> None:
        path = urlparse(self.path).path

        if path == "/healthz":
            self._write_json(200, self.server.health.health_payload())
            return

        if path == "/readyz":
            payload = self.server.health.readiness_payload()
            status = 200 if payload.get("ok") else 503
            self._write_json(status, payload)
            return

        if path == "/metrics":
            body, content_type = get_metrics_response()
            self.send_response(200)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
            return

        self.send_response(404)
        self.end_headers()

    def log_message(self, format: str, *args) -> None:
        """
        Reemplaza el logging default del server por logger estructurado.
        """
        logger.debug(
            "Worker HTTP request",
            extra={
                "client": self.client_address[0] if self.client_address else None,
                "path": getattr(self, "path", None),
            },
        )

    def _write_json(self, status: int, payload: dict) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class _WorkerHTTPServer(ThreadingHTTPServer):
    """ThreadingHTTPServer que lleva el WorkerHealth para los handlers."""

    def __init__(self, address, handler_class, health: WorkerHealth) -> None:
        super().__init__(address, handler_class)
        self.health = health


def start_worker_http_server(
    port: int, health: WorkerHealth
) -> ThreadingHTTPServer | None:
    """
    Inicia el HTTP server en un thread daemon.

    Retorna:
      - server si inició bien
      - None si falló o port == 0 (deshabilitado)
    """
    if port <= 0:
        return None
    try:
        server = _WorkerHTTPServer(("0.0.0.0", port), _WorkerHandler, health)
    except OSError as exc:
        logger.warning("Worker HTTP server no pudo iniciar", extra={"error": str(exc)})
        return None

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    logger.info("Worker HTTP server iniciado", extra={"port": port})
    return server


def stop_worker_http_server(server: ThreadingHTTPServer | None) -> None:
    if server is None:
        return
    server.shutdown()
    server.server_close()


__all__ = ["start_worker_http_server", "stop_worker_http_server"]
