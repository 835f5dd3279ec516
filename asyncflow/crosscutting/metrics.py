"""
===============================================================================
ARCHIVO: crosscutting/metrics.py
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Métricas (Prometheus) — Observabilidad del pipeline de jobs

Responsabilidades:
    - Definir métricas Prometheus en un registry propio.
    - Proveer funciones pequeñas y estables para registrar eventos/duraciones.
    - Cuidar cardinalidad (NO job_id, NO video_name como labels).
    - Exponer helpers para generar la respuesta /metrics.

Colaboradores:
    - crosscutting.middleware: registra latencia y conteo HTTP.
    - interfaces.api.http.routers.jobs: cuenta jobs aceptados.
    - worker.consumer: outcomes por delivery, duración, requeues, malformados.

Decisiones de diseño:
    - Registry dedicado (no el global): tests pueden importar el módulo
      varias veces sin "Duplicated timeseries".
    - Normalización de paths: evita explosión de cardinalidad.
===============================================================================
"""

from __future__ import annotations

import re

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

# ------------------------
# HTTP
# ------------------------
_requests_total = Counter(
    "asyncflow_requests_total",
    "Total de requests HTTP",
    ["endpoint", "method", "status"],
    registry=_registry,
)

_request_latency = Histogram(
    "asyncflow_request_latency_seconds",
    "Latencia de requests HTTP (segundos)",
    ["endpoint", "method"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=_registry,
)

# ------------------------
# Submit
# ------------------------
_jobs_submitted_total = Counter(
    "asyncflow_jobs_submitted_total",
    "Jobs aceptados y publicados en la cola",
    registry=_registry,
)

_jobs_submit_failed_total = Counter(
    "asyncflow_jobs_submit_failed_total",
    "Submits que fallaron por infraestructura",
    ["stage"],
    registry=_registry,
)

# ------------------------
# Worker
# ------------------------
_worker_processed_total = Counter(
    "asyncflow_worker_processed_total",
    "Deliveries resueltas por el worker, por outcome",
    ["outcome"],
    registry=_registry,
)

_worker_duration = Histogram(
    "asyncflow_worker_duration_seconds",
    "Duración del manejo de una delivery (segundos)",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
    registry=_registry,
)

_worker_requeued_total = Counter(
    "asyncflow_worker_requeued_total",
    "Mensajes devueltos a la cola, por motivo",
    ["reason"],
    registry=_registry,
)

_worker_malformed_total = Counter(
    "asyncflow_worker_malformed_total",
    "Mensajes descartados por payload inválido",
    registry=_registry,
)

_worker_in_flight = Gauge(
    "asyncflow_worker_in_flight",
    "Deliveries sin resolver en este proceso",
    registry=_registry,
)


# -----------------------------------------------------------------------------
# API pública (helpers de registro)
# -----------------------------------------------------------------------------


def record_request_metrics(
    endpoint: str,
    method: str,
    status_code: int,
    latency_seconds: float,
) -> None:
    """Registra métricas HTTP.

    - endpoint se normaliza para no explotar cardinalidad.
    - status se agrupa por 2xx/4xx/5xx.
    """
    normalized = _normalize_endpoint(endpoint)
    _requests_total.labels(
        endpoint=normalized,
        method=method,
        status=_status_bucket(status_code),
    ).inc()
    _request_latency.labels(endpoint=normalized, method=method).observe(
        latency_seconds
    )


def record_job_submitted() -> None:
    _jobs_submitted_total.inc()


def record_job_submit_failed(stage: str) -> None:
    """stage: "database" | "queue"."""
    _jobs_submit_failed_total.labels(stage=stage).inc()


def record_worker_outcome(outcome: str) -> None:
    """outcome: ACKED | REQUEUED | DROPPED | DEAD_LETTERED."""
    _worker_processed_total.labels(outcome=outcome).inc()


def observe_worker_duration(seconds: float) -> None:
    _worker_duration.observe(seconds)


def record_worker_requeued(reason: str) -> None:
    """reason: "processing" | "persistence"."""
    _worker_requeued_total.labels(reason=reason).inc()


def record_worker_malformed() -> None:
    _worker_malformed_total.inc()


def set_worker_in_flight(value: int) -> None:
    _worker_in_flight.set(value)


# -----------------------------------------------------------------------------
# Helpers internos
# -----------------------------------------------------------------------------


def _normalize_endpoint(path: str) -> str:
    """Normaliza paths para evitar cardinalidad alta.

    Reemplaza ids de job (hex de 32), UUIDs e IDs numéricos por `{id}`.
    """
    path = re.sub(r"/jobs/[^/]+", "/jobs/{id}", path)
    path = re.sub(
        r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
        "{id}",
        path,
        flags=re.IGNORECASE,
    )
    path = re.sub(r"/\d+", "/{id}", path)
    return path


def _status_bucket(code: int) -> str:
    """Agrupa status code para baja cardinalidad."""
    if 200 <= code < 300:
        return "2xx"
    if 400 <= code < 500:
        return "4xx"
    if 500 <= code < 600:
        return "5xx"
    return "other"


# -----------------------------------------------------------------------------
# Exposición del endpoint /metrics
# -----------------------------------------------------------------------------


def get_metrics_response() -> tuple[bytes, str]:
    """Genera el body y content-type para /metrics."""
    return generate_latest(_registry), CONTENT_TYPE_LATEST
