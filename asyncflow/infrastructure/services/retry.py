"""asyncflow.infrastructure.services.retry

Name: Retry Helper with Exponential Backoff + Jitter

Qué es
------
Utilidad cross-cutting de **resiliencia** para llamadas a storage y broker.
Implementa:
  - Clasificación de errores: **transient** (reintentar) vs **permanent** (fail-fast)
  - Decorator de `tenacity` para aplicar **exponential backoff + jitter**
    (funciona igual sobre funciones sync y coroutines)
  - Logging estructurado de intentos de retry
  - `requeue_backoff_seconds()`: demora opcional antes de re-encolar un job

CRC (Component Card)
--------------------
Component: retry helper
Responsibilities:
  - Decidir qué errores son reintentables
  - Proveer un decorator estándar (tenacity) con backoff+jitter
  - Loguear intentos y contexto útil para debugging/observabilidad
Collaborators:
  - tenacity (motor de retry)
  - crosscutting.config.get_settings (config de attempts/delays)
  - crosscutting.logger (logging estructurado)
Constraints:
  - Reintentar SOLO errores transitorios (conexión, timeouts, serialization)
  - No reintentar violaciones de constraint ni errores de negocio
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

import psycopg
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger

T = TypeVar("T")


def is_transient_error(exception: BaseException) -> bool:
    """R: Decide si un error es transitorio (reintentar) o permanente (fail-fast).

    Reglas (en orden):
      1) Errores de integridad / programación de psycopg: False.
      2) OperationalError de psycopg (conexión caída, admin shutdown): True.
      3) Conexión/timeout de Redis o built-ins de red: True.
      4) Default: fail-fast (False) para no reintentar errores desconocidos.
    """
    if isinstance(exception, (psycopg.IntegrityError, psycopg.ProgrammingError)):
        return False

    if isinstance(exception, psycopg.OperationalError):
        return True

    if isinstance(exception, (RedisConnectionError, RedisTimeoutError)):
        return True

    if isinstance(exception, (TimeoutError, ConnectionError)):
        return True

    return False


def _log_retry(retry_state: RetryCallState) -> None:
    """R: Loguea cada intento antes de dormir (before_sleep)."""
    fn = getattr(retry_state, "fn", None)
    fn_name = getattr(fn, "__name__", "unknown")
    wait_time = retry_state.next_action.sleep if retry_state.next_action else 0

    exc: Optional[BaseException] = None
    if retry_state.outcome is not None:
        exc = retry_state.outcome.exception()

    logger.warning(
        "Reintentando llamada externa",
        extra={
            "function": fn_name,
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(float(wait_time), 2),
            "error": str(exc) if exc else None,
            "error_type": type(exc).__name__ if exc else None,
        },
    )


def create_retry_decorator(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """R: Crea un decorator `tenacity` con exponential backoff + jitter.

    Config:
      - stop: `stop_after_attempt(max_attempts)`
      - wait: `wait_exponential_jitter(initial=base_delay, max=max_delay)`
      - retry: solo si `is_transient_error(exception)`
      - before_sleep: `_log_retry`
      - reraise: True (propaga la última excepción)
    """
    if max_attempts is None or base_delay is None or max_delay is None:
        settings = get_settings()
        max_attempts = settings.retry_max_attempts if max_attempts is None else max_attempts
        base_delay = settings.retry_base_delay_seconds if base_delay is None else base_delay
        max_delay = settings.retry_max_delay_seconds if max_delay is None else max_delay

    if max_attempts <= 0:
        raise ValueError("max_attempts must be > 0")
    if base_delay < 0:
        raise ValueError("base_delay must be >= 0")
    if max_delay <= 0:
        raise ValueError("max_delay must be > 0")

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential_jitter(
            initial=float(base_delay), max=float(max_delay), jitter=float(base_delay)
        ),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry,
        reraise=True,
    )


def requeue_backoff_seconds(
    delivery_count: int, *, base_delay: float, max_delay: float
) -> float:
    """
    Demora antes de devolver un job fallido a la cola.

    base_delay == 0 conserva la política base (requeue inmediato).
    """
    if base_delay <= 0 or delivery_count < 1:
        return 0.0
    return min(base_delay * (2 ** (delivery_count - 1)), max_delay)
