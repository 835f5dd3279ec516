"""
===============================================================================
MÓDULO: Excepciones internas tipadas
===============================================================================

Responsabilidades:
  - Estandarizar errores internos que luego se mapean a HTTP (request path)
    o a ack/nack (worker path)
  - Generar error_id para rastreo

Colaboradores:
  - api/exception_handlers.py (mapea a respuestas JSON)
  - worker/consumer.py (decide requeue)
  - crosscutting/logger.py
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class AsyncFlowError(Exception):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      AsyncFlowError

    Responsabilidades:
      - Base para errores internos del sistema
      - Proveer error_code + error_id + message

    Colaboradores:
      - api/exception_handlers.py
    ----------------------------------------------------------------------------
    """

    error_code: str = "ASYNCFLOW_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)


class DatabaseError(AsyncFlowError):
    """Errores de DB (conexión, query, timeout, constraint)."""

    error_code: str = "DATABASE_ERROR"


class JobNotFoundError(DatabaseError):
    """El id del mensaje no tiene fila: inconsistencia cola/storage."""

    error_code: str = "JOB_NOT_FOUND"

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job '{job_id}' no existe en el status store")
        self.job_id = job_id


class InvalidStatusTransitionError(DatabaseError):
    """La transición pedida viola la monotonía de estados."""

    error_code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, job_id: str, from_status: str, to_status: str) -> None:
        super().__init__(
            f"Transición inválida para job '{job_id}': {from_status} -> {to_status}"
        )
        self.job_id = job_id
        self.from_status = from_status
        self.to_status = to_status


class ProcessingError(AsyncFlowError):
    """Falla del transcoder (nunca llega a un caller externo)."""

    error_code: str = "PROCESSING_ERROR"
