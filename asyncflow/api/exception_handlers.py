"""
===============================================================================
TARJETA CRC — asyncflow/api/exception_handlers.py (Manejo Centralizado de Excepciones)
===============================================================================

Responsabilidades:
  - Traducir excepciones de la aplicación a respuestas {"error", "code"}.
  - Centralizar logging de errores con request_id + error_id.
  - Evitar filtrar detalles internos en errores no controlados.

Patrones aplicados:
  - Exception Mapping (Presentation Layer).
  - Fail-safe: cualquier excepción no tipada -> INTERNAL_ERROR (con logging).

Colaboradores:
  - crosscutting.error_responses: AppHTTPException, ErrorCode, error_response
  - crosscutting.exceptions: AsyncFlowError / DatabaseError
  - infrastructure.queue.errors: QueueError
===============================================================================
"""

from __future__ import annotations

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..application.usecases import MSG_VIDEO_NAME_REQUIRED
from ..crosscutting.error_responses import (
    AppHTTPException,
    ErrorCode,
    app_exception_handler,
    error_response,
    generic_exception_handler,
)
from ..crosscutting.exceptions import AsyncFlowError, DatabaseError
from ..crosscutting.logger import logger
from ..crosscutting.metrics import record_job_submit_failed
from ..infrastructure.queue.errors import QueueError

_CONVERT_PATH = "/convert"


def _request_id_from(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error(
        "Error de base de datos",
        extra={
            "code": ErrorCode.DATABASE_ERROR.value,
            "error_id": exc.error_id,
            "error": exc.message,
            "request_id": _request_id_from(request),
        },
    )
    if request.url.path == _CONVERT_PATH:
        record_job_submit_failed("database")
    return error_response(503, ErrorCode.DATABASE_ERROR, "Storage unavailable")


async def queue_error_handler(request: Request, exc: QueueError) -> JSONResponse:
    logger.error(
        "Error de cola",
        extra={
            "code": ErrorCode.QUEUE_ERROR.value,
            "error": str(exc),
            "request_id": _request_id_from(request),
        },
    )
    if request.url.path == _CONVERT_PATH:
        record_job_submit_failed("queue")
    return error_response(503, ErrorCode.QUEUE_ERROR, "Queue unavailable")


async def asyncflow_error_handler(request: Request, exc: AsyncFlowError) -> JSONResponse:
    # R: Errores base: tratamos como INTERNAL_ERROR por defecto.
    logger.error(
        "Error interno",
        extra={"error_id": exc.error_id, "error": exc.message},
    )
    return error_response(500, ErrorCode.INTERNAL_ERROR, "Unexpected error")


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Body ausente / no-JSON / no-objeto: 400 (no 422).

    En /convert el mensaje es siempre el mismo que devuelve el use case.
    """
    message = (
        MSG_VIDEO_NAME_REQUIRED if request.url.path == _CONVERT_PATH else "Invalid request"
    )
    logger.info(
        "Request inválido",
        extra={"path": request.url.path, "errors": exc.errors()},
    )
    return error_response(400, ErrorCode.VALIDATION_ERROR, message)


def register_exception_handlers(app) -> None:
    """
    Registra handlers en la app FastAPI.

    Importante:
      - Exception genérica se registra al final como fallback.
    """
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DatabaseError, database_error_handler)
    app.add_exception_handler(QueueError, queue_error_handler)
    app.add_exception_handler(AsyncFlowError, asyncflow_error_handler)
    app.add_exception_handler(AppHTTPException, app_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = ["register_exception_handlers"]
