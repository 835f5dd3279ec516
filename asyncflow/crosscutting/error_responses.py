"""
===============================================================================
MÓDULO: Respuestas de error estándar ({"error", "code"})
===============================================================================

Objetivo
--------
Uniformar TODOS los errores HTTP para que:
- El cliente pueda manejar por "code"
- El mensaje humano viaje en "error" (compatible con clientes existentes
  que leen sólo ese campo)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  AppHTTPException + handlers

Responsabilidades:
  - Definir catálogo de códigos de error (ErrorCode)
  - Construir payload ErrorBody
  - Proveer factories de errores frecuentes
  - Proveer handlers (FastAPI) para devolver JSON

Colaboradores:
  - crosscutting/middleware.py (X-Request-Id)
  - api/exception_handlers.py (mapea errores internos)
===============================================================================
"""

from __future__ import annotations

from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .logger import logger


class ErrorCode(str, Enum):
    # 4xx
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # 5xx
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    DATABASE_ERROR = "DATABASE_ERROR"
    QUEUE_ERROR = "QUEUE_ERROR"


class ErrorBody(BaseModel):
    """Payload de error: mensaje humano + código estable."""

    error: str
    code: ErrorCode


OPENAPI_ERROR_RESPONSES = {
    "400": {"description": "Bad Request", "model": ErrorBody},
    "404": {"description": "Not Found", "model": ErrorBody},
    "503": {"description": "Service Unavailable", "model": ErrorBody},
}


class AppHTTPException(HTTPException):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      AppHTTPException

    Responsabilidades:
      - Adjuntar un ErrorCode estable al status HTTP

    Colaboradores:
      - app_exception_handler()
    ----------------------------------------------------------------------------
    """

    def __init__(self, status_code: int, code: ErrorCode, detail: str):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code


# ---------------------------------------------------------------------------
# Factories de error (helpers)
# ---------------------------------------------------------------------------
def validation_error(detail: str) -> AppHTTPException:
    return AppHTTPException(400, ErrorCode.VALIDATION_ERROR, detail)


def not_found(resource: str, identifier: str) -> AppHTTPException:
    return AppHTTPException(404, ErrorCode.NOT_FOUND, f"{resource} '{identifier}' not found")


def database_error(detail: str = "Storage unavailable") -> AppHTTPException:
    return AppHTTPException(503, ErrorCode.DATABASE_ERROR, detail)


def queue_error(detail: str = "Queue unavailable") -> AppHTTPException:
    return AppHTTPException(503, ErrorCode.QUEUE_ERROR, detail)


def error_response(status_code: int, code: ErrorCode, message: str) -> JSONResponse:
    body = ErrorBody(error=message, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Handlers FastAPI
# ---------------------------------------------------------------------------
async def app_exception_handler(
    request: Request, exc: AppHTTPException
) -> JSONResponse:
    """Handler para AppHTTPException."""
    response = error_response(exc.status_code, exc.code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handler de fallback para excepciones no manejadas.
    (No expone detalles internos al cliente.)
    """
    logger.exception(
        "Excepción no manejada",
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return error_response(500, ErrorCode.INTERNAL_ERROR, "Unexpected error")
