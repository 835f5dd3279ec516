"""
===============================================================================
TARJETA CRC — error_mapping.py (UseCase Error -> HTTP)
===============================================================================

Responsabilidades:
  - Traducir códigos de error de casos de uso a AppHTTPException.
  - Centralizar el mapeo para evitar duplicación en routers.
  - Mantener el dominio libre de HTTP.

Colaboradores:
  - application.usecases.JobError / JobErrorCode
  - crosscutting.error_responses
===============================================================================
"""

from __future__ import annotations

from asyncflow.application.usecases import JobError, JobErrorCode
from asyncflow.crosscutting.error_responses import (
    AppHTTPException,
    ErrorCode,
    not_found,
    validation_error,
)


def raise_job_error(error: JobError, *, job_id: str | None = None) -> None:
    """Traduce JobErrorCode -> HTTP."""
    if error.code == JobErrorCode.VALIDATION_ERROR:
        raise validation_error(error.message)
    if error.code == JobErrorCode.NOT_FOUND:
        raise not_found("Job", job_id or "-")
    if error.code == JobErrorCode.SERVICE_UNAVAILABLE:
        raise AppHTTPException(503, ErrorCode.SERVICE_UNAVAILABLE, error.message)
    raise AppHTTPException(500, ErrorCode.INTERNAL_ERROR, error.message)
