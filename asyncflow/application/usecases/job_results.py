"""
===============================================================================
JOB USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Name:
    Job Use Case Results

Business Goal:
    Proveer tipos consistentes de resultados y errores para los casos de uso
    de jobs (submit, get, process).

Why (Context / Intención):
    - Los errores de input se devuelven como resultado tipado; los errores de
      infraestructura (DB, cola) se propagan como excepciones tipadas y los
      mapean los exception handlers HTTP.
    - Facilita testear flujos por resultado (sin mocks de HTTP).

-------------------------------------------------------------------------------
CRC CARD (Module-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    job_results models (module)

Responsibilities:
    - Definir JobErrorCode como conjunto estable de categorías de error.
    - Definir JobError como contrato mínimo de error.
    - Definir DTOs de resultado: SubmitJobResult, GetJobResult,
      ProcessJobOutput.

Collaborators:
    - domain.entities: Job, JobStatus
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ...domain.entities import Job, JobStatus


class JobErrorCode(str, Enum):
    """
    Categorías de error para casos de uso de jobs.

    Códigos:
      - VALIDATION_ERROR: input inválido/incompleto.
      - NOT_FOUND: el job no existe.
      - SERVICE_UNAVAILABLE: dependencia caída (DB / cola).
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


@dataclass(frozen=True)
class JobError:
    code: JobErrorCode
    message: str
    resource: str | None = None


@dataclass
class SubmitJobResult:
    """Resultado de SubmitJobUseCase: job_id + status inicial, o error."""

    job_id: str | None = None
    status: JobStatus | None = None
    error: JobError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class GetJobResult:
    job: Job | None = None
    error: JobError | None = None


class ProcessOutcome(str, Enum):
    """
    Resultado de una ejecución del ProcessJobUseCase.

    - COMPLETED: se procesó y se escribió COMPLETED.
    - ALREADY_COMPLETED: la fila ya estaba COMPLETED (redelivery tras crash).
    - ALREADY_FAILED: la fila estaba FAILED (terminal, nada que hacer).
    """

    COMPLETED = "COMPLETED"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    ALREADY_FAILED = "ALREADY_FAILED"


@dataclass(frozen=True)
class ProcessJobOutput:
    job_id: str
    outcome: ProcessOutcome
