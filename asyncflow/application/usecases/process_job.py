"""
===============================================================================
USE CASE: Process Job (Worker Side)
===============================================================================

Name:
    Process Job Use Case

Business Goal:
    Ejecutar la conversión de un job recibido desde la cola y registrar el
    resultado en el StatusStore:
      PENDING -> (PROCESSING) -> COMPLETED

Why (Context / Intención):
    - El mensaje es sólo un snapshot: la verdad vive en el StatusStore, por
      eso se relee la fila por id.
    - Idempotencia: si la fila ya está COMPLETED (crash entre escritura y
      ack), no se reprocesa.
    - Los errores NO se convierten en FAILED acá: el worker decide entre
      requeue y descarte. Este use case sólo los tipa y los propaga.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    ProcessJobUseCase

Responsibilities:
    - Releer el job; JobNotFoundError si no existe.
    - Cortocircuitar estados terminales (COMPLETED / FAILED).
    - Opcional: marcar PROCESSING antes de invocar al transcoder.
    - Invocar Transcoder.process(job) y traducir fallas a ProcessingError.
    - Escribir COMPLETED y devolver el outcome.
    - mark_failed(): escribir FAILED con error_message truncado.

Collaborators:
    - JobStatusStore.get / update_status
    - Transcoder.process
    - crosscutting.exceptions: ProcessingError, JobNotFoundError
===============================================================================
"""

from __future__ import annotations

import logging

from ...crosscutting.exceptions import JobNotFoundError, ProcessingError
from ...domain.entities import Job, JobStatus
from ...domain.repositories import JobStatusStore
from ...domain.services import Transcoder
from .job_results import ProcessJobOutput, ProcessOutcome

logger = logging.getLogger(__name__)


class ProcessJobUseCase:
    """
    Use Case (Application Service / Command):
        Corre el transcoder sobre un job y persiste COMPLETED.
    """

    def __init__(
        self,
        store: JobStatusStore,
        transcoder: Transcoder,
        *,
        mark_processing: bool = False,
    ) -> None:
        self._store = store
        self._transcoder = transcoder
        self._mark_processing = mark_processing

    async def execute(self, job_id: str) -> ProcessJobOutput:
        """
        Raises:
            JobNotFoundError: la fila no existe (el worker re-encola).
            ProcessingError: el transcoder falló.
            DatabaseError: no se pudo escribir el estado.
        """
        job = await self._store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        if job.status == JobStatus.COMPLETED:
            logger.info(
                "Job already completed, skipping",
                extra={"job_id": job_id},
            )
            return ProcessJobOutput(job_id=job_id, outcome=ProcessOutcome.ALREADY_COMPLETED)

        if job.status == JobStatus.FAILED:
            logger.info("Job already failed, skipping", extra={"job_id": job_id})
            return ProcessJobOutput(job_id=job_id, outcome=ProcessOutcome.ALREADY_FAILED)

        if self._mark_processing and job.status == JobStatus.PENDING:
            job = await self._store.update_status(job_id, JobStatus.PROCESSING)

        await self._run_transcoder(job)

        await self._store.update_status(job_id, JobStatus.COMPLETED)
        logger.info(
            "Job completed",
            extra={"job_id": job_id, "video_name": job.video_name},
        )
        return ProcessJobOutput(job_id=job_id, outcome=ProcessOutcome.COMPLETED)

    async def mark_failed(self, job_id: str, error_message: str) -> Job:
        """Escribe FAILED (sólo usado cuando se agotó el límite de entregas)."""
        job = await self._store.update_status(
            job_id, JobStatus.FAILED, error_message=error_message
        )
        logger.warning(
            "Job marked as failed",
            extra={"job_id": job_id, "error_message": job.error_message},
        )
        return job

    async def _run_transcoder(self, job: Job) -> None:
        try:
            outcome = await self._transcoder.process(job)
        except ProcessingError:
            raise
        except Exception as exc:
            raise ProcessingError(
                f"Transcoder raised: {exc}", original_error=exc
            ) from exc

        if not outcome.ok:
            raise ProcessingError(outcome.detail or "Transcoder reported failure")
