"""
===============================================================================
USE CASE: Submit Job (Persist PENDING + Publish to Queue)
===============================================================================

Name:
    Submit Job Use Case

Business Goal:
    Aceptar un pedido de conversión, persistirlo como PENDING y publicarlo en
    la cola durable, sin esperar el procesamiento.

Why (Context / Intención):
    - El HTTP request sólo registra el trabajo; el worker lo ejecuta después.
    - La fila debe existir ANTES de que el mensaje sea visible en la cola:
      un worker que recibe el mensaje siempre encuentra la fila.
    - Si la cola falla después de crear la fila, la fila queda huérfana en
      PENDING. Se loguea con su id; la reconciliación queda fuera de alcance.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    SubmitJobUseCase

Responsibilities:
    - Validar video_name (string con contenido); persistirlo sin modificar.
    - Crear Job(PENDING) con id nuevo y persistirlo.
    - Publicar el snapshot JobMessage y esperar la confirmación del broker.
    - Devolver SubmitJobResult con job_id y status PENDING.

Collaborators:
    - JobStatusStore.create(job)
    - JobQueue.publish(message)
    - domain.entities.Job / domain.messages.JobMessage
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Final

from ...domain.entities import Job, JobStatus
from ...domain.messages import JobMessage
from ...domain.repositories import JobStatusStore
from ...domain.services import JobQueue
from .job_results import JobError, JobErrorCode, SubmitJobResult

MSG_VIDEO_NAME_REQUIRED: Final[str] = "videoName is required"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmitJobInput:
    """
    DTO de entrada.

    video_name: valor crudo del body (cualquier tipo); se valida en execute().
    """

    video_name: Any


def _is_valid_video_name(value: Any) -> bool:
    # El nombre es opaco: sólo se rechaza lo vacío, nunca se reescribe.
    return isinstance(value, str) and bool(value.strip())


class SubmitJobUseCase:
    """
    Use Case (Application Service / Command):
        Persiste el job y lo encola para procesamiento asíncrono.
    """

    def __init__(self, store: JobStatusStore, queue: JobQueue) -> None:
        self._store = store
        self._queue = queue

    async def execute(self, input_data: SubmitJobInput) -> SubmitJobResult:
        """
        Orden:
          1) Validar input (sin efectos si falla).
          2) Persistir la fila PENDING (DatabaseError se propaga, no se publica).
          3) Publicar el mensaje (QueueError se propaga, fila huérfana logueada).
        """
        if not _is_valid_video_name(input_data.video_name):
            return SubmitJobResult(
                error=JobError(
                    code=JobErrorCode.VALIDATION_ERROR,
                    message=MSG_VIDEO_NAME_REQUIRED,
                    resource="videoName",
                )
            )

        video_name: str = input_data.video_name
        job = Job.create(video_name)
        await self._store.create(job)

        try:
            await self._queue.publish(JobMessage.from_job(job))
        except Exception:
            logger.error(
                "Job persisted but publish failed; row left PENDING",
                extra={"job_id": job.id, "video_name": video_name},
            )
            raise

        logger.info(
            "Job submitted",
            extra={"job_id": job.id, "video_name": video_name},
        )
        return SubmitJobResult(job_id=job.id, status=JobStatus.PENDING)
