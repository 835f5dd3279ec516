"""
===============================================================================
USE CASE: Get Job (Status Query)
===============================================================================

Name:
    Get Job Use Case

Business Goal:
    Consultar el estado persistido de un job por id.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    GetJobUseCase

Responsibilities:
    - Leer el job del StatusStore.
    - Devolver NOT_FOUND tipado si no existe.

Collaborators:
    - JobStatusStore.get(job_id)
    - job_results: GetJobResult / JobError / JobErrorCode
===============================================================================
"""

from __future__ import annotations

from ...domain.repositories import JobStatusStore
from .job_results import GetJobResult, JobError, JobErrorCode


class GetJobUseCase:
    def __init__(self, store: JobStatusStore) -> None:
        self._store = store

    async def execute(self, job_id: str) -> GetJobResult:
        job = await self._store.get(job_id) if job_id else None
        if job is None:
            return GetJobResult(
                error=JobError(
                    code=JobErrorCode.NOT_FOUND,
                    message="Job not found",
                    resource="Job",
                )
            )
        return GetJobResult(job=job)
