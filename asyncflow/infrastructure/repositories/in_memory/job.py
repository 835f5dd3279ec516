"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/job.py
============================================================
Class: InMemoryJobStore

Responsibilities:
  - Almacenar jobs en memoria (tests / local dev sin Postgres).
  - Replicar la semántica del PostgresJobStore:
      - create falla con DatabaseError ante id duplicado
      - update_status aplica ALLOWED_FROM, idempotente sobre el mismo
        estado terminal, JobNotFoundError si no existe

Collaborators:
  - domain.entities.Job, JobStatus, can_transition
  - crosscutting.exceptions

Constraints / Notes:
  - asyncio.Lock: las coroutines del mismo loop no se pisan.
  - Copias defensivas: el caller nunca recibe la instancia interna.
============================================================
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ....crosscutting.exceptions import (
    DatabaseError,
    InvalidStatusTransitionError,
    JobNotFoundError,
)
from ....domain.entities import Job, JobStatus, can_transition, truncate_error


class InMemoryJobStore:
    """Repositorio in-memory para Jobs."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._jobs: Dict[str, Job] = {}

    async def create(self, job: Job) -> None:
        async with self._lock:
            if job.id in self._jobs:
                raise DatabaseError(f"Job '{job.id}' ya existe")
            self._jobs[job.id] = replace(job)

    async def get(self, job_id: str) -> Optional[Job]:
        async with self._lock:
            job = self._jobs.get(job_id)
            return replace(job) if job else None

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        *,
        error_message: str | None = None,
    ) -> Job:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)

            if job.status == status and status.is_terminal:
                return replace(job)
            if not can_transition(job.status, status):
                raise InvalidStatusTransitionError(job_id, job.status.value, status.value)

            job.status = status
            job.error_message = truncate_error(error_message) if error_message else None
            job.updated_at = datetime.now(timezone.utc)
            return replace(job)

    async def ping(self) -> bool:
        return True

    def all(self) -> List[Job]:
        """Snapshot para aserciones en tests."""
        return [replace(job) for job in self._jobs.values()]
