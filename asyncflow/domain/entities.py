"""
===============================================================================
TARJETA CRC — domain/entities.py
===============================================================================

Módulo:
    Entidades del Dominio (Job, JobStatus)

Responsabilidades:
    - Definir la unidad de trabajo de conversión y su estado persistido.
    - Mantener la máquina de estados monótona:
        PENDING -> PROCESSING -> COMPLETED | FAILED
        PENDING -> COMPLETED | FAILED
    - Brindar helpers mínimos para que casos de uso y repositorios apliquen
      la misma regla de transición.

Colaboradores:
    - domain.repositories: persisten/recuperan Jobs.
    - domain.messages: snapshot serializable para la cola.
    - application/usecases: crean y transicionan Jobs.

Principios:
    - Sin dependencias a DB/Redis/FastAPI.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Final, FrozenSet, Mapping, Optional
from uuid import uuid4

MAX_ERROR_MESSAGE_LEN: Final[int] = 500


def _utcnow() -> datetime:
    """Fecha/hora UTC (helper interno)."""
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Estado de procesamiento del job."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[JobStatus] = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED}
)

# Orígenes permitidos por destino. COMPLETED -> COMPLETED no figura: la
# re-escritura idempotente la resuelve el repositorio, no es una transición.
ALLOWED_FROM: Mapping[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset(),
    JobStatus.PROCESSING: frozenset({JobStatus.PENDING, JobStatus.PROCESSING}),
    JobStatus.COMPLETED: frozenset({JobStatus.PENDING, JobStatus.PROCESSING}),
    JobStatus.FAILED: frozenset({JobStatus.PENDING, JobStatus.PROCESSING}),
}


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    """True si `current -> target` respeta la monotonía."""
    return current in ALLOWED_FROM[target]


def new_job_id() -> str:
    """Id opaco y único (UUID4 en hex), asignado una sola vez."""
    return uuid4().hex


def truncate_error(message: str | None, max_len: int = MAX_ERROR_MESSAGE_LEN) -> str:
    """
    Trunca el mensaje de error para evitar guardar strings enormes.
    """
    value = (message or "").strip()
    if len(value) <= max_len:
        return value
    return value[: max_len - 3] + "..."


@dataclass
class Job:
    """
    Pedido de conversión con identidad y estado persistidos.

    Importante:
      - `id` es inmutable luego de la creación.
      - `video_name` es opaco (el transcoder decide qué significa).
    """

    id: str
    video_name: str
    status: JobStatus = JobStatus.PENDING
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(cls, video_name: str) -> "Job":
        """Construye un job nuevo en PENDING con id recién generado."""
        now = _utcnow()
        return cls(
            id=new_job_id(),
            video_name=video_name,
            status=JobStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
