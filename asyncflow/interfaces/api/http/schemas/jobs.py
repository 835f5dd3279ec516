"""
===============================================================================
TARJETA CRC — schemas/jobs.py
===============================================================================

Módulo:
    Schemas HTTP para jobs de conversión

Responsabilidades:
    - DTOs de request/response de POST /convert y GET /jobs/{id}.
    - Mantener los nombres de wire en camelCase (videoName, errorMessage).

Notas:
    - ConvertReq NO valida videoName: cualquier tipo pasa y el use case decide
      (un solo mensaje de error, "videoName is required", para todos los casos).
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from asyncflow.domain.entities import Job, JobStatus


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------
class ConvertReq(BaseModel):
    """Pedido de conversión."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    video_name: Any = Field(default=None, alias="videoName")


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------
class ConvertAcceptedRes(BaseModel):
    message: str = "Task added to queue"
    id: str


class JobStatusRes(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    video_name: str = Field(alias="videoName")
    status: JobStatus
    error_message: str | None = Field(default=None, alias="errorMessage")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusRes":
        return cls(
            id=job.id,
            video_name=job.video_name,
            status=job.status,
            error_message=job.error_message,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )
