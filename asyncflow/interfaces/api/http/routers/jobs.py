"""
===============================================================================
TARJETA CRC — asyncflow/interfaces/api/http/routers/jobs.py
===============================================================================

Name:
    Jobs Router

Responsibilities:
    - POST /convert: aceptar un pedido de conversión (202 + id).
    - GET /jobs/{job_id}: consultar el estado persistido.
    - Mapeo de JobError -> {"error", "code"}.

Collaborators:
    - application.usecases: SubmitJobUseCase, GetJobUseCase
    - schemas.jobs
    - dependencies (use cases por request)
    - crosscutting.metrics
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, status

from asyncflow.application.usecases import (
    GetJobUseCase,
    SubmitJobInput,
    SubmitJobUseCase,
)
from asyncflow.crosscutting.metrics import record_job_submitted

from ..dependencies import get_get_job, get_submit_job
from ..error_mapping import raise_job_error
from ..schemas.jobs import ConvertAcceptedRes, ConvertReq, JobStatusRes

router = APIRouter(tags=["jobs"])


@router.post(
    "/convert",
    response_model=ConvertAcceptedRes,
    status_code=status.HTTP_202_ACCEPTED,
)
async def convert(
    req: ConvertReq = Body(...),
    use_case: SubmitJobUseCase = Depends(get_submit_job),
):
    """
    Registra el job (PENDING) y lo publica en la cola.

    Responde apenas el broker confirmó el mensaje; no espera el procesamiento.
    """
    result = await use_case.execute(SubmitJobInput(video_name=req.video_name))
    if result.error is not None:
        raise_job_error(result.error)

    record_job_submitted()
    return ConvertAcceptedRes(id=result.job_id)


@router.get(
    "/jobs/{job_id}",
    response_model=JobStatusRes,
    response_model_by_alias=True,
)
async def get_job(
    job_id: str,
    use_case: GetJobUseCase = Depends(get_get_job),
):
    result = await use_case.execute(job_id)
    if result.error is not None:
        raise_job_error(result.error, job_id=job_id)
    return JobStatusRes.from_job(result.job)
