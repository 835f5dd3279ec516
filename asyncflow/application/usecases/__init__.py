"""
Use Cases Layer (Business Operations)

Structure
---------
usecases/
├── submit_job.py    # POST /convert: persist PENDING + publish
├── get_job.py       # GET /jobs/{id}: status query
├── process_job.py   # worker: transcode + COMPLETED
└── job_results.py   # result DTOs + typed errors

Usage
-----
    from asyncflow.application.usecases import SubmitJobInput, SubmitJobUseCase
"""

from .get_job import GetJobUseCase
from .job_results import (
    GetJobResult,
    JobError,
    JobErrorCode,
    ProcessJobOutput,
    ProcessOutcome,
    SubmitJobResult,
)
from .process_job import ProcessJobUseCase
from .submit_job import MSG_VIDEO_NAME_REQUIRED, SubmitJobInput, SubmitJobUseCase

__all__ = [
    # Submit
    "MSG_VIDEO_NAME_REQUIRED",
    "SubmitJobInput",
    "SubmitJobResult",
    "SubmitJobUseCase",
    # Query
    "GetJobResult",
    "GetJobUseCase",
    # Worker
    "ProcessJobOutput",
    "ProcessJobUseCase",
    "ProcessOutcome",
    # Errors
    "JobError",
    "JobErrorCode",
]
