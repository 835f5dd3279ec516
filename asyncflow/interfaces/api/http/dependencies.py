"""
===============================================================================
TARJETA CRC — dependencies.py (Dependencias FastAPI)
===============================================================================

Responsabilidades:
  - Resolver los use cases por request a partir de los recursos abiertos en
    el lifespan (app.state.resources).

Patrones aplicados:
  - Dependency Injection (FastAPI Depends) sobre el composition root.

Colaboradores:
  - container (factories de use cases)
  - api/main.py (guarda Resources en app.state)
===============================================================================
"""

from __future__ import annotations

from fastapi import Request

from asyncflow.application.usecases import GetJobUseCase, SubmitJobUseCase
from asyncflow.container import Resources, get_get_job_use_case, get_submit_job_use_case


def get_resources(request: Request) -> Resources:
    return request.app.state.resources


def get_submit_job(request: Request) -> SubmitJobUseCase:
    resources = get_resources(request)
    return get_submit_job_use_case(resources.store, resources.queue)


def get_get_job(request: Request) -> GetJobUseCase:
    return get_get_job_use_case(get_resources(request).store)
