"""
===============================================================================
TARJETA CRC — asyncflow/interfaces/api/http/routers/__init__.py
===============================================================================

Name:
    Routers Package (HTTP)

Responsibilities:
    - Exponer los routers para ser incluidos por el router principal.

Collaborators:
    - routers.jobs

Notas:
    - Este archivo NO define endpoints. Solo re-exporta routers.
===============================================================================
"""

from .jobs import router as jobs_router

__all__ = ["jobs_router"]
