"""
Name: ASGI Entrypoint (asyncflow.main)

Responsibilities:
  - Build and re-export the FastAPI app for ASGI servers and tooling
  - Provide the `asyncflow-api` console script (uvicorn on settings.port)

Collaborators:
  - asyncflow.api.main.create_app: constructs the FastAPI app
  - ASGI servers (uvicorn) configured to import asyncflow.main:app

Notes/Constraints:
  - No IO happens at import: Redis and the DB pool open in the lifespan
  - Changing this path is a deployment-breaking change for infra scripts
"""

import uvicorn

from asyncflow.api.main import create_app
from asyncflow.crosscutting.config import get_settings

app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "asyncflow.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_config=None,
    )


__all__ = ["app", "run"]
