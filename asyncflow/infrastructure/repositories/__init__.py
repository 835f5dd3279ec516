"""
============================================================
TARJETA CRC
============================================================
Class: asyncflow.infrastructure.repositories (Package exports)

Responsibilities:
- Exponer implementaciones concretas del StatusStore (Postgres e InMemory)
  en un único punto de importación.

Collaborators:
- PostgresJobStore (SQL crudo, producción)
- InMemoryJobStore (testing / local dev)
============================================================
"""

from .in_memory import InMemoryJobStore
from .postgres import PostgresJobStore

__all__ = [
    "InMemoryJobStore",
    "PostgresJobStore",
]
