"""Infra DB: pool async + errores tipados."""

from .errors import DatabaseConnectionError, DatabasePoolError
from .pool import close_pool, open_pool

__all__ = [
    "open_pool",
    "close_pool",
    "DatabasePoolError",
    "DatabaseConnectionError",
]
