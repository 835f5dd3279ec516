"""Repositorios PostgreSQL (producción)."""

from .job import PostgresJobStore

__all__ = ["PostgresJobStore"]
