"""Repositorios in-memory (tests / local dev)."""

from .job import InMemoryJobStore

__all__ = ["InMemoryJobStore"]
