"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define the StatusStore persistence contract for the domain layer (port).
- Keep application/worker independent from PostgreSQL or in-memory storage.
- Enable dependency inversion and straightforward unit testing.

Collaborators
- domain.entities: Job, JobStatus
- infrastructure.repositories: postgres + in_memory implementations

Constraints
- Pure interfaces only: no side effects, no infrastructure imports, no SQL.
- Implementations MUST match method signatures exactly.

Notes
- All operations are coroutines: storage I/O suspends the caller's loop.
"""

from typing import Optional, Protocol

from .entities import Job, JobStatus


class JobStatusStore(Protocol):
    """
    R: Interface for persisted job rows with monotonic status transitions.
    """

    async def create(self, job: Job) -> None:
        """
        R: Persist a new row.

        Raises:
            DatabaseError: connectivity failure or constraint violation.
        """
        ...

    async def get(self, job_id: str) -> Optional[Job]:
        """R: Return the row, or None if it does not exist."""
        ...

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        *,
        error_message: str | None = None,
    ) -> Job:
        """
        R: Apply a monotonic transition and return the updated row.

        Writing COMPLETED over COMPLETED is idempotent.

        Raises:
            JobNotFoundError: id missing (queue/storage inconsistency).
            InvalidStatusTransitionError: current status forbids the change.
            DatabaseError: transient connectivity failure.
        """
        ...

    async def ping(self) -> bool:
        """R: Lightweight readiness check."""
        ...
