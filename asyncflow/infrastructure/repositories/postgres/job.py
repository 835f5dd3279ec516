"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/job.py
============================================================
Class: PostgresJobStore

Responsibilities:
- Implementar el StatusStore sobre PostgreSQL (psycopg async + pool).
- Transiciones de estado condicionales (optimistic):
    UPDATE ... WHERE id = %s AND status = ANY(allowed_from)
  para que la monotonía la garantice la DB y no el caller.
- Distinguir "no existe" (JobNotFoundError) de "transición prohibida"
  (InvalidStatusTransitionError) y de fallas de conectividad (DatabaseError).
- Reintentar en el lugar errores transitorios (tenacity) antes de propagar.

Collaborators:
- domain.entities: Job, JobStatus, ALLOWED_FROM
- psycopg_pool.AsyncConnectionPool (inyectado)
- infrastructure.services.retry
- crosscutting.exceptions / crosscutting.logger

Constraints / Notes:
- Todas las queries son parametrizadas.
- Escribir COMPLETED sobre COMPLETED es idempotente: un mensaje redelivered
  tras perder el ack no debe fallar.
============================================================
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

import psycopg
from psycopg_pool import AsyncConnectionPool

from ....crosscutting.exceptions import (
    DatabaseError,
    InvalidStatusTransitionError,
    JobNotFoundError,
)
from ....crosscutting.logger import logger
from ....domain.entities import ALLOWED_FROM, Job, JobStatus, truncate_error


class PostgresJobStore:
    """
    Repositorio PostgreSQL para Jobs.

    Modelo mental:
    - jobs: una fila por pedido, status como máquina de estados monótona.
    """

    _SELECT_COLUMNS = "id, video_name, status, error_message, created_at, updated_at"

    def __init__(
        self,
        pool: AsyncConnectionPool,
        *,
        retrying: Optional[Callable[[Callable[..., Any]], Callable[..., Any]]] = None,
    ):
        # Pool inyectado: el contenedor es dueño del ciclo de vida.
        self._pool = pool
        self._fetch_one = retrying(self._fetch_one_once) if retrying else self._fetch_one_once

    # ============================================================
    # Low-level
    # ============================================================
    async def _fetch_one_once(self, sql: str, params: Sequence[Any]) -> Optional[tuple]:
        async with self._pool.connection() as conn:
            cur = await conn.execute(sql, params)
            if cur.description is None:
                return None
            return await cur.fetchone()

    @staticmethod
    def _row_to_job(row: tuple) -> Job:
        return Job(
            id=row[0],
            video_name=row[1],
            status=JobStatus(row[2]),
            error_message=row[3],
            created_at=row[4],
            updated_at=row[5],
        )

    # ============================================================
    # StatusStore API
    # ============================================================
    async def create(self, job: Job) -> None:
        """
        Inserta la fila del job (PENDING).

        Idempotente por id: si un reintento encuentra la fila que el intento
        anterior ya confirmó, se trata como éxito.
        """
        sql = """
            INSERT INTO jobs (id, video_name, status, error_message, created_at, updated_at)
            VALUES (%s, %s, %s, %s, COALESCE(%s, now()), COALESCE(%s, now()))
            ON CONFLICT (id) DO NOTHING
            RETURNING id
        """
        existing: Optional[tuple] = None
        try:
            inserted = await self._fetch_one(
                sql,
                [
                    job.id,
                    job.video_name,
                    job.status.value,
                    job.error_message,
                    job.created_at,
                    job.updated_at,
                ],
            )
            if inserted is None:
                existing = await self._fetch_one(
                    f"SELECT {self._SELECT_COLUMNS} FROM jobs WHERE id = %s", [job.id]
                )
        except psycopg.Error as exc:
            logger.exception(
                "PostgresJobStore: create failed", extra={"job_id": job.id}
            )
            raise DatabaseError(
                f"No se pudo crear el job: {exc}", original_error=exc
            ) from exc

        if inserted is None and (existing is None or existing[1] != job.video_name):
            logger.error("PostgresJobStore: id de job duplicado", extra={"job_id": job.id})
            raise DatabaseError(f"Id de job duplicado: {job.id}")

    async def get(self, job_id: str) -> Optional[Job]:
        sql = f"SELECT {self._SELECT_COLUMNS} FROM jobs WHERE id = %s"
        try:
            row = await self._fetch_one(sql, [job_id])
        except psycopg.Error as exc:
            logger.exception("PostgresJobStore: get failed", extra={"job_id": job_id})
            raise DatabaseError(
                f"No se pudo leer el job: {exc}", original_error=exc
            ) from exc
        return self._row_to_job(row) if row else None

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        *,
        error_message: str | None = None,
    ) -> Job:
        """
        Transición condicional. Si el UPDATE no afecta filas, se relee para
        distinguir "no existe", "ya estaba en ese estado terminal" e "inválida".
        """
        allowed = [s.value for s in ALLOWED_FROM[status]]
        message = truncate_error(error_message) if error_message else None

        sql = f"""
            UPDATE jobs
            SET status = %s,
                error_message = %s,
                updated_at = now()
            WHERE id = %s AND status = ANY(%s)
            RETURNING {self._SELECT_COLUMNS}
        """
        try:
            row = await self._fetch_one(sql, [status.value, message, job_id, allowed])
        except psycopg.Error as exc:
            logger.exception(
                "PostgresJobStore: status transition failed",
                extra={"job_id": job_id, "to_status": status.value},
            )
            raise DatabaseError(
                f"No se pudo actualizar el job: {exc}", original_error=exc
            ) from exc

        if row:
            return self._row_to_job(row)

        current = await self.get(job_id)
        if current is None:
            raise JobNotFoundError(job_id)
        if current.status == status and status.is_terminal:
            return current
        raise InvalidStatusTransitionError(job_id, current.status.value, status.value)

    async def ping(self) -> bool:
        try:
            row = await self._fetch_one_once("SELECT 1", [])
            return bool(row and row[0] == 1)
        except psycopg.Error as exc:
            logger.warning("PostgresJobStore: ping failed", extra={"error": str(exc)})
            return False
