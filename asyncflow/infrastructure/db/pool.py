"""
===============================================================================
CRC CARD — infrastructure/db/pool.py
===============================================================================

Componente:
  Pool de conexiones PostgreSQL (async)

Responsabilidades:
  - Abrir y cerrar el pool de conexiones como handle explícito.
  - Configurar conexiones: statement_timeout.
  - Fallar temprano si la DB no responde al arrancar.

Colaboradores:
  - psycopg_pool.AsyncConnectionPool
  - container.open_resources (único dueño del ciclo de vida)

Principios:
  - Sin singleton de módulo: el pool se pasa explícitamente a los repositorios.
  - Fail-fast (config incorrecta, DB caída al inicio)
===============================================================================
"""

from __future__ import annotations

from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool

from ...crosscutting.logger import logger
from .errors import DatabaseConnectionError


def _make_configure(statement_timeout_ms: int):
    async def _configure_connection(conn: AsyncConnection) -> None:
        """Se ejecuta cuando el pool crea una conexión nueva."""
        if statement_timeout_ms > 0:
            await conn.execute(f"SET statement_timeout = {int(statement_timeout_ms)}")
            await conn.commit()

    return _configure_connection


async def open_pool(
    database_url: str,
    *,
    min_size: int,
    max_size: int,
    statement_timeout_ms: int = 0,
    open_timeout_seconds: float = 10.0,
) -> AsyncConnectionPool:
    """
    Abre el pool y espera a que haya `min_size` conexiones listas.

    Raises:
        DatabaseConnectionError: si la DB no está disponible.
    """
    logger.info(
        "Inicializando pool DB",
        extra={"min_size": min_size, "max_size": max_size},
    )

    pool = AsyncConnectionPool(
        conninfo=database_url,
        min_size=min_size,
        max_size=max_size,
        configure=_make_configure(statement_timeout_ms),
        open=False,
    )
    try:
        await pool.open(wait=True, timeout=open_timeout_seconds)
    except Exception as exc:
        await pool.close()
        raise DatabaseConnectionError(f"No se pudo abrir el pool DB: {exc}") from exc

    logger.info(
        "Pool DB inicializado",
        extra={"min_size": min_size, "max_size": max_size},
    )
    return pool


async def close_pool(pool: AsyncConnectionPool | None) -> None:
    """Cierra el pool (idempotente)."""
    if pool is None or pool.closed:
        return
    logger.info("Cerrando pool DB")
    await pool.close()
    logger.info("Pool DB cerrado")
