"""
============================================================
TARJETA CRC (Class / Responsibilities / Collaborators)
============================================================
Class: 001_jobs (Alembic Migration)

Responsibilities:
  - Crear la tabla jobs (una fila por pedido de conversión).
  - CHECK constraint para status (PENDING/PROCESSING/COMPLETED/FAILED).
  - Índice por status para listados operativos (p.ej. PENDING viejos).

Collaborators:
  - PostgreSQL (TEXT, TIMESTAMPTZ, CHECK)
  - Alembic (framework de migraciones)
  - domain.entities.JobStatus
============================================================
"""

from typing import Sequence, Union

from alembic import op

# ============================================================
# Alembic identifiers
# ============================================================
revision: str = "001_jobs"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# ============================================================
# Constants
# ============================================================
_TABLE = "jobs"
_ALLOWED_STATUSES = ("PENDING", "PROCESSING", "COMPLETED", "FAILED")


def upgrade() -> None:
    """Crea la tabla jobs con su constraint de status."""
    statuses_check = ", ".join(f"'{s}'" for s in _ALLOWED_STATUSES)

    op.execute(
        f"""
        CREATE TABLE {_TABLE} (
            id              TEXT PRIMARY KEY,
            video_name      TEXT NOT NULL,
            status          VARCHAR(20) NOT NULL DEFAULT 'PENDING',
            error_message   TEXT NULL,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT now(),

            CONSTRAINT ck_{_TABLE}_status CHECK (status IN ({statuses_check}))
        )
    """
    )

    op.execute(f"CREATE INDEX ix_{_TABLE}_status ON {_TABLE} (status)")


def downgrade() -> None:
    """Elimina la tabla jobs."""
    op.execute(f"DROP TABLE IF EXISTS {_TABLE} CASCADE")
