"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la Capa de Dominio (API pública del dominio)

Responsabilidades:
    - Centralizar exports para imports limpios en application/worker/interfaces.
    - Mantener estable el “surface area” del dominio.

Reglas:
    - Solo re-exporta contratos/entidades del dominio.
    - No importar infraestructura aquí.
===============================================================================
"""

from .entities import Job, JobStatus, can_transition
from .messages import (
    JobMessage,
    MalformedMessageError,
    decode_job_message,
    encode_job_message,
)
from .repositories import JobStatusStore
from .services import (
    JobConsumer,
    JobQueue,
    QueueDelivery,
    TranscodeOutcome,
    Transcoder,
)

__all__ = [
    # Entities
    "Job",
    "JobStatus",
    "can_transition",
    # Messages
    "JobMessage",
    "MalformedMessageError",
    "decode_job_message",
    "encode_job_message",
    # Ports
    "JobStatusStore",
    "JobQueue",
    "JobConsumer",
    "QueueDelivery",
    "TranscodeOutcome",
    "Transcoder",
]
