"""
===============================================================================
TARJETA CRC — domain/messages.py (Contrato del mensaje de cola)
===============================================================================

Responsabilidades:
    - Definir el snapshot del Job que viaja por la cola:
        {"id": str, "videoName": str, "status": "PENDING"}
    - Serializar (JSON UTF-8) y parsear con validación estricta.
    - Señalar payloads ilegibles con MalformedMessageError.

Colaboradores:
    - application.usecases.submit_job: publica JobMessage.from_job(job)
    - worker.consumer: decode_job_message(delivery.body)

Notas:
    - El mensaje NO se sincroniza con el storage: el worker solo confía en `id`.
===============================================================================
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from .entities import Job, JobStatus


class MalformedMessageError(ValueError):
    """Payload de cola que no se puede interpretar como JobMessage."""


@dataclass(frozen=True)
class JobMessage:
    id: str
    video_name: str
    status: str = JobStatus.PENDING.value

    @classmethod
    def from_job(cls, job: Job) -> "JobMessage":
        return cls(id=job.id, video_name=job.video_name, status=job.status.value)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "videoName": self.video_name, "status": self.status}


def encode_job_message(message: JobMessage) -> bytes:
    return json.dumps(message.to_dict(), separators=(",", ":")).encode("utf-8")


def decode_job_message(body: bytes | str) -> JobMessage:
    """
    Parsea el payload de una delivery.

    Raises:
        MalformedMessageError: JSON inválido, no-objeto o sin `id` utilizable.
    """
    try:
        raw = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedMessageError(f"payload no es JSON válido: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedMessageError("payload debe ser un objeto JSON")

    job_id = data.get("id")
    if not isinstance(job_id, str) or not job_id.strip():
        raise MalformedMessageError("payload sin 'id' válido")

    video_name = data.get("videoName")
    status = data.get("status")

    return JobMessage(
        id=job_id.strip(),
        video_name=video_name if isinstance(video_name, str) else "",
        status=status if isinstance(status, str) else JobStatus.PENDING.value,
    )
