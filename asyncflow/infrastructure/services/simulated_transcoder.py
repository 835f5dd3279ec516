"""
Name: Simulated Transcoder

Qué es
------
Stand-in de la conversión de video: espera un delay fijo y reporta éxito.
No toca archivos ni llama a ffmpeg; el pipeline (cola, estados, ack) es
lo que se ejercita.

CRC (Component Card)
--------------------
Class: SimulatedTranscoder
Responsibilities:
  - Cumplir el contrato domain.services.Transcoder
  - Simular trabajo largo sin bloquear el event loop (asyncio.sleep)
Collaborators:
  - domain.entities.Job
  - crosscutting.logger
Constraints:
  - delay_seconds >= 0 (0 = instantáneo, útil en dev)
"""

from __future__ import annotations

import asyncio

from ...crosscutting.logger import logger
from ...domain.entities import Job
from ...domain.services import TranscodeOutcome


class SimulatedTranscoder:
    """Transcoder que sólo duerme `delay_seconds`."""

    def __init__(self, delay_seconds: float = 5.0) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self._delay_seconds = float(delay_seconds)

    @property
    def delay_seconds(self) -> float:
        return self._delay_seconds

    async def process(self, job: Job) -> TranscodeOutcome:
        logger.info(
            "Transcoding video",
            extra={
                "job_id": job.id,
                "video_name": job.video_name,
                "delay_seconds": self._delay_seconds,
            },
        )
        await asyncio.sleep(self._delay_seconds)
        return TranscodeOutcome.success(f"converted {job.video_name}")
