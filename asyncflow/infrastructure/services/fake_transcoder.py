"""
Name: Fake Transcoder (Scripted Test Double)

Qué es
------
Implementación determinista de `Transcoder` para tests. Permite guionar
fallas (outcome de error o excepción) para ejercitar requeue, límites de
reintento y redelivery sin depender de tiempos reales.

CRC (Class-Responsibility-Collaboration)
----------------------------------------
Class: FakeTranscoder
Responsibilities:
  - Registrar cada job procesado (calls)
  - Fallar las primeras `fail_times` invocaciones, luego tener éxito
  - Opcionalmente lanzar una excepción en vez de devolver failure
Collaborators:
  - domain.services.Transcoder (contrato)
Constraints:
  - Sin IO / sin sleeps salvo que se pida `delay_seconds`
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from ...domain.entities import Job
from ...domain.services import TranscodeOutcome


class FakeTranscoder:
    def __init__(
        self,
        *,
        fail_times: int = 0,
        raise_error: Optional[Exception] = None,
        delay_seconds: float = 0.0,
    ) -> None:
        if fail_times < 0:
            raise ValueError("fail_times must be >= 0")
        self._remaining_failures = fail_times
        self._raise_error = raise_error
        self._delay_seconds = delay_seconds
        self.calls: List[str] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def fail_forever(self) -> None:
        self._remaining_failures = -1

    async def process(self, job: Job) -> TranscodeOutcome:
        self.calls.append(job.id)
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)

        if self._remaining_failures != 0:
            if self._remaining_failures > 0:
                self._remaining_failures -= 1
            if self._raise_error is not None:
                raise self._raise_error
            return TranscodeOutcome.failure(f"scripted failure for {job.video_name}")

        return TranscodeOutcome.success()
