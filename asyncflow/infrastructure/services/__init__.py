"""
Infrastructure Services (Infrastructure Layer)

Facade/Barrel del paquete `infrastructure.services`: re-exporta los
adapters concretos (transcoders) y las utilidades de resiliencia para que
el container importe desde un único lugar.

CRC (Component Card)
--------------------
Component: infrastructure.services (Facade)
Responsibilities:
  - Publicar los imports canónicos del paquete
Collaborators:
  - container (inyecta dependencias)
Constraints:
  - No contener lógica (solo re-export)
"""

# ---------------------------------------------------------------------------
# Transcoding
# ---------------------------------------------------------------------------
from .fake_transcoder import FakeTranscoder  # noqa: F401
from .simulated_transcoder import SimulatedTranscoder  # noqa: F401

# ---------------------------------------------------------------------------
# Resilience / Retry utilities
# ---------------------------------------------------------------------------
from .retry import (  # noqa: F401
    create_retry_decorator,
    is_transient_error,
    requeue_backoff_seconds,
)

__all__ = [
    # Transcoding
    "FakeTranscoder",
    "SimulatedTranscoder",
    # Resilience / Retry
    "create_retry_decorator",
    "is_transient_error",
    "requeue_backoff_seconds",
]
