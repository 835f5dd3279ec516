"""
===============================================================================
TARJETA CRC — asyncflow/context.py (Contexto por request / delivery)
===============================================================================

Responsabilidades:
  - Mantener contexto “request-scoped” usando ContextVars (async-safe).
  - Correlacionar logs del API (request_id) y del worker (job_id + consumer).
  - Proveer helpers mínimos: set_*(), get_context_dict(), clear_context().

Colaboradores:
  - asyncflow.crosscutting.middleware: setea request_id/method/path por request.
  - asyncflow.crosscutting.logger: enriquece logs leyendo get_context_dict().
  - asyncflow.worker.consumer: setea job_id/consumer por delivery y limpia al final.

Restricciones:
  - Solo tipos primitivos (str) para serialización segura.
  - Defaults vacíos ("") para evitar None y simplificar JSON.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Final

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
http_method_var: ContextVar[str] = ContextVar("http_method", default="")
http_path_var: ContextVar[str] = ContextVar("http_path", default="")

# Worker: job en curso y consumidor que lo tiene en vuelo.
job_id_var: ContextVar[str] = ContextVar("job_id", default="")
consumer_id_var: ContextVar[str] = ContextVar("consumer_id", default="")

_CTX_REQUEST_ID: Final[str] = "request_id"
_CTX_METHOD: Final[str] = "method"
_CTX_PATH: Final[str] = "path"
_CTX_JOB_ID: Final[str] = "job_id"
_CTX_CONSUMER: Final[str] = "consumer_id"


def set_request_context(
    *, request_id: str = "", method: str = "", path: str = ""
) -> None:
    """
    Setea el contexto mínimo del request.

    Regla:
      - Strings vacíos significan “no disponible”.
    """
    request_id_var.set(request_id or "")
    http_method_var.set(method or "")
    http_path_var.set(path or "")


def set_delivery_context(*, job_id: str = "", consumer_id: str = "") -> None:
    """Setea el contexto de la delivery que procesa el worker."""
    job_id_var.set(job_id or "")
    consumer_id_var.set(consumer_id or "")


def get_context_dict() -> dict[str, str]:
    """
    Devuelve el contexto actual como dict, omitiendo claves vacías.
    """
    ctx: dict[str, str] = {}

    if val := request_id_var.get():
        ctx[_CTX_REQUEST_ID] = val
    if val := http_method_var.get():
        ctx[_CTX_METHOD] = val
    if val := http_path_var.get():
        ctx[_CTX_PATH] = val
    if val := job_id_var.get():
        ctx[_CTX_JOB_ID] = val
    if val := consumer_id_var.get():
        ctx[_CTX_CONSUMER] = val

    return ctx


def clear_context() -> None:
    """
    Limpia el contexto al final del request/delivery.

    Importante:
      - Evita “filtración de contexto” entre deliveries del mismo loop.
    """
    request_id_var.set("")
    http_method_var.set("")
    http_path_var.set("")
    job_id_var.set("")
    consumer_id_var.set("")
