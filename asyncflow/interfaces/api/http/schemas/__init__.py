"""Schemas HTTP (DTOs de request/response)."""

from .jobs import ConvertAcceptedRes, ConvertReq, JobStatusRes

__all__ = ["ConvertAcceptedRes", "ConvertReq", "JobStatusRes"]
