"""
Name: Observability Helpers Unit Tests

Responsibilities:
  - Verify JSON log formatting (context enrichment, redaction, bytes)
  - Verify metric label normalization
  - Verify the error payload shape {"error", "code"}
"""

import json
import logging

import pytest

from asyncflow.context import clear_context, set_delivery_context
from asyncflow.crosscutting.error_responses import ErrorCode, error_response
from asyncflow.crosscutting.logger import JSONFormatter
from asyncflow.crosscutting.metrics import (
    _normalize_endpoint,
    _status_bucket,
    get_metrics_response,
    record_worker_outcome,
)

pytestmark = pytest.mark.unit


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="asyncflow", level=logging.INFO, pathname=__file__, lineno=1,
        msg="hello", args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_delivery_context():
    set_delivery_context(job_id="abc", consumer_id="w1")
    try:
        payload = json.loads(JSONFormatter().format(_record()))
    finally:
        clear_context()

    assert payload["message"] == "hello"
    assert payload["job_id"] == "abc"
    assert payload["consumer_id"] == "w1"


def test_json_formatter_redacts_and_summarizes():
    payload = json.loads(
        JSONFormatter().format(_record(database_url="postgresql://u:p@h/db", body=b"\x00" * 10))
    )

    assert payload["database_url"] == "***REDACTADO***"
    assert payload["body"] == "<bytes 10B>"


@pytest.mark.parametrize(
    "path,expected",
    [
        ("/jobs/0123456789abcdef0123456789abcdef", "/jobs/{id}"),
        ("/convert", "/convert"),
        ("/healthz", "/healthz"),
    ],
)
def test_normalize_endpoint(path, expected):
    assert _normalize_endpoint(path) == expected


@pytest.mark.parametrize(
    "code,bucket", [(202, "2xx"), (404, "4xx"), (503, "5xx"), (301, "other")]
)
def test_status_bucket(code, bucket):
    assert _status_bucket(code) == bucket


def test_worker_outcomes_are_exported():
    record_worker_outcome("ACKED")

    body, content_type = get_metrics_response()

    assert b'asyncflow_worker_processed_total{outcome="ACKED"}' in body
    assert content_type.startswith("text/plain")


def test_error_response_shape():
    response = error_response(400, ErrorCode.VALIDATION_ERROR, "videoName is required")

    assert response.status_code == 400
    assert json.loads(response.body) == {
        "error": "videoName is required",
        "code": "VALIDATION_ERROR",
    }
