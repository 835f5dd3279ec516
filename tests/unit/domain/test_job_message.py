"""
Name: Queue Message Contract Tests

Responsibilities:
  - Verify the wire shape {"id", "videoName", "status"}
  - Verify decode rejects unusable payloads with MalformedMessageError

Collaborators:
  - asyncflow.domain.messages
"""

import json

import pytest

from asyncflow.domain.entities import Job
from asyncflow.domain.messages import (
    JobMessage,
    MalformedMessageError,
    decode_job_message,
    encode_job_message,
)

pytestmark = pytest.mark.unit


def test_encode_uses_camel_case_wire_keys():
    job = Job.create("clip.mp4")

    body = encode_job_message(JobMessage.from_job(job))

    assert json.loads(body) == {
        "id": job.id,
        "videoName": "clip.mp4",
        "status": "PENDING",
    }


def test_decode_reads_published_payload():
    body = b'{"id":"abc","videoName":"a.mp4","status":"PENDING"}'

    message = decode_job_message(body)

    assert message == JobMessage(id="abc", video_name="a.mp4", status="PENDING")


def test_decode_only_requires_id():
    message = decode_job_message('{"id": "abc"}')

    assert message.id == "abc"
    assert message.video_name == ""
    assert message.status == "PENDING"


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"\xff\xfe",
        b"[1, 2]",
        b'"just a string"',
        b"{}",
        b'{"id": ""}',
        b'{"id": 42}',
    ],
)
def test_decode_rejects_malformed_payloads(body):
    with pytest.raises(MalformedMessageError):
        decode_job_message(body)
