"""
Name: Job Entity Unit Tests

Responsibilities:
  - Verify Job.create defaults (PENDING, unique id, timestamps)
  - Verify monotonic status transitions (can_transition)
  - Verify error message truncation

Collaborators:
  - asyncflow.domain.entities
"""

import pytest

from asyncflow.domain.entities import (
    MAX_ERROR_MESSAGE_LEN,
    Job,
    JobStatus,
    can_transition,
    truncate_error,
)

pytestmark = pytest.mark.unit


def test_create_job_starts_pending_with_fresh_id():
    job = Job.create("clip.mp4")

    assert job.status == JobStatus.PENDING
    assert job.video_name == "clip.mp4"
    assert job.error_message is None
    assert job.created_at is not None
    assert job.created_at == job.updated_at
    assert len(job.id) == 32


def test_create_job_ids_are_unique():
    ids = {Job.create("x").id for _ in range(200)}

    assert len(ids) == 200


@pytest.mark.parametrize(
    "current,target",
    [
        (JobStatus.PENDING, JobStatus.PROCESSING),
        (JobStatus.PENDING, JobStatus.COMPLETED),
        (JobStatus.PENDING, JobStatus.FAILED),
        (JobStatus.PROCESSING, JobStatus.COMPLETED),
        (JobStatus.PROCESSING, JobStatus.FAILED),
    ],
)
def test_forward_transitions_are_allowed(current, target):
    assert can_transition(current, target) is True


@pytest.mark.parametrize(
    "current,target",
    [
        (JobStatus.COMPLETED, JobStatus.PENDING),
        (JobStatus.COMPLETED, JobStatus.PROCESSING),
        (JobStatus.COMPLETED, JobStatus.FAILED),
        (JobStatus.FAILED, JobStatus.COMPLETED),
        (JobStatus.PROCESSING, JobStatus.PENDING),
    ],
)
def test_backward_transitions_are_rejected(current, target):
    assert can_transition(current, target) is False


def test_terminal_statuses():
    assert JobStatus.COMPLETED.is_terminal
    assert JobStatus.FAILED.is_terminal
    assert not JobStatus.PENDING.is_terminal
    assert not JobStatus.PROCESSING.is_terminal


def test_truncate_error_limits_length():
    long_message = "x" * (MAX_ERROR_MESSAGE_LEN + 100)

    truncated = truncate_error(long_message)

    assert len(truncated) == MAX_ERROR_MESSAGE_LEN
    assert truncated.endswith("...")


def test_truncate_error_handles_none():
    assert truncate_error(None) == ""
