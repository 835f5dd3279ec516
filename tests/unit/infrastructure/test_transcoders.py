"""
Name: Transcoder Adapters Unit Tests

Responsibilities:
  - Verify SimulatedTranscoder waits the configured delay and succeeds
  - Verify FakeTranscoder scripted failures
"""

from unittest.mock import AsyncMock, patch

import pytest

from asyncflow.domain.entities import Job
from asyncflow.infrastructure.services import FakeTranscoder, SimulatedTranscoder

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_simulated_transcoder_sleeps_then_succeeds():
    job = Job.create("clip.mp4")
    with patch(
        "asyncflow.infrastructure.services.simulated_transcoder.asyncio.sleep",
        new=AsyncMock(),
    ) as sleep:
        outcome = await SimulatedTranscoder(delay_seconds=5).process(job)

    sleep.assert_awaited_once_with(5.0)
    assert outcome.ok is True


def test_simulated_transcoder_rejects_negative_delay():
    with pytest.raises(ValueError):
        SimulatedTranscoder(delay_seconds=-1)


@pytest.mark.asyncio
async def test_fake_transcoder_fails_then_recovers():
    job = Job.create("clip.mp4")
    transcoder = FakeTranscoder(fail_times=1)

    first = await transcoder.process(job)
    second = await transcoder.process(job)

    assert first.ok is False
    assert second.ok is True
    assert transcoder.call_count == 2


@pytest.mark.asyncio
async def test_fake_transcoder_raises_when_scripted():
    transcoder = FakeTranscoder(fail_times=1, raise_error=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        await transcoder.process(Job.create("clip.mp4"))
