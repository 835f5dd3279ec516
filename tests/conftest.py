"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Provide reusable test fixtures (jobs, in-memory store/queue, fakes)
  - Configure test environment (no .env, no real Redis/Postgres)

Collaborators:
  - pytest / pytest-asyncio
  - asyncflow.infrastructure (in-memory doubles)

Notes:
  - Fixtures are auto-discovered by pytest
  - Use @pytest.fixture(scope="function") for per-test isolation
"""

import os
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from asyncflow.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

from asyncflow.application.usecases import ProcessJobUseCase  # noqa: E402
from asyncflow.domain.entities import Job  # noqa: E402
from asyncflow.infrastructure.queue import InMemoryJobQueue  # noqa: E402
from asyncflow.infrastructure.repositories import InMemoryJobStore  # noqa: E402
from asyncflow.infrastructure.services import FakeTranscoder  # noqa: E402
from asyncflow.worker.consumer import JobWorker, WorkerConfig  # noqa: E402

os.environ.setdefault("APP_ENV", "test")


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Tests against real Postgres/Redis (RUN_INTEGRATION=1)"
    )


# ============================================================================
# Domain Fixtures
# ============================================================================


@pytest.fixture
def sample_job() -> Job:
    """R: A freshly submitted job."""
    return Job.create("clip.mp4")


# ============================================================================
# In-memory infrastructure
# ============================================================================


@pytest.fixture
def store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def queue() -> InMemoryJobQueue:
    return InMemoryJobQueue(queue_name="pedidos_video")


@pytest.fixture
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def worker_config() -> WorkerConfig:
    """R: Fast loop: short polls, no backoff."""
    return WorkerConfig(
        poll_timeout_seconds=0.01,
        poll_error_backoff_seconds=0.01,
        heartbeat_interval_seconds=0.05,
    )


@pytest.fixture
def make_worker(store, queue, transcoder, worker_config):
    """R: Factory: JobWorker wired to the in-memory doubles."""

    def _make(*, config: WorkerConfig | None = None, consumer=None, mark_processing=False):
        return JobWorker(
            consumer=consumer or queue.consumer(consumer_id="w1"),
            process_job=ProcessJobUseCase(
                store, transcoder, mark_processing=mark_processing
            ),
            config=config or worker_config,
        )

    return _make
