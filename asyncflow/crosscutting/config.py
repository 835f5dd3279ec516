"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide local-development defaults for broker, database and HTTP port

Collaborators:
  - api/main.py: reads settings for the lifespan (resources, port)
  - container.py: opens Redis + DB pool from these values
  - worker/worker.py: reads queue and retry knobs

Constraints:
  - Lives in infrastructure/crosscutting layer, NOT in domain/application
  - No business logic — pure configuration

Notes:
  - Uses pydantic-settings for env parsing and validation
  - Singleton via lru_cache
  - DATABASE_URL, when set, wins over the POSTGRES_* parts
"""

from functools import lru_cache
from urllib.parse import quote

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_QUEUE_NAME = "pedidos_video"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        redis_url: Broker connection string (default: local Redis)
        postgres_host/port/db/user/password: Storage connection parameters
        database_url: Full connection string override (optional)
        port: HTTP listen port for the API (default: 3000)
        queue_name: Durable work queue shared by API and worker
        queue_prefetch: Max unacked deliveries per worker (default: 1)
        queue_dead_letter_enabled: Keep dropped payloads in a dead-letter list
        queue_heartbeat_ttl_seconds: Consumer liveness window for orphan recovery
        worker_poll_timeout_seconds: Blocking wait per poll before an empty delivery
        worker_max_delivery_attempts: 0 = requeue forever (base policy)
        worker_requeue_backoff_base_seconds: 0 = immediate requeue
        transcode_delay_seconds: Duration of the simulated conversion
        retry_*: tenacity policy for transient storage errors
    """

    # Environment
    app_env: str = "development"

    # Broker
    redis_url: str = "redis://localhost:6379/0"

    # Storage
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "asyncflow"
    postgres_user: str = "user"
    postgres_password: str = "password"
    database_url: str = ""

    # Database - Connection Pool
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000  # 30 seconds

    # HTTP
    port: int = 3000
    allowed_origins: str = "http://localhost:3000"

    # Queue
    queue_name: str = DEFAULT_QUEUE_NAME
    queue_prefetch: int = 1
    queue_dead_letter_enabled: bool = False
    queue_heartbeat_ttl_seconds: int = 30

    # Worker
    worker_consumer_id: str = ""
    worker_http_port: int = 8001
    worker_poll_timeout_seconds: float = 5.0
    worker_poll_error_backoff_seconds: float = 2.0
    worker_mark_processing: bool = False
    worker_max_delivery_attempts: int = 0
    worker_requeue_backoff_base_seconds: float = 0.0
    worker_requeue_backoff_max_seconds: float = 60.0

    # Transcoding (simulated)
    transcode_delay_seconds: float = 5.0

    # Retry/Resilience
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 0.5
    retry_max_delay_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("queue_prefetch")
    @classmethod
    def queue_prefetch_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("queue_prefetch must be >= 1")
        return v

    @field_validator("queue_name")
    @classmethod
    def queue_name_not_blank(cls, v: str) -> str:
        name = (v or "").strip()
        if not name:
            raise ValueError("queue_name must not be empty")
        return name

    @field_validator(
        "worker_max_delivery_attempts",
        "worker_requeue_backoff_base_seconds",
        "worker_requeue_backoff_max_seconds",
        "transcode_delay_seconds",
    )
    @classmethod
    def must_be_non_negative(cls, v):
        if v < 0:
            raise ValueError("value must be >= 0")
        return v

    @field_validator("retry_max_attempts")
    @classmethod
    def retry_attempts_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("retry_max_attempts must be greater than 0")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_valid(cls, v: str) -> str:
        level = (v or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be DEBUG, INFO, WARNING, ERROR or CRITICAL")
        return level

    def get_database_url(self) -> str:
        """Connection string for psycopg (override or built from the parts)."""
        if self.database_url.strip():
            return self.database_url.strip()
        user = quote(self.postgres_user, safe="")
        password = quote(self.postgres_password, safe="")
        return (
            f"postgresql://{user}:{password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    def get_allowed_origins_list(self) -> list[str]:
        """Parse comma-separated origins into a list."""
        return [
            origin.strip()
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()
