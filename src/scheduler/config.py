"""Scheduler configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class SchedulerConfig(BaseSettings):
    """Scheduler configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Admin REST API (serverless functions behind /api)
    api_base_url: str = Field(
        default="http://localhost:8888/api",
        description="Base URL of the school admin REST API",
    )
    api_token: str = Field(
        default="",
        description="Bearer token sent with every API request",
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for a single API request",
    )
    max_retries: int = Field(
        default=3,
        description="Attempts per API call on transient failures",
    )

    # Draft store
    draft_storage_key: str = Field(
        default="schedule_draft_changes",
        description="Key holding the single active schedule draft",
    )
    draft_store_path: str = Field(
        default="data/state/drafts.json",
        description="JSON file backing the local draft store",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "SCHEDULER_",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: SchedulerConfig | None = None


def get_config() -> SchedulerConfig:
    """Get the scheduler configuration singleton.

    Returns:
        SchedulerConfig: Scheduler configuration instance
    """
    global _config
    if _config is None:
        _config = SchedulerConfig()
    return _config
