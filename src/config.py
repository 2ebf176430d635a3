from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    anthropic_api_key: str = ""

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    llm_model: str = "claude-sonnet-4-20250514"

    # Summarization
    chunk_size: int = Field(default=8000, gt=0)
    map_concurrency: int = Field(default=4, ge=0)  # 0 = unbounded fan-out
    map_max_tokens: int = 1024
    reduce_max_tokens: int = 8192

    # Job registry
    job_result_ttl_seconds: float = 300.0
    job_unclaimed_ttl_seconds: float | None = 3600.0
    poll_interval_seconds: int = 5

    # Document source
    http_timeout_seconds: float = 30.0
    hansard_default_url: str = (
        "https://www.ourcommons.ca/Content/House/451/Debates/021/HAN021-E.XML"
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
