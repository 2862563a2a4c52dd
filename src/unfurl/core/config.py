"""Configuration models."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeedConfig(BaseModel):
    """Topic feed configuration."""

    topic: str = Field(..., min_length=1)
    url: HttpUrl
    result_limit: int = Field(default=10, gt=0)
    enabled: bool = True


class RetryPolicyConfig(BaseModel):
    """Retry and backoff parameters for transient failures."""

    max_retries: int = Field(default=3, ge=0)
    base_delay_sec: float = Field(default=60.0, gt=0.0)
    max_delay_sec: float = Field(default=3600.0, gt=0.0)
    max_jitter_sec: float = Field(default=10.0, ge=0.0)


class PipelineConfig(BaseModel):
    """Pipeline execution configuration for one run."""

    feed_id: Optional[int] = None
    topic: Optional[str] = None
    limit: Optional[int] = Field(default=None, gt=0)
    skip_collection: bool = False


class Config(BaseSettings):
    """Main application configuration from environment variables."""

    # Database
    db_path: Path = Path("./unfurl.db")

    # Feed definitions
    feeds_file: Path = Path("./config/feeds.yaml")

    # HTTP
    request_timeout_sec: float = Field(default=10.0, gt=0.0)
    connect_timeout_sec: float = Field(default=5.0, gt=0.0)
    max_redirects: int = Field(default=10, ge=1, le=20)
    max_document_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    max_url_length: int = Field(default=2000, gt=0)
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    # Retry policy
    max_retries: int = Field(default=3, ge=0)
    retry_base_delay_sec: float = Field(default=60.0, gt=0.0)
    retry_max_delay_sec: float = Field(default=3600.0, gt=0.0)
    retry_max_jitter_sec: float = Field(default=10.0, ge=0.0)

    # Worker
    worker_concurrency: int = Field(default=4, gt=0)
    claim_ttl_sec: int = Field(default=600, gt=0)
    default_result_limit: int = Field(default=10, gt=0)
    request_delay_sec: float = Field(default=0.0, ge=0.0)

    # RSS export
    site_name: str = "Unfurl"
    site_url: str = "https://example.com/unfurl/"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    log_dir: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def retry_policy(self) -> RetryPolicyConfig:
        """Retry parameters as a standalone model."""
        return RetryPolicyConfig(
            max_retries=self.max_retries,
            base_delay_sec=self.retry_base_delay_sec,
            max_delay_sec=self.retry_max_delay_sec,
            max_jitter_sec=self.retry_max_jitter_sec,
        )

    def validate_paths(self) -> None:
        """Create directories the configuration points at."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)
