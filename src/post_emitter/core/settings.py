"""Application settings and configuration.

This module defines all configuration options for the Post Emitter service.
Settings are loaded from ``POST_EMITTER_*`` environment variables (or a
``.env`` file) with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every option can be overridden via ``POST_EMITTER_<NAME>`` environment
    variables or a ``.env`` file at the project root.
    """

    # Application metadata
    app_name: str = Field(default="Post Emitter")
    app_version: str = Field(default="2.0.0")
    debug: bool = Field(default=False)

    # Database configuration
    database_url: str = Field(default="sqlite:///./post_emitter.db")
    sql_debug: bool = Field(default=False)

    # Credential vault
    installation_secret: str | None = Field(default=None)
    credential_encryption: Literal["auto", "off"] = Field(default="auto")

    # Durable queue and processing cadence
    queue_batch_size: int = Field(default=10, ge=1)
    queue_process_interval_seconds: float = Field(default=60.0, gt=0)
    queue_retention_days: int = Field(default=7, ge=0)
    queue_claim_timeout_seconds: int = Field(default=600, ge=1)
    cleanup_interval_seconds: float = Field(default=3600.0, gt=0)
    worker_enabled: bool = Field(default=True)

    # Delivery client
    delivery_timeout_seconds: float = Field(default=30.0, gt=0)
    delivery_test_timeout_seconds: float = Field(default=15.0, gt=0)
    delivery_max_attempts: int = Field(default=3, ge=1)
    delivery_backoff_base_seconds: float = Field(default=2.0, ge=0)
    receiver_api_prefix: str = Field(default="wp-json/post-receptor/v1")

    # Receiver registry
    receivers_cache_ttl_seconds: float = Field(default=900.0, ge=0)
    resolve_receiver_hosts: bool = Field(default=True)

    # Reports and logs
    report_notification_ttl_seconds: int = Field(default=12 * 60 * 60, ge=1)
    log_retention_days: int = Field(default=30, ge=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    # Translation of post fields before delivery
    origin_language: str = Field(default="pt_BR")
    target_language: str | None = Field(default=None)
    openai_api_key: str | None = Field(default=None)
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    translation_model: str = Field(default="gpt-4o-mini")
    translation_timeout_seconds: float = Field(default=20.0, gt=0)
    translation_max_attempts: int = Field(default=3, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="POST_EMITTER_",
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def user_agent(self) -> str:
        """Identifying User-Agent sent to receivers."""
        return f"Post-Emitter/{self.app_version}"

    @property
    def translation_enabled(self) -> bool:
        """Return True when a translation backend is configured."""
        return bool(self.openai_api_key and self.target_language)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the settings used by the running application."""
    return Settings()
