"""
Configuration and settings for the portfolio backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from portfolio.uploads import DEFAULT_MAX_UPLOAD_BYTES


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development", alias="PORTFOLIO_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: list[str] = Field(
        default=["http://localhost:5000", "http://localhost:5173"],
        alias="CORS_ORIGINS",
    )

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="PORTFOLIO_USE_IN_MEMORY_BACKENDS"
    )
    seed_sample_data: bool = Field(default=False, alias="PORTFOLIO_SEED_SAMPLE_DATA")
    dev_auth_bypass: bool = Field(default=False, alias="PORTFOLIO_DEV_AUTH_BYPASS")

    # Uploads: local directory unless an S3-compatible bucket is configured
    upload_dir: str = Field(default="uploads", alias="UPLOAD_DIR")
    upload_url_prefix: str = Field(default="/uploads", alias="UPLOAD_URL_PREFIX")
    max_upload_bytes: int = Field(
        default=DEFAULT_MAX_UPLOAD_BYTES, alias="MAX_UPLOAD_BYTES"
    )
    s3_bucket: Optional[str] = Field(default=None, alias="S3_BUCKET")
    s3_region: Optional[str] = Field(default=None, alias="S3_REGION")
    s3_endpoint: Optional[str] = Field(default=None, alias="S3_ENDPOINT")
    s3_public_base_url: Optional[str] = Field(default=None, alias="S3_PUBLIC_BASE_URL")
    aws_access_key_id: Optional[str] = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )

    # Sessions
    session_cookie_name: str = Field(default="portfolio_sid", alias="SESSION_COOKIE_NAME")
    session_ttl_seconds: int = Field(
        default=7 * 24 * 3600, alias="SESSION_TTL_SECONDS"
    )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def dev_bypass_active(self) -> bool:
        return self.dev_auth_bypass and self.is_development

    @property
    def logged_out_cookie_name(self) -> str:
        # Set by /logout while the development bypass is on, cleared by /login.
        return f"{self.session_cookie_name}_logged_out"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
