"""
Configuration and settings for the club backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings (variables are prefixed with RUNCLUB_)."""

    model_config = SettingsConfigDict(
        env_prefix="RUNCLUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Which storage manager backs the service.
    storage_backend: Literal["memory", "s3", "dynamodb", "sql"] = Field(
        default="memory"
    )

    # AWS (S3 documents and DynamoDB tables)
    aws_region: str = Field(default="ap-northeast-1")
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    s3_bucket: str = Field(default="agrace-run-data")
    s3_endpoint: Optional[str] = Field(default=None)
    dynamodb_table_prefix: str = Field(default="RunningClub")
    dynamodb_endpoint: Optional[str] = Field(default=None)

    # SQL database (Postgres or SQLite)
    database_url: Optional[str] = Field(default=None)

    # Single-document key used by the Lambda handler.
    lambda_data_key: str = Field(default="running-club-data.json")

    retry_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=1.0, ge=0)

    recent_records_limit: int = Field(default=10, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
