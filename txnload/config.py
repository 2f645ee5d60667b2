"""
Configuration settings for the txnload harness.

Uses Pydantic Settings to load environment variables for the database
connection, the workload shape, the retry policy and logging. Settings are
built once at process entry and passed down explicitly; core modules never
read the environment themselves.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseSettings):
    # Database
    database_url: str = Field("", alias="DATABASE_URL")
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("txnload", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(0, alias="DB_STATEMENT_TIMEOUT_MS")
    db_txn_retries: int = Field(3, alias="DB_TXN_RETRIES")

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Workload
    table_name: str = Field("test", alias="LOADGEN_TABLE")
    timezone: str = Field("Asia/Tokyo", alias="LOADGEN_TIMEZONE")
    mode: str = Field("each", alias="LOADGEN_MODE")
    batch_size: int = Field(10_000_000, alias="LOADGEN_BATCH_SIZE")
    log_every: int = Field(10_000, alias="LOADGEN_LOG_EVERY")
    max_records: Optional[int] = Field(None, alias="LOADGEN_MAX_RECORDS")
    run_seconds: Optional[float] = Field(None, alias="LOADGEN_RUN_SECONDS")
    continue_on_error: bool = Field(True, alias="LOADGEN_CONTINUE_ON_ERROR")

    # Retry policy for per-record transactions (unset = retry forever)
    retry_max_attempts: Optional[int] = Field(None, alias="RETRY_MAX_ATTEMPTS")
    retry_backoff_seconds: float = Field(0.0, alias="RETRY_BACKOFF_SECONDS")
    retry_backoff_max_seconds: float = Field(10.0, alias="RETRY_BACKOFF_MAX_SECONDS")
    retry_jitter_seconds: float = Field(0.0, alias="RETRY_JITTER_SECONDS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("table_name")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        # Interpolated into SQL, so keep it to a plain identifier.
        if not IDENTIFIER_RE.fullmatch(value):
            raise ValueError(f"invalid table name {value!r}")
        return value

    @field_validator("batch_size", "log_every")
    @classmethod
    def _check_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be > 0")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
