"""Application configuration schema and validation."""

from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """PostgreSQL connection settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    pg_host: str = Field(
        ...,
        min_length=1,
        description="Database server host",
    )
    pg_port: int = Field(
        ...,
        gt=0,
        description="Database server port",
    )
    pg_database: str = Field(
        ...,
        min_length=1,
        description="Database name",
    )
    pg_user: str = Field(
        ...,
        min_length=1,
        description="Database user",
    )
    pg_password: Optional[SecretStr] = Field(
        default=None,
        description="Database password",
    )
    pg_ssl: bool = Field(
        default=False,
        description="Require TLS for database connections",
    )
    pg_pool_min: int = Field(
        default=0,
        ge=0,
        description="Minimum number of pooled connections",
    )
    pg_pool_max: int = Field(
        default=1,
        gt=0,
        description="Maximum number of pooled connections",
    )
    pg_conn_timeout_ms: int = Field(
        default=5000,
        gt=0,
        description="How long to wait for a connection from the pool (ms)",
    )
    pg_idle_timeout_ms: int = Field(
        default=30000,
        gt=0,
        description="Idle time after which a pooled connection is closed (ms)",
    )
    pg_statement_timeout_ms: int = Field(
        default=30000,
        gt=0,
        description="Server-side statement_timeout (ms)",
    )
    pg_query_timeout_ms: int = Field(
        default=30000,
        gt=0,
        description="Client-side wait for a query result (ms)",
    )
    app_name: str = Field(
        default="node-app",
        description="application_name reported to the server",
    )

    @field_validator("pg_pool_max")
    @classmethod
    def validate_pool_max(cls, v: int, info) -> int:
        """Ensure pool_max >= pool_min."""
        if "pg_pool_min" in info.data and v < info.data["pg_pool_min"]:
            raise ValueError("pg_pool_max must be >= pg_pool_min")
        return v


class LogConfig(BaseSettings):
    """Logging settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    app_env: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment",
    )
    log_level: Optional[str] = Field(
        default=None,
        description="Logging level (INFO in production, DEBUG otherwise)",
    )
    log_dir: str = Field(
        default="logs",
        description="Directory for rotated log files",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: Optional[str]) -> Optional[str]:
        """Normalize and check the level name."""
        if v is None:
            return v
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return "WARNING" if level == "WARN" else level

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def level(self) -> str:
        if self.log_level:
            return self.log_level
        return "INFO" if self.is_production else "DEBUG"


_config: DatabaseConfig | None = None
_log_config: LogConfig | None = None


def get_config() -> DatabaseConfig:
    """Get or create the singleton DatabaseConfig instance."""
    global _config
    if _config is None:
        _config = DatabaseConfig()
    return _config


def get_log_config() -> LogConfig:
    """Get or create the singleton LogConfig instance."""
    global _log_config
    if _log_config is None:
        _log_config = LogConfig()
    return _log_config
