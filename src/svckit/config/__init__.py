"""Environment-backed configuration."""

from svckit.config.settings import DatabaseConfig, LogConfig, get_config, get_log_config

__all__ = ["DatabaseConfig", "LogConfig", "get_config", "get_log_config"]
