"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .extraction import ExtractionConfig, get_extraction_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .pipeline import PipelineConfig, get_pipeline_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "ExtractionConfig",
    "MissingConfigurationError",
    "PipelineConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "get_database_config",
    "get_extraction_config",
    "get_pipeline_config",
    "get_storage_config",
    "optional_env_int",
    "require_env_vars",
]
