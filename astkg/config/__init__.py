"""
Configuration module for ASTKG.
"""

from .environments import (
    EnvironmentConfig,
    Environment,
    get_environment_config,
    get_current_environment,
    set_current_environment,
    TEST_ENV,
    PROD_ENV,
)
from .settings import AstkgConfig, EmbeddingConfig, IngestionConfig

__all__ = [
    "AstkgConfig",
    "EmbeddingConfig",
    "IngestionConfig",
    "EnvironmentConfig",
    "Environment",
    "get_environment_config",
    "get_current_environment",
    "set_current_environment",
    "TEST_ENV",
    "PROD_ENV",
]
