"""
Environment Configuration
=========================

Keeps test and prod data apart: each environment has its own graph and
its own Qdrant collections.

Usage:
    from astkg.config import get_environment_config, TEST_ENV, PROD_ENV

    config = get_environment_config(TEST_ENV)
    print(config.falkordb_graph)     # "astkg_test"
    print(config.method_collection)  # "astkg_test_methods"

    set_current_environment(PROD_ENV)
    print(get_current_environment().name)  # "prod"
"""

import os
from dataclasses import dataclass
from enum import Enum


class Environment(Enum):
    """Available environments."""
    TEST = "test"
    PROD = "prod"


TEST_ENV = Environment.TEST
PROD_ENV = Environment.PROD


@dataclass(frozen=True)
class EnvironmentConfig:
    """
    Storage names for one environment.

    Attributes:
        name: Environment name ("test" or "prod")
        falkordb_graph: FalkorDB graph name
        class_collection: Qdrant collection for class vectors
        method_collection: Qdrant collection for method vectors
        description: Human-readable description
    """
    name: str
    falkordb_graph: str
    class_collection: str
    method_collection: str
    description: str


_ENVIRONMENTS = {
    Environment.TEST: EnvironmentConfig(
        name="test",
        falkordb_graph="astkg_test",
        class_collection="astkg_test_classes",
        method_collection="astkg_test_methods",
        description="Scratch graph for local runs and experiments",
    ),
    Environment.PROD: EnvironmentConfig(
        name="prod",
        falkordb_graph="astkg_prod",
        class_collection="classes",
        method_collection="methods",
        description="Graph serving real queries",
    ),
}

# Test by default so a misconfigured run never writes into prod
_current_environment: Environment = Environment.TEST


def get_environment_config(env: Environment) -> EnvironmentConfig:
    return _ENVIRONMENTS[env]


def get_current_environment() -> EnvironmentConfig:
    """
    Configuration of the active environment.

    ``ASTKG_ENV=prod|test`` takes precedence over ``set_current_environment()``.
    """
    env_var = os.environ.get("ASTKG_ENV", "").lower()
    if env_var == "prod":
        return _ENVIRONMENTS[Environment.PROD]
    elif env_var == "test":
        return _ENVIRONMENTS[Environment.TEST]

    return _ENVIRONMENTS[_current_environment]


def set_current_environment(env: Environment) -> None:
    global _current_environment
    _current_environment = env


def get_all_environments() -> dict:
    return _ENVIRONMENTS.copy()
