"""
FalkorDB Configuration
======================

Connection settings for the FalkorDB graph that stores the code graph.

All fields can be overridden through environment variables, so the same
code runs against a local container and a shared deployment.

Usage:
    from astkg.storage.graph import FalkorDBConfig

    # Defaults (env vars or built-in values)
    config = FalkorDBConfig()

    # Explicit override
    config = FalkorDBConfig(host="localhost", port=6380, graph_name="astkg_prod")

Environment Variables:
    FALKORDB_HOST: Server host (default: localhost)
    FALKORDB_PORT: Server port (default: 6380)
    FALKORDB_GRAPH_NAME: Graph name (default: astkg_dev)
    FALKORDB_PASSWORD: Password (default: empty)
    FALKORDB_MAX_CONNECTIONS: Max pool connections (default: 10)
    FALKORDB_TIMEOUT_MS: Operation timeout in ms (default: 5000)
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _get_env_str(key: str, default: str) -> str:
    """Read an environment variable as a string."""
    return os.environ.get(key, default)


def _get_env_int(key: str, default: int) -> int:
    """Read an environment variable as an integer."""
    return int(os.environ.get(key, default))


@dataclass
class FalkorDBConfig:
    """
    FalkorDB connection settings.

    Attributes:
        host: FalkorDB server host
        port: Server port (6380 for the FalkorDB container)
        graph_name: Graph name (use _dev/_prod suffixes per environment)
        max_connections: Max connections in the pool
        timeout_ms: Operation timeout in milliseconds
        password: Optional authentication password
    """
    host: str = field(default_factory=lambda: _get_env_str("FALKORDB_HOST", "localhost"))
    port: int = field(default_factory=lambda: _get_env_int("FALKORDB_PORT", 6380))
    graph_name: str = field(default_factory=lambda: _get_env_str("FALKORDB_GRAPH_NAME", "astkg_dev"))
    max_connections: int = field(default_factory=lambda: _get_env_int("FALKORDB_MAX_CONNECTIONS", 10))
    timeout_ms: int = field(default_factory=lambda: _get_env_int("FALKORDB_TIMEOUT_MS", 5000))
    password: Optional[str] = field(default_factory=lambda: _get_env_str("FALKORDB_PASSWORD", "") or None)
