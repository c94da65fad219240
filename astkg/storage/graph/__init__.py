"""
ASTKG Graph Storage
===================

Code graph storage on FalkorDB (Cypher-compatible).

Components:
- FalkorDBClient: async FalkorDB client
- FalkorDBConfig: connection settings

Example:
    from astkg.storage.graph import FalkorDBClient, FalkorDBConfig

    config = FalkorDBConfig(host="localhost", port=6380, graph_name="astkg")
    client = FalkorDBClient(config)
    await client.connect()
"""

from astkg.storage.graph.client import FalkorDBClient, FalkorDBConfig

__all__ = [
    "FalkorDBClient",
    "FalkorDBConfig",
]
