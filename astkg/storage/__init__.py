"""
Storage Layer
=============

Graph storage (FalkorDB), vector storage (Qdrant + embeddings) and the
in-memory entity registry built on top of the graph.

    AST snapshot -> [FalkorDB] code graph -> EntityRegistry
                         |
                         v
                    [Qdrant] class/method vectors -> SimilaritySearch
"""

from astkg.storage.graph import FalkorDBClient, FalkorDBConfig
from astkg.storage.registry import EntityRegistry
from astkg.storage.vectors import EmbeddingService, QdrantConfig, SimilaritySearch

__all__ = [
    # FalkorDB
    "FalkorDBClient",
    "FalkorDBConfig",
    # Registry
    "EntityRegistry",
    # Vectors
    "EmbeddingService",
    "QdrantConfig",
    "SimilaritySearch",
]
