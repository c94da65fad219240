"""
ASTKG Vector Storage
====================

Embeddings (E5 via sentence-transformers) and similarity search on Qdrant.

Components:
- EmbeddingService: query/document embeddings
- QdrantConfig: vector store settings
- SimilaritySearch: scoped-client nearest-neighbour search

Example:
    from astkg.storage.vectors import EmbeddingService

    service = EmbeddingService.get_instance()
    query_vector = service.encode_query("where are payments refunded?")
"""

from astkg.storage.vectors.config import QdrantConfig
from astkg.storage.vectors.embeddings import EmbeddingService
from astkg.storage.vectors.similarity import SimilaritySearch

__all__ = [
    "EmbeddingService",
    "QdrantConfig",
    "SimilaritySearch",
]
