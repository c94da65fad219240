"""
Qdrant Configuration
====================

Connection settings for the Qdrant vector store holding class and method
embeddings. One collection per entity kind.

Environment Variables:
    QDRANT_HOST: Server host (default: localhost)
    QDRANT_PORT: Server port (default: 6333)
    QDRANT_CLASS_COLLECTION: Collection for class vectors (default: classes)
    QDRANT_METHOD_COLLECTION: Collection for method vectors (default: methods)
    QDRANT_VECTOR_SIZE: Embedding dimension (default: 1024)
"""

import os
from dataclasses import dataclass, field

from astkg.models import EntityKind


def _get_env_str(key: str, default: str) -> str:
    return os.environ.get(key, default)


def _get_env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


@dataclass
class QdrantConfig:
    """
    Qdrant connection settings.

    Attributes:
        host: Qdrant server host
        port: Qdrant REST port
        class_collection: Collection name for class vectors
        method_collection: Collection name for method vectors
        vector_size: Embedding dimension (must match the embedding model)
    """
    host: str = field(default_factory=lambda: _get_env_str("QDRANT_HOST", "localhost"))
    port: int = field(default_factory=lambda: _get_env_int("QDRANT_PORT", 6333))
    class_collection: str = field(default_factory=lambda: _get_env_str("QDRANT_CLASS_COLLECTION", "classes"))
    method_collection: str = field(default_factory=lambda: _get_env_str("QDRANT_METHOD_COLLECTION", "methods"))
    vector_size: int = field(default_factory=lambda: _get_env_int("QDRANT_VECTOR_SIZE", 1024))

    def __post_init__(self):
        if self.vector_size < 1:
            raise ValueError(f"vector_size must be >= 1, got {self.vector_size}")

    def collection_for(self, kind: EntityKind) -> str:
        """Collection name holding vectors of the given kind."""
        if kind == EntityKind.CLASS:
            return self.class_collection
        return self.method_collection
