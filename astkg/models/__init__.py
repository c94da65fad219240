"""
Data models shared by the ingestion and retrieval paths.
"""

from astkg.models.ast import ApiEndpoint, ASTSnapshot, ClassInfo, MethodInfo
from astkg.models.entities import (
    ClassEntity,
    ClassType,
    EntityKind,
    ExtractedEntities,
    MethodEntity,
    PreFilteringResult,
    SimilarEntity,
)

__all__ = [
    # AST
    "ASTSnapshot",
    "ClassInfo",
    "MethodInfo",
    "ApiEndpoint",
    # Entities
    "ClassEntity",
    "ClassType",
    "MethodEntity",
    "EntityKind",
    "SimilarEntity",
    "PreFilteringResult",
    "ExtractedEntities",
]
