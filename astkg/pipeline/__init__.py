"""
ASTKG Ingestion Pipeline
========================

AST service -> FalkorDB code graph -> LLM descriptions -> Qdrant vectors.

Components:
- ASTSourceClient: fetches the AST snapshot (analyze / poll / results)
- GraphBuilder: MERGE upserts of classes, methods, endpoints and relationships
- SemanticEnricher: LLM descriptions for undescribed methods
- Vectorizer: class and method embeddings into Qdrant
- IngestionCoordinator: single-flight runner for the four stages
"""

from astkg.pipeline.ast_source import ASTSourceClient, ASTSourceConfig
from astkg.pipeline.coordinator import IngestionCoordinator, IngestionRunState, TriggerResponse
from astkg.pipeline.enricher import EnrichmentResult, SemanticEnricher
from astkg.pipeline.graph_builder import GraphBuilder, GraphBuildResult
from astkg.pipeline.vectorizer import VectorizationResult, Vectorizer

__all__ = [
    # Stages
    "ASTSourceClient",
    "ASTSourceConfig",
    "GraphBuilder",
    "GraphBuildResult",
    "SemanticEnricher",
    "EnrichmentResult",
    "Vectorizer",
    "VectorizationResult",
    # Coordinator
    "IngestionCoordinator",
    "IngestionRunState",
    "TriggerResponse",
]
