"""
ASTKG: Code Knowledge Graph
===========================

Ingests a codebase's AST into a FalkorDB graph, enriches methods with LLM
descriptions, indexes classes and methods in Qdrant, and answers
natural-language questions with the classes and methods that matter.

Quick Start:
    from astkg import CodeKnowledgeGraph, AstkgConfig

    kg = CodeKnowledgeGraph(AstkgConfig.from_yaml("astkg.yaml"))
    await kg.connect()

    # Ingestion (single-flight, runs in background)
    kg.trigger_ingestion()

    # Retrieval
    entities = await kg.analyze("where are refunds validated?")
    print(entities.classes, entities.methods)

Components:
- core: CodeKnowledgeGraph
- pipeline: IngestionCoordinator and its four stages
- retrieval: EntityAnalyzer (embedding pre-filter + LLM selection)
- storage: FalkorDBClient, EntityRegistry, EmbeddingService, SimilaritySearch
"""

__version__ = "0.1.0"

from astkg.config import AstkgConfig
from astkg.core import CodeKnowledgeGraph
from astkg.models import ExtractedEntities

__all__ = [
    "AstkgConfig",
    "CodeKnowledgeGraph",
    "ExtractedEntities",
]
