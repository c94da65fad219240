"""
ASTKG Retrieval
===============

Hybrid retrieval: embedding pre-filter + LLM selection of relevant
classes and methods.

Components:
- EntityAnalyzer: query -> ExtractedEntities
- AnalyzerConfig: thresholds and caps
- prefilter: pure ranking / capping / mapping helpers
"""

from astkg.retrieval.analyzer import EntityAnalyzer
from astkg.retrieval.config import AnalyzerConfig
from astkg.retrieval.prefilter import (
    calculate_reduction_percentage,
    map_candidates,
    partition_by_kind,
    rank_and_cap,
)

__all__ = [
    "EntityAnalyzer",
    "AnalyzerConfig",
    "rank_and_cap",
    "partition_by_kind",
    "map_candidates",
    "calculate_reduction_percentage",
]
