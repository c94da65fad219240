"""
Analyzer Configuration
======================

Tunables of the retrieval funnel (embedding pre-filter, prompt caps).

Environment Variables:
    ASTKG_PREFILTER_ENABLED: Use the embedding pre-filter (default: true)
    ASTKG_PREFILTER_THRESHOLD: Minimum similarity score (default: 0.65)
    ASTKG_PREFILTER_MAX_ENTITIES: Global cap across both kinds (default: 30)
    ASTKG_PREFILTER_SEARCH_LIMIT: Matches requested per kind (default: 50)
"""

import os
from dataclasses import dataclass, field


def _get_env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def _get_env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


@dataclass
class AnalyzerConfig:
    """
    Configuration for EntityAnalyzer.

    Attributes:
        prefiltering_enabled: Narrow candidates by embedding similarity first
        similarity_threshold: Minimum score for a similarity match [0-1]
        max_entities: Global cap on pre-filtered classes + methods
        search_limit: Top-k requested from similarity search per kind
        max_formatted_classes: Classes rendered into the prompt
        max_formatted_methods: Methods rendered into the prompt
        max_results_requested: Entities the prompt asks the LLM to return
    """
    prefiltering_enabled: bool = field(
        default_factory=lambda: _get_env_bool("ASTKG_PREFILTER_ENABLED", True)
    )
    similarity_threshold: float = field(
        default_factory=lambda: _get_env_float("ASTKG_PREFILTER_THRESHOLD", 0.65)
    )
    max_entities: int = field(
        default_factory=lambda: _get_env_int("ASTKG_PREFILTER_MAX_ENTITIES", 30)
    )
    search_limit: int = field(
        default_factory=lambda: _get_env_int("ASTKG_PREFILTER_SEARCH_LIMIT", 50)
    )
    max_formatted_classes: int = 50
    max_formatted_methods: int = 100
    max_results_requested: int = 20

    def __post_init__(self):
        """Validate configuration."""
        if not 0 <= self.similarity_threshold <= 1:
            raise ValueError(
                f"similarity_threshold must be in [0, 1], got {self.similarity_threshold}"
            )
        for name in (
            "max_entities",
            "search_limit",
            "max_formatted_classes",
            "max_formatted_methods",
            "max_results_requested",
        ):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")
