"""
ASTKG Settings
==============

One object gathering every component's configuration, loadable from YAML.

Each section defaults to its environment-variable driven dataclass; a
YAML file only needs the keys it overrides:

    falkordb:
      host: falkordb.internal
      graph_name: astkg_prod
    qdrant:
      port: 6334
    analyzer:
      similarity_threshold: 0.7
    ingestion:
      ast_endpoint: http://ast-service:8080/api/v1
      schedule_enabled: true
    llm:
      model: google/gemini-2.5-flash
    embedding:
      model_name: intfloat/e5-large-v2

Usage:
    config = AstkgConfig.from_yaml("astkg.yaml")
    config = AstkgConfig.for_environment(PROD_ENV)
"""

import os
import yaml
import structlog
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

from astkg.config.environments import Environment, EnvironmentConfig, get_environment_config
from astkg.llm.service import LLMConfig
from astkg.retrieval.config import AnalyzerConfig
from astkg.storage.graph.config import FalkorDBConfig
from astkg.storage.vectors.config import QdrantConfig

log = structlog.get_logger()


def _get_env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class IngestionConfig:
    """
    Settings for the ingestion pipeline.

    Attributes:
        ast_endpoint: Base URL of the AST service (ASTKG_AST_ENDPOINT)
        schedule_enabled: Run the pipeline periodically (ASTKG_SCHEDULE_ENABLED)
        schedule_interval_seconds: Delay between scheduled runs (ASTKG_SCHEDULE_INTERVAL)
        enrich_concurrency: Concurrent LLM calls while enriching (ASTKG_ENRICH_CONCURRENCY)
        batch_size: Vectors per embedding/upsert batch (ASTKG_BATCH_SIZE)
        graph_batch_size: Rows per graph UNWIND batch
        source_root: Root for relative source paths (ASTKG_SOURCE_ROOT)
        poll_interval_seconds: AST status poll delay
        max_poll_attempts: AST status polls before giving up
    """
    ast_endpoint: str = field(
        default_factory=lambda: os.environ.get("ASTKG_AST_ENDPOINT", "http://localhost:8080/api/v1")
    )
    schedule_enabled: bool = field(
        default_factory=lambda: _get_env_bool("ASTKG_SCHEDULE_ENABLED", False)
    )
    schedule_interval_seconds: float = field(
        default_factory=lambda: float(os.environ.get("ASTKG_SCHEDULE_INTERVAL", 3600))
    )
    enrich_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("ASTKG_ENRICH_CONCURRENCY", 2))
    )
    batch_size: int = field(
        default_factory=lambda: int(os.environ.get("ASTKG_BATCH_SIZE", 50))
    )
    graph_batch_size: int = 500
    source_root: Optional[str] = field(
        default_factory=lambda: os.environ.get("ASTKG_SOURCE_ROOT") or None
    )
    poll_interval_seconds: float = 5.0
    max_poll_attempts: int = 60

    def __post_init__(self):
        if not self.ast_endpoint:
            raise ValueError("ast_endpoint must not be empty")
        if self.schedule_interval_seconds <= 0:
            raise ValueError(
                f"schedule_interval_seconds must be > 0, got {self.schedule_interval_seconds}"
            )
        for name in ("enrich_concurrency", "batch_size", "graph_batch_size", "max_poll_attempts"):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")


@dataclass
class EmbeddingConfig:
    """Overrides for EmbeddingService; None keeps the service's own default."""
    model_name: Optional[str] = None
    device: Optional[str] = None
    batch_size: int = 32


@dataclass
class AstkgConfig:
    """All component settings."""
    falkordb: FalkorDBConfig = field(default_factory=FalkorDBConfig)
    qdrant: QdrantConfig = field(default_factory=QdrantConfig)
    analyzer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)

    @classmethod
    def for_environment(cls, env: Union[Environment, EnvironmentConfig]) -> "AstkgConfig":
        """Defaults with graph and collection names of ``env``."""
        env_config = env if isinstance(env, EnvironmentConfig) else get_environment_config(env)
        config = cls()
        config.apply_environment(env_config)
        return config

    def apply_environment(self, env_config: EnvironmentConfig) -> None:
        self.falkordb = replace(self.falkordb, graph_name=env_config.falkordb_graph)
        self.qdrant = replace(
            self.qdrant,
            class_collection=env_config.class_collection,
            method_collection=env_config.method_collection,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AstkgConfig":
        """
        Overlay ``data`` sections on the defaults.

        Raises:
            ValueError: Unknown section, unknown key, or invalid value
        """
        config = cls()
        section_names = {f.name for f in fields(cls)}

        for section, values in (data or {}).items():
            if section not in section_names:
                raise ValueError(f"Unknown config section: {section}")
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ValueError(f"Config section '{section}' must be a mapping")

            current = getattr(config, section)
            try:
                setattr(config, section, replace(current, **values))
            except TypeError as e:
                raise ValueError(f"Invalid key in config section '{section}': {e}") from e

        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "AstkgConfig":
        """
        Load settings from a YAML file.

        A missing file yields the defaults (with a warning).
        """
        path = Path(path)
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            log.warning(f"Config file not found: {path}, using defaults")
            return cls()

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping at top level")

        log.debug(f"Loaded config from {path}", sections=list(data.keys()))
        return cls.from_dict(data)
