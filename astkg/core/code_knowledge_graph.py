"""
Code Knowledge Graph
====================

Wires storage, ingestion and retrieval together behind one object:

    CodeKnowledgeGraph
    ├── FalkorDBClient (code graph)
    ├── EntityRegistry (in-memory class/method population)
    ├── EmbeddingService (E5 embeddings)
    ├── SimilaritySearch (Qdrant, scoped client per search)
    ├── OpenRouterService (LLM)
    ├── IngestionCoordinator
    │   ├── ASTSourceClient
    │   ├── GraphBuilder
    │   ├── SemanticEnricher
    │   └── Vectorizer
    └── EntityAnalyzer

Usage:
    kg = CodeKnowledgeGraph(AstkgConfig.from_yaml("astkg.yaml"))
    await kg.connect()

    kg.trigger_ingestion()                       # background run
    print(kg.ingestion_status())

    await kg.refresh_registry()
    entities = await kg.analyze("how are orders refunded?")

    await kg.close()
"""

import structlog
from dataclasses import replace
from typing import Any, Dict, Optional

from astkg.config import AstkgConfig
from astkg.llm import OpenRouterService
from astkg.models import ExtractedEntities
from astkg.pipeline import (
    ASTSourceClient,
    ASTSourceConfig,
    GraphBuilder,
    IngestionCoordinator,
    SemanticEnricher,
    TriggerResponse,
    Vectorizer,
)
from astkg.retrieval import EntityAnalyzer
from astkg.storage import EmbeddingService, EntityRegistry, FalkorDBClient, SimilaritySearch

log = structlog.get_logger()


class CodeKnowledgeGraph:
    """
    Entry point for ingestion and entity analysis.

    Components are created in ``connect()``; every other method requires
    a connected instance.
    """

    def __init__(self, config: Optional[AstkgConfig] = None):
        self.config = config or AstkgConfig()

        self._falkordb: Optional[FalkorDBClient] = None
        self._embedding_service: Optional[EmbeddingService] = None
        self._llm: Optional[OpenRouterService] = None
        self._vectorizer: Optional[Vectorizer] = None

        self.registry: Optional[EntityRegistry] = None
        self.coordinator: Optional[IngestionCoordinator] = None
        self.analyzer: Optional[EntityAnalyzer] = None

        self._connected = False

        log.info(f"CodeKnowledgeGraph initialized with graph: {self.config.falkordb.graph_name}")

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Connect to FalkorDB and build every component."""
        if self._connected:
            log.warning("Already connected")
            return

        cfg = self.config
        log.info("Connecting to storage backends...")

        self._falkordb = FalkorDBClient(cfg.falkordb)
        await self._falkordb.connect()

        self._embedding_service = EmbeddingService.get_instance(
            model_name=cfg.embedding.model_name,
            device=cfg.embedding.device,
            batch_size=cfg.embedding.batch_size,
        )
        self._llm = OpenRouterService(cfg.llm)
        self.registry = EntityRegistry(self._falkordb)

        self._vectorizer = Vectorizer(
            self._falkordb,
            self._embedding_service,
            cfg.qdrant,
            batch_size=cfg.ingestion.batch_size,
        )
        self.coordinator = IngestionCoordinator(
            ast_source=ASTSourceClient(ASTSourceConfig(
                poll_interval_seconds=cfg.ingestion.poll_interval_seconds,
                max_poll_attempts=cfg.ingestion.max_poll_attempts,
            )),
            graph_builder=GraphBuilder(self._falkordb, batch_size=cfg.ingestion.graph_batch_size),
            enricher=SemanticEnricher(
                self._falkordb,
                self._llm,
                source_root=cfg.ingestion.source_root,
                max_concurrent=cfg.ingestion.enrich_concurrency,
            ),
            vectorizer=self._vectorizer,
            ast_endpoint=cfg.ingestion.ast_endpoint,
            scheduling_enabled=cfg.ingestion.schedule_enabled,
            schedule_interval_seconds=cfg.ingestion.schedule_interval_seconds,
        )
        self.analyzer = EntityAnalyzer(
            registry=self.registry,
            embedding_service=self._embedding_service,
            similarity_search=SimilaritySearch(cfg.qdrant),
            llm=self._llm,
            config=cfg.analyzer,
        )

        self._connected = True
        log.info("CodeKnowledgeGraph connected successfully")

    async def close(self) -> None:
        """Stop scheduling and release every connection."""
        if self.coordinator is not None:
            await self.coordinator.stop_scheduler()
        if self._llm is not None:
            await self._llm.close()
        if self._vectorizer is not None:
            self._vectorizer.close()
        if self._falkordb is not None:
            await self._falkordb.close()

        self._connected = False
        log.info("CodeKnowledgeGraph connections closed")

    def _require_connected(self) -> None:
        if not self._connected:
            raise RuntimeError("CodeKnowledgeGraph not connected. Call connect() first.")

    async def health_check(self) -> bool:
        self._require_connected()
        return await self._falkordb.health_check()

    # ====================================================
    # INGESTION
    # ====================================================

    def trigger_ingestion(self) -> TriggerResponse:
        """Start a background ingestion run (see IngestionCoordinator.trigger)."""
        self._require_connected()
        return self.coordinator.trigger()

    async def run_ingestion(self) -> Dict[str, Any]:
        """
        Run ingestion in the caller's task, then reload the registry.

        Returns:
            Coordinator status after the run
        """
        self._require_connected()
        await self.coordinator.run_pipeline()

        status = self.coordinator.status()
        if status["last_error"] is None and status["last_run_time"] != "Never":
            await self.refresh_registry()
        return status

    def ingestion_status(self) -> Dict[str, Any]:
        self._require_connected()
        return self.coordinator.status()

    def start_scheduler(self) -> bool:
        self._require_connected()
        return self.coordinator.start_scheduler()

    # ====================================================
    # RETRIEVAL
    # ====================================================

    async def refresh_registry(self) -> Dict[str, int]:
        """Reload the entity population from the graph."""
        self._require_connected()
        classes, methods = await self.registry.refresh()
        return {"classes": classes, "methods": methods}

    async def analyze(self, query: str, use_prefilter: Optional[bool] = None) -> ExtractedEntities:
        """
        Entities relevant to ``query``.

        Args:
            query: Natural-language question
            use_prefilter: Override ``AnalyzerConfig.prefiltering_enabled``
        """
        self._require_connected()
        if not self.registry.is_loaded:
            await self.refresh_registry()

        analyzer = self.analyzer
        if use_prefilter is not None and use_prefilter != analyzer.config.prefiltering_enabled:
            analyzer = EntityAnalyzer(
                registry=analyzer.registry,
                embedding_service=analyzer.embeddings,
                similarity_search=analyzer.similarity,
                llm=analyzer.llm,
                config=replace(analyzer.config, prefiltering_enabled=use_prefilter),
            )

        return await analyzer.analyze_entities(query)
