"""
Entity Analyzer
===============

Answers "which classes and methods matter for this question?" with a
two-stage funnel:

1. Embedding pre-filter: embed the query, search classes and methods in
   the vector store, map matches back to registry entities and cap the
   combined set (default 30).
2. LLM pass: render the surviving entities as a bounded listing, ask the
   LLM for ``CLASS: <name>`` / ``METHOD: <name>`` lines and parse them.

Failure policy:
- Pre-filter failure (embedding, search or mapping) -> full population,
  0% reduction, analysis continues.
- Any other failure -> empty ``ExtractedEntities``. ``analyze_entities``
  never raises.

Example:
    analyzer = EntityAnalyzer(registry, embeddings, similarity, llm)
    entities = await analyzer.analyze_entities("where are refunds validated?")
    print(entities.classes, entities.methods)
"""

import asyncio
import structlog
from typing import Any, List, Optional

from astkg.models import (
    ClassEntity,
    EntityKind,
    ExtractedEntities,
    MethodEntity,
    PreFilteringResult,
)
from astkg.retrieval.config import AnalyzerConfig
from astkg.retrieval.prefilter import (
    calculate_reduction_percentage,
    map_candidates,
    partition_by_kind,
    rank_and_cap,
)

log = structlog.get_logger()

CLASS_PREFIX = "CLASS:"
METHOD_PREFIX = "METHOD:"

NO_CLASSES = "No classes available."
NO_METHODS = "No methods available."
NO_DESCRIPTION = "No description"

ENTITY_ANALYSIS_PROMPT = """You are analyzing a codebase to find the entities relevant to a user question.

Query: {query}

Available Classes:
{classes}

Available Methods:
{methods}

Task: identify the classes and methods most relevant to the query.
Return ONLY entity names, one per line, in exactly this format:
CLASS: ClassName
METHOD: methodName

Prefer:
1. Direct name matches and semantic similarity
2. Methods implementing the behaviour the query describes
3. Classes holding the related business logic
4. Entities whose descriptions match the query intent

List the top {max_results} entities, most relevant first.
"""


class EntityAnalyzer:
    """
    Hybrid retrieval engine over the entity registry.

    Args:
        registry: Object with ``async get_all_classes()`` / ``get_all_methods()``
        embedding_service: Object with ``async encode_query_async(text)``
        similarity_search: Object with ``async search(vector, top_k, threshold, kind)``
        llm: Object with ``async generate(prompt)``
        config: Funnel tunables
    """

    def __init__(
        self,
        registry: Any,
        embedding_service: Any,
        similarity_search: Any,
        llm: Any,
        config: Optional[AnalyzerConfig] = None,
    ):
        self.registry = registry
        self.embeddings = embedding_service
        self.similarity = similarity_search
        self.llm = llm
        self.config = config or AnalyzerConfig()

    async def analyze_entities(self, query: str) -> ExtractedEntities:
        """
        Find the entities relevant to ``query``.

        Returns:
            Parsed LLM selection; empty on any failure (never raises)
        """
        log.info(f"Starting entity analysis for query: {query!r}")

        try:
            if not query or not query.strip():
                log.warning("Empty query, nothing to analyze")
                return ExtractedEntities.empty()

            all_classes = await self.registry.get_all_classes()
            all_methods = await self.registry.get_all_methods()
            log.info(f"Loaded {len(all_classes)} classes and {len(all_methods)} methods")

            if self.config.prefiltering_enabled:
                prefiltered = await self.pre_filter_entities_with_embeddings(
                    query, all_classes, all_methods
                )
                classes = prefiltered.filtered_classes
                methods = prefiltered.filtered_methods
                log.info(
                    f"Pre-filtering reduced entities from {len(all_classes)}/{len(all_methods)} "
                    f"to {len(classes)}/{len(methods)} "
                    f"({prefiltered.reduction_percentage:.0f}% reduction)"
                )
            else:
                log.info("Pre-filtering disabled, using all entities")
                classes, methods = all_classes, all_methods

            prompt = self.build_prompt(
                query,
                self.format_classes_for_llm(classes),
                self.format_methods_for_llm(methods),
            )

            response = await self.llm.generate(prompt)
            log.debug(f"Raw LLM response: {response}")

            result = self.parse_llm_response(response)
            log.info(
                f"Entity analysis found {len(result.classes)} classes, "
                f"{len(result.methods)} methods"
            )
            return result

        except Exception as e:
            log.error(f"Entity analysis failed for query {query!r}: {e}", exc_info=True)
            return ExtractedEntities.empty()

    # ====================================================
    # PRE-FILTER
    # ====================================================

    async def pre_filter_entities_with_embeddings(
        self,
        query: str,
        all_classes: List[ClassEntity],
        all_methods: List[MethodEntity],
    ) -> PreFilteringResult:
        """
        Narrow the population to the entities closest to the query.

        On any failure the full population comes back with a 0% reduction
        and ``fallback_used=True``.
        """
        cfg = self.config

        try:
            query_vector = await self.embeddings.encode_query_async(query)

            similar_classes, similar_methods = await asyncio.gather(
                self.similarity.search(
                    query_vector, cfg.search_limit, cfg.similarity_threshold, EntityKind.CLASS
                ),
                self.similarity.search(
                    query_vector, cfg.search_limit, cfg.similarity_threshold, EntityKind.METHOD
                ),
            )
            log.info(
                f"Found {len(similar_classes)} similar classes and {len(similar_methods)} "
                f"similar methods above threshold {cfg.similarity_threshold}"
            )

            classes, unmatched_classes = map_candidates(similar_classes, all_classes)
            methods, unmatched_methods = map_candidates(similar_methods, all_methods)

            if len(classes) + len(methods) > cfg.max_entities:
                top = rank_and_cap([*similar_classes, *similar_methods], cfg.max_entities)
                top_classes, top_methods = partition_by_kind(top)
                classes, unmatched_classes = map_candidates(top_classes, all_classes)
                methods, unmatched_methods = map_candidates(top_methods, all_methods)
                log.info(
                    f"Limited to top {cfg.max_entities} entities: "
                    f"{len(classes)} classes, {len(methods)} methods"
                )

            unmatched = unmatched_classes + unmatched_methods
            if unmatched:
                log.debug(f"{unmatched} similarity matches had no registry entity")

            return PreFilteringResult(
                filtered_classes=classes,
                filtered_methods=methods,
                original_class_count=len(all_classes),
                original_method_count=len(all_methods),
                reduction_percentage=calculate_reduction_percentage(
                    len(all_classes) + len(all_methods),
                    len(classes) + len(methods),
                ),
                unmatched_count=unmatched,
            )

        except Exception as e:
            log.error(f"Pre-filtering failed, falling back to all entities: {e}", exc_info=True)
            return PreFilteringResult(
                filtered_classes=list(all_classes),
                filtered_methods=list(all_methods),
                original_class_count=len(all_classes),
                original_method_count=len(all_methods),
                reduction_percentage=0.0,
                fallback_used=True,
            )

    # ====================================================
    # PROMPT
    # ====================================================

    def format_classes_for_llm(self, classes: List[ClassEntity]) -> str:
        if not classes:
            return NO_CLASSES
        return "\n".join(
            f"- {c.name} ({c.package_name}.{c.name}): {c.description or NO_DESCRIPTION}"
            for c in classes[:self.config.max_formatted_classes]
        )

    def format_methods_for_llm(self, methods: List[MethodEntity]) -> str:
        if not methods:
            return NO_METHODS
        return "\n".join(
            f"- {m.name} ({m.signature}): {m.description or NO_DESCRIPTION}"
            for m in methods[:self.config.max_formatted_methods]
        )

    def build_prompt(self, query: str, classes_text: str, methods_text: str) -> str:
        return ENTITY_ANALYSIS_PROMPT.format(
            query=query,
            classes=classes_text,
            methods=methods_text,
            max_results=self.config.max_results_requested,
        )

    @staticmethod
    def parse_llm_response(response: Optional[str]) -> ExtractedEntities:
        """
        Read ``CLASS:`` / ``METHOD:`` lines; every other line is ignored.

        Packages and terms are never produced by this format and stay empty.
        """
        result = ExtractedEntities.empty()
        if response is None or not response.strip():
            log.warning("Empty LLM response received")
            return result

        for raw_line in response.split("\n"):
            line = raw_line.strip()
            if not line:
                continue
            if line.startswith(CLASS_PREFIX):
                name = line[len(CLASS_PREFIX):].strip()
                if name:
                    result.classes.append(name)
            elif line.startswith(METHOD_PREFIX):
                name = line[len(METHOD_PREFIX):].strip()
                if name:
                    result.methods.append(name)

        return result
