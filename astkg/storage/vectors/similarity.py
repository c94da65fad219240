"""
Similarity Search
=================

Nearest-neighbour search over the class and method collections in Qdrant.

Every search opens its own client and closes it when done, so concurrent
queries never share a connection and a failed search cannot leak one.
qdrant-client is synchronous; the call runs in the default executor.

Example:
    search = SimilaritySearch(QdrantConfig())
    matches = await search.search(query_vector, top_k=50, threshold=0.65, kind=EntityKind.CLASS)
"""

import asyncio
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

import structlog
from qdrant_client import QdrantClient

from astkg.models import EntityKind, SimilarEntity
from astkg.storage.vectors.config import QdrantConfig

log = structlog.get_logger()


class SimilaritySearch:
    """
    Threshold + top-k search returning ``SimilarEntity`` matches.

    Args:
        config: Qdrant connection settings
        client_factory: Callable building a fresh client (defaults to
            ``QdrantClient(host, port)``)
    """

    def __init__(
        self,
        config: Optional[QdrantConfig] = None,
        client_factory: Optional[Callable[[], Any]] = None,
    ):
        self.config = config or QdrantConfig()
        self._client_factory = client_factory or self._default_client

    def _default_client(self) -> QdrantClient:
        return QdrantClient(host=self.config.host, port=self.config.port)

    @contextmanager
    def _session(self) -> Iterator[Any]:
        client = self._client_factory()
        try:
            yield client
        finally:
            client.close()

    async def search(
        self,
        query_vector: List[float],
        top_k: int,
        threshold: float,
        kind: EntityKind,
    ) -> List[SimilarEntity]:
        """
        Find the entities of ``kind`` closest to ``query_vector``.

        Args:
            query_vector: Embedded query
            top_k: Maximum number of matches
            threshold: Minimum similarity score (inclusive)
            kind: Which collection to search

        Returns:
            At most ``top_k`` matches, descending by score, all >= threshold

        Raises:
            Whatever qdrant-client raises (unreachable server, missing collection)
        """
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None,
            self._search_sync,
            query_vector,
            top_k,
            threshold,
            kind,
        )

    def _search_sync(
        self,
        query_vector: List[float],
        top_k: int,
        threshold: float,
        kind: EntityKind,
    ) -> List[SimilarEntity]:
        collection_name = self.config.collection_for(kind)

        with self._session() as client:
            response = client.query_points(
                collection_name=collection_name,
                query=query_vector,
                limit=top_k,
                score_threshold=threshold,
                with_payload=True,
            )

        matches = [
            self._to_entity(point.score, point.payload or {}, kind)
            for point in response.points
            if point.score >= threshold
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        matches = matches[:top_k]

        log.debug(
            f"Similarity search on {collection_name}: "
            f"{len(matches)} matches (top_k={top_k}, threshold={threshold})"
        )
        return matches

    @staticmethod
    def _to_entity(score: float, payload: Dict[str, Any], kind: EntityKind) -> SimilarEntity:
        return SimilarEntity(
            name=payload.get("name", ""),
            score=float(score),
            kind=kind,
            full_name=payload.get("full_name"),
            package_name=payload.get("package_name"),
            signature=payload.get("signature"),
            class_name=payload.get("class_name"),
        )
