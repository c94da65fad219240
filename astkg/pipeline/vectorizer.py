"""
Vectorizer
==========

Embeds described methods and all classes and upserts them into Qdrant
(``methods`` and ``classes`` collections). Payloads carry the fields
that ``SimilaritySearch`` turns back into ``SimilarEntity`` matches.

Point ids are derived from the graph node id (uuid5), so re-running the
stage overwrites vectors instead of duplicating them.
"""

import asyncio
import structlog
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import NAMESPACE_URL, uuid5

from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from astkg.models import EntityKind
from astkg.storage.graph import FalkorDBClient
from astkg.storage.vectors.config import QdrantConfig
from astkg.storage.vectors.embeddings import EmbeddingService

log = structlog.get_logger()


DESCRIBED_METHODS_QUERY = """
MATCH (m:Method)-[:HAS_DESCRIPTION]->(d:Description)
RETURN m.id AS id,
       m.name AS name,
       m.signature AS signature,
       m.class_name AS class_name,
       m.package_name AS package_name,
       head(collect(d.content)) AS description
"""

CLASSES_QUERY = """
MATCH (c:Class)
RETURN c.id AS id,
       c.name AS name,
       c.full_name AS full_name,
       c.package_name AS package_name,
       [(c)-[:CONTAINS]->(m:Method) | m.name] AS method_names,
       head([(c)-[:HAS_DESCRIPTION]->(d:Description) | d.content]) AS description
"""


@dataclass
class VectorizationResult:
    """Vectors upserted by one stage run."""
    methods: int = 0
    classes: int = 0
    duration_seconds: float = 0.0

    def summary(self) -> str:
        return (
            f"Vectorization: {self.methods} methods, {self.classes} classes "
            f"in {self.duration_seconds:.1f}s"
        )


def point_id(kind: EntityKind, entity_id: str) -> str:
    """Stable Qdrant point id for a graph node."""
    return str(uuid5(NAMESPACE_URL, f"astkg:{kind.value}:{entity_id}"))


def method_text(record: Dict[str, Any]) -> str:
    name = record.get("name") or ""
    owner = record.get("class_name") or ""
    description = record.get("description") or ""
    header = f"{owner}.{name}" if owner else name
    return f"{header}: {description}".strip()


def class_text(record: Dict[str, Any]) -> str:
    name = record.get("name") or ""
    description = record.get("description")
    if description:
        return f"{name}: {description}"
    methods = ", ".join((record.get("method_names") or [])[:20])
    package = record.get("package_name") or ""
    text = f"{name} in {package}" if package else name
    return f"{text} with methods {methods}" if methods else text


class Vectorizer:
    """
    Writes class and method embeddings to Qdrant.

    Example:
        vectorizer = Vectorizer(graph, embeddings, QdrantConfig(), batch_size=50)
        result = await vectorizer.vectorize_enriched_methods()
    """

    def __init__(
        self,
        graph: FalkorDBClient,
        embedding_service: EmbeddingService,
        config: Optional[QdrantConfig] = None,
        batch_size: int = 50,
        qdrant_client: Optional[Any] = None,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.graph = graph
        self.embeddings = embedding_service
        self.config = config or QdrantConfig()
        self.batch_size = batch_size
        self._qdrant = qdrant_client

    def _client(self) -> Any:
        if self._qdrant is None:
            self._qdrant = QdrantClient(host=self.config.host, port=self.config.port)
        return self._qdrant

    def close(self) -> None:
        if self._qdrant is not None:
            self._qdrant.close()
            self._qdrant = None

    async def vectorize_enriched_methods(self) -> VectorizationResult:
        """
        Embed described methods, then classes.

        Raises:
            Whatever the graph client, embedding service or Qdrant raises
        """
        loop = asyncio.get_event_loop()
        start = loop.time()
        result = VectorizationResult()

        await self._ensure_collection(self.config.method_collection)
        await self._ensure_collection(self.config.class_collection)

        method_records = await self.graph.query(DESCRIBED_METHODS_QUERY)
        log.info(f"Found {len(method_records)} described methods to vectorize")
        result.methods = await self._upsert(
            EntityKind.METHOD, self.config.method_collection, method_records, method_text
        )

        class_records = await self.graph.query(CLASSES_QUERY)
        log.info(f"Found {len(class_records)} classes to vectorize")
        result.classes = await self._upsert(
            EntityKind.CLASS, self.config.class_collection, class_records, class_text
        )

        result.duration_seconds = loop.time() - start
        log.info(result.summary())
        return result

    async def _ensure_collection(self, collection_name: str) -> None:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._ensure_collection_sync, collection_name)

    def _ensure_collection_sync(self, collection_name: str) -> None:
        client = self._client()
        collections = client.get_collections().collections
        if any(c.name == collection_name for c in collections):
            return

        client.create_collection(
            collection_name=collection_name,
            vectors_config=VectorParams(
                size=self.config.vector_size,
                distance=Distance.COSINE,
            ),
        )
        log.info(f"Created Qdrant collection: {collection_name}")

    async def _upsert(
        self,
        kind: EntityKind,
        collection_name: str,
        records: List[Dict[str, Any]],
        to_text,
    ) -> int:
        records = [r for r in records if r.get("id") and r.get("name")]
        upserted = 0

        for i in range(0, len(records), self.batch_size):
            batch = records[i:i + self.batch_size]
            vectors = await self.embeddings.encode_batch_async(
                [to_text(r) for r in batch],
                is_query=False,
            )

            points = [
                PointStruct(
                    id=point_id(kind, record["id"]),
                    vector=vector,
                    payload=self._payload(kind, record),
                )
                for record, vector in zip(batch, vectors)
            ]

            loop = asyncio.get_event_loop()
            await loop.run_in_executor(
                None,
                lambda: self._client().upsert(collection_name=collection_name, points=points),
            )
            upserted += len(points)
            log.debug(f"Upserted {len(points)} {kind.value} vectors to {collection_name}")

        return upserted

    @staticmethod
    def _payload(kind: EntityKind, record: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            "entity_id": record["id"],
            "name": record["name"],
            "kind": kind.value,
            "package_name": record.get("package_name"),
            "description": record.get("description"),
        }
        if kind == EntityKind.CLASS:
            payload["full_name"] = record.get("full_name")
        else:
            payload["signature"] = record.get("signature")
            payload["class_name"] = record.get("class_name")
        return payload
