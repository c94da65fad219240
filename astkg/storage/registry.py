"""
Entity Registry
===============

In-memory population of every class and method known to the code graph.

The query path reads it without locking: readers get list copies of the
current snapshot, and ``refresh()`` / ``load()`` replace the snapshot in a
single assignment, so a reader sees either the old or the new population,
never a mix.
"""

from typing import Any, Dict, List, Optional, Tuple

import structlog

from astkg.models import ClassEntity, ClassType, MethodEntity
from astkg.storage.graph import FalkorDBClient

log = structlog.get_logger()


CLASSES_QUERY = """
MATCH (c:Class)
RETURN c.id AS id,
       c.name AS name,
       c.full_name AS full_name,
       c.package_name AS package_name,
       c.file_path AS file_path,
       c.type AS type,
       c.super_class AS super_class,
       [(c)-[:CONTAINS]->(m:Method) | m.name] AS method_names,
       head([(c)-[:HAS_DESCRIPTION]->(d:Description) | d.content]) AS description
ORDER BY c.name
"""

METHODS_QUERY = """
MATCH (m:Method)
RETURN m.id AS id,
       m.name AS name,
       m.signature AS signature,
       m.class_name AS class_name,
       m.package_name AS package_name,
       m.file_path AS file_path,
       m.return_type AS return_type,
       m.parameter_types AS parameter_types,
       head([(m)-[:HAS_DESCRIPTION]->(d:Description) | d.content]) AS description
ORDER BY m.class_name, m.name
"""


def _class_type(value: Optional[str]) -> ClassType:
    try:
        return ClassType((value or "CLASS").upper())
    except ValueError:
        return ClassType.CLASS


def class_from_record(record: Dict[str, Any]) -> ClassEntity:
    return ClassEntity(
        id=record.get("id") or record.get("full_name") or record.get("name", ""),
        name=record.get("name") or "",
        full_name=record.get("full_name") or "",
        package_name=record.get("package_name") or "",
        file_path=record.get("file_path") or "",
        description=record.get("description"),
        super_class=record.get("super_class"),
        class_type=_class_type(record.get("type")),
        method_names=list(record.get("method_names") or []),
    )


def method_from_record(record: Dict[str, Any]) -> MethodEntity:
    return MethodEntity(
        id=record.get("id") or record.get("signature") or record.get("name", ""),
        name=record.get("name") or "",
        signature=record.get("signature") or "",
        class_name=record.get("class_name") or "",
        package_name=record.get("package_name") or "",
        file_path=record.get("file_path") or "",
        description=record.get("description"),
        return_type=record.get("return_type") or "",
        parameter_types=list(record.get("parameter_types") or []),
    )


class EntityRegistry:
    """
    Point-in-time catalogue of class and method entities.

    Example:
        registry = EntityRegistry(falkordb_client)
        await registry.refresh()
        classes = await registry.get_all_classes()
    """

    def __init__(self, graph: Optional[FalkorDBClient] = None):
        self.graph = graph
        self._snapshot: Tuple[List[ClassEntity], List[MethodEntity]] = ([], [])
        self._loaded = False

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self, classes: List[ClassEntity], methods: List[MethodEntity]) -> None:
        """Replace the population directly."""
        self._snapshot = (list(classes), list(methods))
        self._loaded = True
        log.info(f"Entity registry loaded: {len(classes)} classes, {len(methods)} methods")

    async def refresh(self) -> Tuple[int, int]:
        """
        Reload the population from the graph.

        Returns:
            (class_count, method_count)

        Raises:
            RuntimeError: If no graph client is configured
        """
        if self.graph is None:
            raise RuntimeError("EntityRegistry has no graph client to refresh from")

        class_records = await self.graph.query(CLASSES_QUERY)
        method_records = await self.graph.query(METHODS_QUERY)

        classes = [class_from_record(r) for r in class_records]
        methods = [method_from_record(r) for r in method_records]

        self.load(classes, methods)
        return len(classes), len(methods)

    async def get_all_classes(self) -> List[ClassEntity]:
        return list(self._snapshot[0])

    async def get_all_methods(self) -> List[MethodEntity]:
        return list(self._snapshot[1])

    def counts(self) -> Dict[str, int]:
        classes, methods = self._snapshot
        return {"classes": len(classes), "methods": len(methods)}
